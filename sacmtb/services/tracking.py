"""Carrier tracking link derivation."""

from urllib.parse import quote

from sacmtb.core.config import CarrierTemplate, get_settings, normalize_partner


def match_carrier(
    delivery_partner: str,
    carriers: list[CarrierTemplate] | None = None,
) -> CarrierTemplate | None:
    """Return the first carrier whose pattern occurs in the normalised name."""
    if carriers is None:
        carriers = get_settings().carrier_tracking_table
    normalized = normalize_partner(delivery_partner)
    if not normalized:
        return None
    for carrier in carriers:
        if normalize_partner(carrier.pattern) in normalized:
            return carrier
    return None


def derive_tracking_link(
    delivery_partner: str,
    tracking_id: str,
    carriers: list[CarrierTemplate] | None = None,
) -> str:
    """Build the public tracking URL for a shipment.

    Args:
        delivery_partner: Free-text carrier name entered by the admin.
        tracking_id: Carrier tracking number.
        carriers: Ordered carrier table; defaults to the configured one.

    Returns:
        str: The tracking URL, or an empty string if no carrier matches.
    """
    tracking_id = (tracking_id or "").strip()
    carrier = match_carrier(delivery_partner, carriers)
    if carrier is None or not tracking_id:
        return ""
    return carrier.url_template.format(tracking_id=quote(tracking_id, safe=""))
