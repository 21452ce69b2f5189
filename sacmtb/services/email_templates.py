"""HTML bodies for transactional emails."""

from html import escape
from typing import Any

TRACKING_FALLBACK_TEXT = "Use the tracking ID above on the carrier's website to follow your shipment."

_WRAPPER = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
{body}
</body>
</html>
"""


def _page(title: str, body: str) -> str:
    return _WRAPPER.format(title=escape(title), body=body)


def _text(value: Any) -> str:
    return escape("" if value is None else str(value))


def _money(amount: Any) -> str:
    return f"₹{float(amount or 0):,.2f}"


def otp_email(otp: str, minutes: int, purpose: str = "continue") -> tuple[str, str]:
    """Subject and body for a one-time password."""
    body = f"""
    <h2>Your OTP Code</h2>
    <p>Use the OTP below to {escape(purpose)}:</p>
    <h1 style="color: #2563eb; letter-spacing: 4px;">{escape(otp)}</h1>
    <p>This OTP is valid for {minutes} minutes. If you did not request it, you can ignore this email.</p>
"""
    return "Your OTP for SAC MTB", _page("Your OTP Code", body)


def order_confirmation_email(order: dict[str, Any], for_admin: bool = False) -> tuple[str, str]:
    """Subject and body confirming a placed (COD) or paid (ONLINE) order."""
    order_id = order["id"]
    shipping = order.get("shipping_address") or {}
    items = "".join(
        f"<li>{_text(item.get('name'))} &times; {int(item.get('qty') or 0)} &mdash; {_money(item.get('price'))}</li>"
        for item in order.get("order_items") or []
    )
    heading = (
        "New Order Received"
        if for_admin
        else f"Thanks for your order, {escape(order.get('user_name') or 'Customer')}!"
    )
    paid_label = "Total Paid" if order.get("payment_method") == "ONLINE" else "Total (Cash on Delivery)"
    body = f"""
    <h2>{heading}</h2>
    <p><strong>Order ID:</strong> {escape(str(order_id))}</p>
    <h3>Shipping Address</h3>
    <p>
        {_text(shipping.get('fullName'))}<br/>
        {_text(shipping.get('address'))}, {_text(shipping.get('city'))},
        {_text(shipping.get('state'))} - {_text(shipping.get('postalCode'))}<br/>
        {_text(shipping.get('country'))}
    </p>
    <h3>Items</h3>
    <ul>{items}</ul>
    <h3>{paid_label}: {_money(order.get('total_price'))}</h3>
"""
    subject = f"New Order - {order_id}" if for_admin else f"Order Confirmed - {order_id}"
    return subject, _page(subject, body)


def shipment_email(order: dict[str, Any], for_admin: bool = False) -> tuple[str, str]:
    """Subject and body announcing a shipment, with a tracking link when one is known."""
    order_id = order["id"]
    tracking_link = order.get("tracking_link") or ""
    if tracking_link:
        tracking = f'<p><a href="{escape(tracking_link)}" target="_blank">Track Shipment</a></p>'
    else:
        tracking = f"<p>{TRACKING_FALLBACK_TEXT}</p>"
    body = f"""
    <h2>Your order is on the way</h2>
    <p><strong>Order ID:</strong> {escape(str(order_id))}</p>
    <p><strong>Courier:</strong> {escape(order.get('delivery_partner') or '')}</p>
    <p><strong>Tracking ID:</strong> {escape(order.get('tracking_id') or '')}</p>
    {tracking}
"""
    subject = f"Order Shipped - {order_id}"
    if for_admin:
        subject = f"[Admin] {subject}"
    return subject, _page(subject, body)


def delivered_email(order: dict[str, Any], for_admin: bool = False) -> tuple[str, str]:
    """Subject and body announcing delivery."""
    order_id = order["id"]
    body = f"""
    <h2>Order Delivered</h2>
    <p><strong>Order ID:</strong> {escape(str(order_id))}</p>
    <p>We hope you enjoy your ride.</p>
"""
    subject = f"Order Delivered - {order_id}"
    if for_admin:
        subject = f"[Admin] {subject}"
    return subject, _page(subject, body)


def cancelled_email(order: dict[str, Any], for_admin: bool = False) -> tuple[str, str]:
    """Subject and body announcing a cancellation with its reason."""
    order_id = order["id"]
    reason = order.get("cancellation_reason") or "No reason provided"
    lead = "" if for_admin else "<p>Your order was cancelled.</p>"
    body = f"""
    <h2>Order Cancelled</h2>
    <p><strong>Order ID:</strong> {escape(str(order_id))}</p>
    {lead}
    <p><strong>Reason:</strong> {escape(reason)}</p>
"""
    subject = f"Order Cancelled - {order_id}"
    if for_admin:
        subject = f"[Admin] {subject}"
    return subject, _page(subject, body)
