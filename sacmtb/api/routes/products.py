"""Product catalog API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from sacmtb.api.deps import AdminUser
from sacmtb.models.product import BikeType
from sacmtb.schemas.common import MessageResponse
from sacmtb.schemas.media import ImageUploadResponse, VideoUploadResponse
from sacmtb.schemas.product import ProductCreateRequest, ProductResponse, ProductUpdateRequest
from sacmtb.services.media_service import MediaService, get_media_service
from sacmtb.services.product_service import ProductService, get_product_service

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=list[ProductResponse])
async def list_products(
    bike_type: Annotated[BikeType | None, Query(alias="type", description="Filter by bicycle type")] = None,
    featured: Annotated[bool | None, Query(description="Filter by featured flag")] = None,
    product_service: ProductService = Depends(get_product_service),
) -> list[ProductResponse]:
    """List products, newest first. Publicly readable."""
    products = await product_service.list_products(
        bike_type=bike_type.value if bike_type else None,
        featured=featured,
    )
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """Get a product by ID. Publicly readable."""
    return ProductResponse.model_validate(await product_service.get_product(product_id))


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreateRequest,
    admin: AdminUser,
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """Create a product. Admin only."""
    product = await product_service.create_product(data.model_dump(mode="json"))
    return ProductResponse.model_validate(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    data: ProductUpdateRequest,
    admin: AdminUser,
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """Partially update a product. Admin only."""
    changes = data.model_dump(mode="json", exclude_unset=True)
    product = await product_service.update_product(product_id, changes)
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    admin: AdminUser,
    product_service: ProductService = Depends(get_product_service),
) -> MessageResponse:
    """Delete a product. Admin only."""
    await product_service.delete_product(product_id)
    return MessageResponse(message="Product deleted successfully")


@router.post("/upload-images", response_model=ImageUploadResponse)
async def upload_product_images(
    admin: AdminUser,
    images: list[UploadFile] | None = File(default=None, description="Up to five jpeg, png or webp images"),
    media_service: MediaService = Depends(get_media_service),
) -> ImageUploadResponse:
    """Store product images and return their public URLs. Admin only."""
    urls = await media_service.upload_product_images(images)
    return ImageUploadResponse(image_urls=urls)


@router.post("/upload-video", response_model=VideoUploadResponse)
async def upload_product_video(
    admin: AdminUser,
    video: UploadFile | None = File(default=None, description="An mp4, mov or webm video"),
    media_service: MediaService = Depends(get_media_service),
) -> VideoUploadResponse:
    """Store a product video and return its public URL. Admin only."""
    url = await media_service.upload_product_video(video)
    return VideoUploadResponse(video_url=url)
