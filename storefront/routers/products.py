# storefront/routers/products.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from sqlmodel import Session

from storefront.core.auth import require_admin
from storefront.database import get_session
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product import (
    ProductCreate,
    ProductDetail,
    ProductFilter,
    ProductList,
    ProductRead,
    ProductUpdate,
)
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


# -------- Public endpoints --------


@router.get("", response_model=ProductList)
def list_products(
    filters: ProductFilter = Depends(),
    session: Session = Depends(get_session),
):
    """
    List products.

    - Public endpoint.
    - Filters: category, price range, featured, free-text search.
    - Sort by created_at / price / name, asc or desc.
    """
    return service.list_products(session, filters)


@router.get("/search", response_model=list[ProductRead])
def search_products(
    q: str = Query(default=""),
    limit: int = Query(default=10, ge=1, le=50),
    session: Session = Depends(get_session),
):
    """
    Search active products by name or description.
    """
    return service.search_products(session, q, limit)


@router.get("/{product_id}", response_model=ProductDetail)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single product by id, with its variants.
    """
    return service.get_product_detail(session, product_id)


@router.get("/{product_id}/related", response_model=list[ProductRead])
def related_products(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.related_products(session, product_id)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductDetail,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a new product (admin only).
    """
    return service.create_product(session, payload)


@router.patch(
    "/{product_id}",
    response_model=ProductDetail,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product (admin only).
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a product and its variants (admin only).
    """
    service.delete_product(session, product_id)
    return None


@router.post(
    "/{product_id}/hero-image",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
    summary="Upload or replace hero image for a product",
)
def upload_hero_image(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    Upload a new hero image for the product.

    - Accepts JPEG, PNG, WEBP.
    - Overwrites any previous hero image.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    return service.set_hero_image(
        session=session,
        product_id=product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
    )
