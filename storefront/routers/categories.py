# storefront/routers/categories.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import require_admin
from storefront.database import get_session
from storefront.repositories.category_repo import CategoryRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.category import (
    CategoryCreate,
    CategoryDetail,
    CategoryNode,
    CategoryRead,
    CategoryUpdate,
)
from storefront.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])

service = CategoryService(CategoryRepository(), ProductRepository())


@router.get("", response_model=list[CategoryNode])
def get_category_tree(session: Session = Depends(get_session)):
    """
    Active categories as a tree (public).
    """
    return service.get_tree(session)


@router.get("/{category_id}", response_model=CategoryDetail)
def get_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    One category with its direct subcategories and up to 10 active
    products (public).
    """
    return service.get_category_detail(session, category_id)


@router.post(
    "",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
):
    return service.create_category(session, payload)


@router.patch(
    "/{category_id}",
    response_model=CategoryRead,
    dependencies=[Depends(require_admin)],
)
def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    session: Session = Depends(get_session),
):
    return service.update_category(session, category_id, payload)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a category (admin only). Refused while it has subcategories
    or products.
    """
    service.delete_category(session, category_id)
    return None
