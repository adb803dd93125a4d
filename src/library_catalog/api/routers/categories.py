"""Category endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from ...database.category_repository import CategoryCreateSchema, CategoryUpdateSchema
from ...database.repository import PaginatedResponse
from ...models.category import Category
from ..dependencies import CategoryRepoDep, PaginationDep

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=PaginatedResponse[Category])
def list_categories(repo: CategoryRepoDep, pagination: PaginationDep):
    return repo.get_all(pagination, order_by="name")


@router.get("/all", response_model=list[Category])
def all_categories(repo: CategoryRepoDep):
    return repo.list_all()


@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
def create_category(data: CategoryCreateSchema, repo: CategoryRepoDep):
    return repo.create(data)


@router.get("/search", response_model=PaginatedResponse[Category])
def search_categories(
    repo: CategoryRepoDep, pagination: PaginationDep, keyword: Annotated[str, Query(min_length=1)]
):
    return repo.search(keyword, pagination)


@router.get("/name/{name}", response_model=Category)
def get_category_by_name(name: str, repo: CategoryRepoDep):
    return repo.get_by_name(name)


@router.get("/{category_id}", response_model=Category)
def get_category(category_id: int, repo: CategoryRepoDep):
    return repo.get_or_raise(category_id)


@router.put("/{category_id}", response_model=Category)
def update_category(category_id: int, data: CategoryUpdateSchema, repo: CategoryRepoDep):
    return repo.update(category_id, data)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, repo: CategoryRepoDep):
    repo.delete(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
