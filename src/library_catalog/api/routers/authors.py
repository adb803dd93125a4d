"""Author endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from ...database.author_repository import AuthorCreateSchema, AuthorUpdateSchema
from ...database.repository import PaginatedResponse
from ...models.author import Author
from ..dependencies import AuthorRepoDep, PaginationDep

router = APIRouter(prefix="/authors", tags=["authors"])


@router.get("", response_model=PaginatedResponse[Author])
def list_authors(repo: AuthorRepoDep, pagination: PaginationDep):
    return repo.get_all(pagination, order_by="last_name")


@router.post("", response_model=Author, status_code=status.HTTP_201_CREATED)
def create_author(data: AuthorCreateSchema, repo: AuthorRepoDep):
    return repo.create(data)


@router.get("/search", response_model=PaginatedResponse[Author])
def search_authors(
    repo: AuthorRepoDep, pagination: PaginationDep, keyword: Annotated[str, Query(min_length=1)]
):
    return repo.search(keyword, pagination)


@router.get("/nationality/{nationality}", response_model=PaginatedResponse[Author])
def authors_by_nationality(nationality: str, repo: AuthorRepoDep, pagination: PaginationDep):
    return repo.get_by_nationality(nationality, pagination)


@router.get("/{author_id}", response_model=Author)
def get_author(author_id: int, repo: AuthorRepoDep):
    return repo.get_or_raise(author_id)


@router.put("/{author_id}", response_model=Author)
def update_author(author_id: int, data: AuthorUpdateSchema, repo: AuthorRepoDep):
    return repo.update(author_id, data)


@router.delete("/{author_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_author(author_id: int, repo: AuthorRepoDep):
    repo.delete(author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
