"""Book catalog endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from ...database.book_repository import BookCreateSchema, BookUpdateSchema
from ...database.repository import PaginatedResponse
from ...models.book import Book
from ..dependencies import BookRepoDep, PaginationDep

router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=PaginatedResponse[Book])
def list_books(repo: BookRepoDep, pagination: PaginationDep):
    return repo.get_all(pagination, order_by="title")


@router.post("", response_model=Book, status_code=status.HTTP_201_CREATED)
def create_book(data: BookCreateSchema, repo: BookRepoDep):
    return repo.create(data)


@router.get("/search", response_model=PaginatedResponse[Book])
def search_books(
    repo: BookRepoDep, pagination: PaginationDep, keyword: Annotated[str, Query(min_length=1)]
):
    return repo.search(keyword, pagination)


@router.get("/available", response_model=PaginatedResponse[Book])
def available_books(repo: BookRepoDep, pagination: PaginationDep):
    return repo.get_available(pagination)


@router.get("/isbn/{isbn}", response_model=Book)
def get_book_by_isbn(isbn: str, repo: BookRepoDep):
    return repo.get_by_isbn(isbn)


@router.get("/category/{category_id}", response_model=PaginatedResponse[Book])
def books_by_category(category_id: int, repo: BookRepoDep, pagination: PaginationDep):
    return repo.get_by_category(category_id, pagination)


@router.get("/{book_id}", response_model=Book)
def get_book(book_id: int, repo: BookRepoDep):
    return repo.get_or_raise(book_id)


@router.put("/{book_id}", response_model=Book)
def update_book(book_id: int, data: BookUpdateSchema, repo: BookRepoDep):
    return repo.update(book_id, data)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(book_id: int, repo: BookRepoDep):
    repo.delete(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
