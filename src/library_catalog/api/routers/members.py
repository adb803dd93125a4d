"""Member endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from ...database.member_repository import (
    MemberCreateSchema,
    MemberStatusUpdate,
    MemberUpdateSchema,
)
from ...database.repository import PaginatedResponse
from ...models.member import Member, MembershipStatus
from ..dependencies import MemberRepoDep, PaginationDep

router = APIRouter(prefix="/members", tags=["members"])


@router.get("", response_model=PaginatedResponse[Member])
def list_members(repo: MemberRepoDep, pagination: PaginationDep):
    return repo.get_all(pagination, order_by="last_name")


@router.post("", response_model=Member, status_code=status.HTTP_201_CREATED)
def create_member(data: MemberCreateSchema, repo: MemberRepoDep):
    return repo.create(data)


@router.get("/search", response_model=PaginatedResponse[Member])
def search_members(
    repo: MemberRepoDep, pagination: PaginationDep, keyword: Annotated[str, Query(min_length=1)]
):
    return repo.search(keyword, pagination)


@router.get("/email/{email}", response_model=Member)
def get_member_by_email(email: str, repo: MemberRepoDep):
    return repo.get_by_email(email)


@router.get("/status/{member_status}", response_model=PaginatedResponse[Member])
def members_by_status(
    member_status: MembershipStatus, repo: MemberRepoDep, pagination: PaginationDep
):
    return repo.get_by_status(member_status, pagination)


@router.get("/{member_id}", response_model=Member)
def get_member(member_id: int, repo: MemberRepoDep):
    return repo.get_or_raise(member_id)


@router.put("/{member_id}", response_model=Member)
def update_member(member_id: int, data: MemberUpdateSchema, repo: MemberRepoDep):
    return repo.update(member_id, data)


@router.patch("/{member_id}/status", response_model=Member)
def update_member_status(member_id: int, data: MemberStatusUpdate, repo: MemberRepoDep):
    """Activate, suspend or expire a membership."""
    return repo.update_status(member_id, data.status)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_member(member_id: int, repo: MemberRepoDep):
    repo.delete(member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
