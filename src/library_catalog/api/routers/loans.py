"""Loan endpoints: lending, returns, administrative edits and overdue handling."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from ...database.loan_repository import LoanCreateSchema, LoanUpdateSchema
from ...database.repository import PaginatedResponse
from ...models.loan import Loan, LoanStatus, SweepResult
from ..dependencies import LoanServiceDep, PaginationDep, SweeperDep

router = APIRouter(prefix="/loans", tags=["loans"])


@router.get("", response_model=PaginatedResponse[Loan])
def list_loans(service: LoanServiceDep, pagination: PaginationDep):
    return service.list_loans(pagination)


@router.post("", response_model=Loan, status_code=status.HTTP_201_CREATED)
def create_loan(data: LoanCreateSchema, service: LoanServiceDep):
    return service.create(data)


@router.get("/overdue", response_model=list[Loan])
def overdue_loans(service: LoanServiceDep):
    """OVERDUE loans plus ACTIVE loans already past their due date."""
    return service.find_overdue()


@router.patch("/update-overdue", response_model=SweepResult)
def update_overdue_loans(sweeper: SweeperDep):
    """Run the overdue sweep for today."""
    return sweeper.age_check()


@router.get("/member/{member_id}", response_model=list[Loan])
def loans_by_member(member_id: int, service: LoanServiceDep):
    return service.by_member(member_id)


@router.get("/book/{book_id}", response_model=list[Loan])
def loans_by_book(book_id: int, service: LoanServiceDep):
    return service.by_book(book_id)


@router.get("/status/{loan_status}", response_model=list[Loan])
def loans_by_status(loan_status: LoanStatus, service: LoanServiceDep):
    return service.by_status(loan_status)


@router.get("/date-range", response_model=list[Loan])
def loans_by_date_range(
    service: LoanServiceDep,
    start_date: Annotated[date, Query(alias="startDate")],
    end_date: Annotated[date, Query(alias="endDate")],
):
    """Loans whose loan date falls between ``startDate`` and ``endDate`` inclusive."""
    return service.by_date_range(start_date, end_date)


@router.get("/{loan_id}", response_model=Loan)
def get_loan(loan_id: int, service: LoanServiceDep):
    return service.get(loan_id)


@router.put("/{loan_id}", response_model=Loan)
def update_loan(loan_id: int, data: LoanUpdateSchema, service: LoanServiceDep):
    return service.update(loan_id, data)


@router.patch("/{loan_id}/return", response_model=Loan)
def return_loan(loan_id: int, service: LoanServiceDep):
    return service.return_loan(loan_id)


@router.delete("/{loan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_loan(loan_id: int, service: LoanServiceDep):
    service.delete(loan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
