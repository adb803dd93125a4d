"""
Member model for the Library Catalog service.

Members borrow books. Only ACTIVE members pass the member gate; SUSPENDED and
EXPIRED members keep their history but cannot originate new loans.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import EmailStr, Field

from .base import CatalogModel


class MembershipStatus(str, Enum):
    """Enumeration of possible membership statuses."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"


PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


class Member(CatalogModel):
    """Represents a library member."""

    id: int

    first_name: str = Field(..., max_length=100, examples=["Maria"])

    last_name: str = Field(..., max_length=100, examples=["Garcia"])

    email: EmailStr = Field(..., examples=["maria.garcia@example.com"])

    phone: str | None = Field(None, max_length=20, examples=["+15551234567"])

    address: str | None = Field(None, max_length=200)

    membership_date: date

    status: MembershipStatus = MembershipStatus.ACTIVE

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class MemberSummary(CatalogModel):
    """Member fields embedded in loan responses."""

    id: int
    first_name: str
    last_name: str
    email: str
