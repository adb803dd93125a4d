"""Member repository for the Library Catalog service."""

from datetime import date

from pydantic import EmailStr, Field
from sqlalchemy import func, or_, select

from ..clock import Clock, SystemClock
from ..errors import MemberNotFoundError, ResourceInUseError, ValidationFailure
from ..models.base import CatalogModel
from ..models.member import PHONE_PATTERN, MembershipStatus
from ..models.member import Member as MemberModel
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Loan as LoanDB
from .schema import Member as MemberDB
from .schema import MembershipStatusEnum
from .session import safe_query


class MemberCreateSchema(CatalogModel):
    """Schema for registering a new member. ``membership_date`` defaults to today."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=20, pattern=PHONE_PATTERN)
    address: str | None = Field(None, max_length=200)
    membership_date: date | None = None
    status: MembershipStatus = MembershipStatus.ACTIVE


class MemberUpdateSchema(CatalogModel):
    """Schema for updating a member - all fields optional."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20, pattern=PHONE_PATTERN)
    address: str | None = Field(None, max_length=200)
    membership_date: date | None = None
    status: MembershipStatus | None = None


class MemberStatusUpdate(CatalogModel):
    status: MembershipStatus


class MemberRepository(
    BaseRepository[MemberDB, MemberCreateSchema, MemberUpdateSchema, MemberModel]
):
    """
    Repository for member data access.

    Membership dates are checked against the injected clock, so "today" is the
    same date the loan service uses.
    """

    not_found_error = MemberNotFoundError

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self.clock = clock or SystemClock()

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel

    def _check_membership_date(self, membership_date: date | None) -> None:
        if membership_date is not None and membership_date > self.clock.today():
            raise ValidationFailure("Membership date cannot be in the future")

    def _apply(self, db_obj: MemberDB, values: dict) -> None:
        if values.get("status") is not None:
            values["status"] = MembershipStatusEnum(values["status"].value)
        super()._apply(db_obj, values)

    def create(self, data: MemberCreateSchema) -> MemberModel:
        """
        Register a member.

        Raises:
            ValidationFailure: If ``membership_date`` is in the future
            DuplicateError: If the email is already registered
        """
        if data.membership_date is None:
            data = data.model_copy(update={"membership_date": self.clock.today()})
        self._check_membership_date(data.membership_date)
        return super().create(data)

    def update(self, id: int, data: MemberUpdateSchema) -> MemberModel:
        self._check_membership_date(data.membership_date)
        return super().update(id, data)

    def update_status(self, id: int, status: MembershipStatus) -> MemberModel:
        """Change a member's status (activate, suspend or expire)."""
        return super().update(id, MemberUpdateSchema(status=status))

    def _check_can_delete(self, db_obj: MemberDB) -> None:
        loans = self._count_where(LoanDB, LoanDB.member_id == db_obj.id)
        if loans:
            raise ResourceInUseError(f"Member {db_obj.id} has {loans} loan record(s)")

    def get_by_email(self, email: str) -> MemberModel:
        query = select(MemberDB).where(func.lower(MemberDB.email) == email.lower())
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get Member by email",
        )
        if db_obj is None:
            raise MemberNotFoundError(f"Member with email {email} not found")
        return self._to_response_model(db_obj)

    def search(
        self, keyword: str, pagination: PaginationParams
    ) -> PaginatedResponse[MemberModel]:
        """Case-insensitive match on first name, last name or email."""
        term = f"%{keyword.lower()}%"
        query = (
            select(MemberDB)
            .where(
                or_(
                    func.lower(MemberDB.first_name).like(term),
                    func.lower(MemberDB.last_name).like(term),
                    func.lower(MemberDB.email).like(term),
                )
            )
            .order_by(MemberDB.last_name, MemberDB.first_name, MemberDB.id)
        )
        return self._paginate(query, pagination)

    def get_by_status(
        self, status: MembershipStatus, pagination: PaginationParams
    ) -> PaginatedResponse[MemberModel]:
        query = (
            select(MemberDB)
            .where(MemberDB.status == MembershipStatusEnum(status.value))
            .order_by(MemberDB.last_name, MemberDB.first_name, MemberDB.id)
        )
        return self._paginate(query, pagination)
