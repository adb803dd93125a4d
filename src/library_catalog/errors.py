"""
Error taxonomy for the Library Catalog service.

Every failure the service reports to a client is one of these exceptions.
Each class carries a stable ``code`` (clients branch on it) and the HTTP
``status`` the API layer answers with:

- NotFoundError (404): a referenced book, member, loan, author or category
  does not exist
- ConflictError (409): a business rule rejected the operation
- ValidationFailure (400): input is well-formed JSON but semantically invalid
- RepositoryException (500): anything else that went wrong in the data layer
"""


class RepositoryException(Exception):
    """Base exception for repository and service operations."""

    code = "DATABASE_ERROR"
    status = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return cls.__doc__.strip().splitlines()[0] if cls.__doc__ else cls.__name__

    @property
    def message(self) -> str:
        return str(self)


# === NotFound ===


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""

    code = "NOT_FOUND"
    status = 404


class BookNotFoundError(NotFoundError):
    """Book not found."""

    code = "BOOK_NOT_FOUND"


class MemberNotFoundError(NotFoundError):
    """Member not found."""

    code = "MEMBER_NOT_FOUND"


class LoanNotFoundError(NotFoundError):
    """Loan not found."""

    code = "LOAN_NOT_FOUND"


class AuthorNotFoundError(NotFoundError):
    """Author not found."""

    code = "AUTHOR_NOT_FOUND"


class CategoryNotFoundError(NotFoundError):
    """Category not found."""

    code = "CATEGORY_NOT_FOUND"


# === Conflict ===


class ConflictError(RepositoryException):
    """Raised when a business rule rejects an operation."""

    code = "CONFLICT"
    status = 409


class DuplicateError(ConflictError):
    """Raised when attempting to create a duplicate entity."""

    code = "DUPLICATE_RESOURCE"


class MemberNotActiveError(ConflictError):
    """Member is not active and cannot borrow books."""

    code = "MEMBER_NOT_ACTIVE"


class LoanLimitExceededError(ConflictError):
    """Member has reached the maximum number of active loans."""

    code = "LOAN_LIMIT_EXCEEDED"


class BookUnavailableError(ConflictError):
    """Book is not available for loan."""

    code = "BOOK_UNAVAILABLE"


class LoanAlreadyReturnedError(ConflictError):
    """Loan has already been returned."""

    code = "LOAN_ALREADY_RETURNED"


class InvalidCopyCountError(ConflictError):
    """Available copies must stay between 0 and total copies."""

    code = "INVALID_COPY_COUNT"


class InvalidLoanTransitionError(ConflictError):
    """Loan status change is not allowed."""

    code = "INVALID_LOAN_TRANSITION"


class ResourceInUseError(ConflictError):
    """Entity is still referenced and cannot be deleted."""

    code = "RESOURCE_IN_USE"


# === Validation ===


class ValidationFailure(RepositoryException):
    """Request data is invalid."""

    code = "VALIDATION_ERROR"
    status = 400


class UnsupportedOperationError(RepositoryException):
    """Operation is not available on this repository."""

    code = "UNSUPPORTED_OPERATION"
