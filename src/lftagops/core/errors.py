"""Error taxonomy for LF-Tag association reconciliation.

Every exception raised by the core derives from LFTagError so frontends
(CLI, automation) can catch one base type. Validation errors are also
ValueErrors, matching how the rest of the core signals bad input.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from lftagops.core.association import FailureItem


class LFTagError(Exception):
    """Base class for all lftagops errors."""


class ValidationError(LFTagError, ValueError):
    """Raised when a resource reference or tag set is malformed."""


class MutuallyExclusiveVariantError(ValidationError):
    """Zero or more than one resource variant was supplied."""


class IncompleteVariantError(ValidationError):
    """A required field of a resource variant is missing."""


class EmptyColumnSetError(ValidationError):
    """A table-with-columns reference has no column names."""


class InvalidCatalogIdError(ValidationError):
    """A catalog id is not a 12-digit AWS account id."""


class InvalidTagKeyError(ValidationError):
    """A tag key is empty or longer than 128 characters."""


class InvalidTagValueError(ValidationError):
    """A tag value is empty, too long or uses disallowed characters."""


class EmptyValueSetError(ValidationError):
    """A tag pair carries no values."""


class TooManyTagsError(ValidationError):
    """A tag set holds more than 50 pairs."""


class TooManyTagValuesError(ValidationError):
    """A tag pair carries more values than the configured per-key cap."""


class DuplicateTagKeyError(ValidationError):
    """A tag key appears more than once in the same tag set."""


class RemoteServiceError(LFTagError):
    """
    Error returned by the remote tagging service.

    Attributes:
        code: Service error code (e.g. ``ConcurrentModificationException``).
        message: Service error message, verbatim.
        operation: Remote operation that failed.
    """

    def __init__(self, code: str, message: str, operation: str = "") -> None:
        self.code = code
        self.message = message
        self.operation = operation
        where = f" during {operation}" if operation else ""
        super().__init__(f"{code}{where}: {message}")


class RetryBudgetExhaustedError(LFTagError):
    """Raised when an operation keeps failing after its retry window closes."""

    def __init__(self, operation: str, attempts: int, last_error: Exception) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempt(s): {last_error}"
        )


class OperationCancelledError(LFTagError):
    """Raised when a cancel signal interrupts an in-progress operation."""

    def __init__(self, operation: str, attempts: int) -> None:
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"{operation} cancelled after {attempts} attempt(s)")


class PartialOperationError(LFTagError):
    """Base for responses that list per-tag failures."""

    verb = "processing"

    def __init__(self, resource: str, failures: Iterable[FailureItem]) -> None:
        self.resource = resource
        self.failures = list(failures)
        details = "; ".join(str(f) for f in self.failures)
        super().__init__(
            f"{len(self.failures)} failure(s) when {self.verb} LF-Tags "
            f"on {resource}: {details}"
        )


class PartialApplyError(PartialOperationError):
    """AddLFTagsToResource reported per-tag failures."""

    verb = "adding"


class PartialRemoveError(PartialOperationError):
    """RemoveLFTagsFromResource reported per-tag failures."""

    verb = "removing"


class ConsistencyError(LFTagError):
    """Remote state contradicts an invariant the core relies on."""


class InconsistentColumnTagsError(ConsistencyError):
    """Columns of a table-with-columns association carry different tags."""

    def __init__(self, reference_column: str, divergent_columns: list[str]) -> None:
        self.reference_column = reference_column
        self.divergent_columns = divergent_columns
        super().__init__(
            "Expected common LF-Tags for all columns, but "
            f"{', '.join(divergent_columns)} differ from {reference_column}"
        )
