"""
Failure Envelope: unified response classification.

Every user-visible failure is classified and explained. Known failures are
raised as ``KnownError`` subclasses and rendered by the application-level
exception handler as an ``ApiResponse`` with the error's status code.

Unexpected exceptions are rendered as an unknown failure with status 500.

Response types:
- KnownFailure: System knows why it failed
- UnknownFailure: System does not know why it failed

Degraded data (price not available, no artwork) is NOT a failure. Those
outcomes are returned as explicit ``None`` values with a note.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"

    # Identifier translation
    UNMAPPED_IDENTIFIER = "unmapped_identifier"

    # Business rule conflicts
    DUPLICATE_CARD = "duplicate_card"
    CONCURRENT_MODIFICATION = "concurrent_modification"

    # Service failures
    SERVICE_UNAVAILABLE = "service_unavailable"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Machine-readable data the caller can act on",
    )


class ApiResponse(BaseModel):
    """Response envelope used for failures surfaced by the API."""

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    failure: FailureDetail = Field(
        ...,
        description="Failure details",
    )

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> "ApiResponse":
        """
        Create a known failure response.

        Use when the system knows exactly why the operation failed.
        Example: Card not found, duplicate card, pricing key missing.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
                context=context or {},
            ),
        )

    @classmethod
    def unknown_failure(
        cls,
        detail: str | None = None,
    ) -> "ApiResponse":
        """
        Create an unknown failure response.

        The message is fixed. Only the technical detail varies.
        """
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNKNOWN,
                message="Something went wrong and the cause is unknown. Please retry.",
                detail=detail,
                suggestion="If this persists, please report the issue.",
            ),
        )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
        context: dict[str, Any] | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        self.context = context or {}
        super().__init__(message)

    def to_response(self) -> ApiResponse:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            context=self.context,
        )


class ServiceNotConfiguredError(KnownError):
    """
    Raised when a provider credential is absent.

    Not retried: the condition persists until the deployment is fixed.
    """

    def __init__(self, setting_name: str) -> None:
        self.setting_name = setting_name
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message="Pricing service is not configured.",
            detail=f"{setting_name} is not set",
            suggestion="Set the missing credential and restart the service.",
            status_code=503,
        )


class UnmappedSetError(KnownError):
    """Raised when a set ID has no counterpart in the target vocabulary."""

    def __init__(self, set_id: str, source: str, target: str) -> None:
        self.set_id = set_id
        self.source = source
        self.target = target
        super().__init__(
            kind=FailureKind.UNMAPPED_IDENTIFIER,
            message=f"Set '{set_id}' could not be resolved.",
            detail=f"No {source} -> {target} mapping for '{set_id}'",
            suggestion="Select the set from the sets list instead.",
            status_code=422,
            context={"set_id": set_id, "source": source, "target": target},
        )


class DuplicateCardError(KnownError):
    """
    Raised when an added card already exists in the portfolio.

    Carries the existing card's ID and quantity so the caller can offer
    to merge quantities instead of showing a generic error.
    """

    def __init__(self, existing_card_id: str, existing_quantity: int, card_name: str) -> None:
        self.existing_card_id = existing_card_id
        self.existing_quantity = existing_quantity
        super().__init__(
            kind=FailureKind.DUPLICATE_CARD,
            message="This card is already in your portfolio",
            detail=f"{card_name} exists with quantity {existing_quantity}",
            suggestion="Increase the quantity of the existing card instead.",
            status_code=409,
            context={
                "existing_card_id": existing_card_id,
                "existing_quantity": existing_quantity,
            },
        )


class CardNotFoundError(KnownError):
    """Raised when a card ID is not present in a user's portfolio."""

    def __init__(self, card_id: str) -> None:
        self.card_id = card_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message="Card not found in portfolio",
            detail=f"card_id={card_id}",
            status_code=404,
        )


class InvalidCardNumberError(KnownError):
    """Raised when a card number does not match any known format."""

    def __init__(self, number: str) -> None:
        self.number = number
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message="Invalid card number format.",
            detail=f"number={number!r}",
            suggestion="Examples: 25/102, TG20, SV001/SV198, V001, VMAX045",
            status_code=400,
        )


class PortfolioConflictError(KnownError):
    """Raised when concurrent writes keep invalidating a portfolio update."""

    def __init__(self, user_id: str, attempts: int) -> None:
        self.user_id = user_id
        self.attempts = attempts
        super().__init__(
            kind=FailureKind.CONCURRENT_MODIFICATION,
            message="Your portfolio was modified by another request.",
            detail=f"Gave up after {attempts} attempts",
            suggestion="Reload your portfolio and try again.",
            status_code=409,
        )
