from pokevault.models.card import (
    CardIdentity,
    PortfolioCard,
    SetVocabulary,
    parse_card_number,
    validate_card_number,
)
from pokevault.models.failure import (
    ApiResponse,
    CardNotFoundError,
    DuplicateCardError,
    FailureDetail,
    FailureKind,
    InvalidCardNumberError,
    KnownError,
    OutcomeType,
    PortfolioConflictError,
    ServiceNotConfiguredError,
    UnmappedSetError,
)
from pokevault.models.pricing import (
    CATEGORY_COLORS,
    PriceCategory,
    PriceHistory,
    PriceObservation,
    PriceResult,
)

__all__ = [
    "ApiResponse",
    "CATEGORY_COLORS",
    "CardIdentity",
    "CardNotFoundError",
    "DuplicateCardError",
    "FailureDetail",
    "FailureKind",
    "InvalidCardNumberError",
    "KnownError",
    "OutcomeType",
    "PortfolioCard",
    "PortfolioConflictError",
    "PriceCategory",
    "PriceHistory",
    "PriceObservation",
    "PriceResult",
    "ServiceNotConfiguredError",
    "SetVocabulary",
    "UnmappedSetError",
    "parse_card_number",
    "validate_card_number",
]
