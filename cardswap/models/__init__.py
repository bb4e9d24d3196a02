from cardswap.models.card import Card
from cardswap.models.errors import (
    CardSwapError,
    ErrorKind,
    HoldingsFetchError,
    MatchFetchError,
    MatchNotFoundError,
    MatchPersistError,
    ProfileNotFoundError,
    UnauthorizedMutationError,
)
from cardswap.models.holdings import HoldingRole, Holdings, ProfileHoldings, normalize_quantity
from cardswap.models.match import (
    CounterpartSummary,
    MatchDirection,
    MatchedCardDetail,
    MatchResult,
    NewMatchRecord,
)

__all__ = [
    "Card",
    "CardSwapError",
    "CounterpartSummary",
    "ErrorKind",
    "HoldingRole",
    "Holdings",
    "HoldingsFetchError",
    "MatchDirection",
    "MatchFetchError",
    "MatchNotFoundError",
    "MatchPersistError",
    "MatchResult",
    "MatchedCardDetail",
    "NewMatchRecord",
    "ProfileHoldings",
    "ProfileNotFoundError",
    "UnauthorizedMutationError",
    "normalize_quantity",
]
