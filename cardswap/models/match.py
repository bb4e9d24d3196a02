"""
Matching domain models.

MatchResult and MatchedCardDetail are transient: they are recomputed on
every query and never stored. The persisted form is MatchRecordDB.
"""

from dataclasses import dataclass, field
from enum import Enum

from cardswap.models.card import Card


class MatchDirection(str, Enum):
    """Which side of the trade a matched card is on, from the owner's view."""

    OWNER_WANTS = "owner_wants"  # counterpart has it, owner wants it
    OWNER_HAS = "owner_has"  # owner has it, counterpart wants it


@dataclass
class MatchedCardDetail:
    """One card contributing to a match score."""

    card_id: str
    have_quantity: int
    want_quantity: int
    direction: MatchDirection
    card: Card | None = None

    @property
    def matched_quantity(self) -> int:
        """Copies that can actually change hands."""
        return min(self.have_quantity, self.want_quantity)


@dataclass
class CounterpartSummary:
    """Display payload for the other side of a match."""

    id: str
    display_name: str
    username: str | None = None
    contact_info: str = ""
    trading_locations: str | None = None


@dataclass
class MatchResult:
    """A scored overlap between the owner and one counterpart."""

    counterpart_id: str
    match_count: int
    matched_cards: list[MatchedCardDetail] = field(default_factory=list)
    counterpart: CounterpartSummary | None = None


@dataclass(frozen=True)
class NewMatchRecord:
    """Values for a match record about to be inserted."""

    owner_id: str
    counterpart_id: str
    match_count: int
    is_new: bool = True
