from dataclasses import dataclass, field
from enum import Enum


class HoldingRole(str, Enum):
    """Which list a holding belongs to."""

    HAVE = "have"
    WANT = "want"


def normalize_quantity(quantity: int | None) -> int:
    """Missing or non-positive quantities count as a single copy."""
    if quantity is None or quantity <= 0:
        return 1
    return quantity


@dataclass
class Holdings:
    """
    A profile's HAVE and WANT lists.

    Both maps are keyed by card id with the quantity offered or sought.
    """

    have: dict[str, int] = field(default_factory=dict)
    want: dict[str, int] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """True when the profile neither offers nor seeks anything."""
        return not self.have and not self.want

    def card_ids(self) -> set[str]:
        """Every card id appearing in either list."""
        return set(self.have) | set(self.want)

    def add(self, role: HoldingRole, card_id: str, quantity: int | None) -> None:
        """Record a holding, normalizing its quantity."""
        target = self.have if role is HoldingRole.HAVE else self.want
        target[card_id] = normalize_quantity(quantity)


@dataclass
class ProfileHoldings:
    """Holdings tagged with the profile they belong to."""

    profile_id: str
    holdings: Holdings = field(default_factory=Holdings)
