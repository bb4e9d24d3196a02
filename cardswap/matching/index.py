"""
Inverted card index.

Maps each card id to the profiles offering or seeking it, so scoring only
visits counterparts that share at least one card with the owner.
"""

from collections.abc import Iterable

from cardswap.models.holdings import ProfileHoldings


class CardIndex:
    """card id -> {profile id: quantity}, kept separately for HAVE and WANT."""

    def __init__(self) -> None:
        self._holders: dict[str, dict[str, int]] = {}
        self._seekers: dict[str, dict[str, int]] = {}

    @classmethod
    def build(cls, population: Iterable[ProfileHoldings]) -> "CardIndex":
        index = cls()
        for entry in population:
            index.add(entry)
        return index

    def add(self, entry: ProfileHoldings) -> None:
        """Index one profile's holdings."""
        for card_id, quantity in entry.holdings.have.items():
            self._holders.setdefault(card_id, {})[entry.profile_id] = quantity
        for card_id, quantity in entry.holdings.want.items():
            self._seekers.setdefault(card_id, {})[entry.profile_id] = quantity

    def holders_of(self, card_id: str) -> dict[str, int]:
        """Profiles with the card on their HAVE list, and how many they offer."""
        return self._holders.get(card_id, {})

    def seekers_of(self, card_id: str) -> dict[str, int]:
        """Profiles with the card on their WANT list, and how many they seek."""
        return self._seekers.get(card_id, {})
