from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Card:
    """
    A reference card.

    Attributes:
        id: Stable card identifier used as the matching key
        name: Card name as printed
        set_code: Set code (e.g., "OGN")
        collector_number: Collector number within set
        image_url: Card image, if known
        rarity: Rarity label, if known
    """

    id: str
    name: str
    set_code: str | None = None
    collector_number: str | None = None
    image_url: str | None = None
    rarity: str | None = None

    def display_name(self) -> str:
        """Name with set and collector number when available."""
        if self.set_code and self.collector_number:
            return f"{self.name} ({self.set_code} {self.collector_number})"
        return self.name
