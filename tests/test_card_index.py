"""Tests for the inverted card index."""

from cardswap.matching.index import CardIndex
from cardswap.models.holdings import Holdings, ProfileHoldings


def _entry(profile_id: str, have=None, want=None) -> ProfileHoldings:
    holdings = Holdings(have=have or {}, want=want or {})
    return ProfileHoldings(profile_id=profile_id, holdings=holdings)


class TestCardIndex:
    def test_holders_and_seekers(self) -> None:
        index = CardIndex.build(
            [
                _entry("p1", have={"A": 2}, want={"B": 1}),
                _entry("p2", have={"A": 5, "B": 3}),
            ]
        )

        assert index.holders_of("A") == {"p1": 2, "p2": 5}
        assert index.holders_of("B") == {"p2": 3}
        assert index.seekers_of("B") == {"p1": 1}
        assert index.seekers_of("A") == {}

    def test_unknown_card(self) -> None:
        index = CardIndex.build([_entry("p1", have={"A": 1})])

        assert index.holders_of("Z") == {}
        assert index.seekers_of("Z") == {}

    def test_add_after_build(self) -> None:
        index = CardIndex()
        index.add(_entry("p1", have={"A": 1}))
        index.add(_entry("p2", have={"A": 4}))

        assert index.holders_of("A") == {"p1": 1, "p2": 4}
