"""
Match calculation.

Scores how well each other profile's HAVE/WANT lists complement the
owner's WANT/HAVE lists. A card counts at most once per counterpart, and
contributes the number of copies that could actually change hands.

calculate_matches is pure; compute_matches loads a holdings snapshot and
never writes anything.
"""

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from cardswap.config import MATCH_POPULATION_HARD_LIMIT, settings
from cardswap.db.operations import (
    get_cards,
    get_counterpart_holdings,
    get_holdings,
    get_profiles,
    list_all_profiles_with_holdings,
)
from cardswap.matching.index import CardIndex
from cardswap.models.errors import HoldingsFetchError
from cardswap.models.holdings import Holdings, ProfileHoldings
from cardswap.models.match import (
    CounterpartSummary,
    MatchDirection,
    MatchedCardDetail,
    MatchResult,
)

logger = logging.getLogger(__name__)


def calculate_matches(
    owner: Holdings,
    population: Iterable[ProfileHoldings],
    owner_id: str | None = None,
) -> list[MatchResult]:
    """
    Score every counterpart in the population against the owner.

    Args:
        owner: The owner's HAVE and WANT lists
        population: Other profiles' holdings (full or restricted to shared cards)
        owner_id: Excluded from the population if present

    Returns:
        Matches with a non-zero score, highest score first, ties by counterpart id
    """
    if owner.is_empty():
        return []

    index = CardIndex.build(p for p in population if p.profile_id != owner_id)

    scores: dict[str, int] = {}
    details: dict[str, list[MatchedCardDetail]] = {}
    matched_ids: dict[str, set[str]] = {}

    def record(counterpart_id: str, detail: MatchedCardDetail) -> None:
        seen = matched_ids.setdefault(counterpart_id, set())
        if detail.card_id in seen:
            return
        seen.add(detail.card_id)
        scores[counterpart_id] = scores.get(counterpart_id, 0) + detail.matched_quantity
        details.setdefault(counterpart_id, []).append(detail)

    # Owner wants what the counterpart has
    for card_id, want_qty in owner.want.items():
        for counterpart_id, have_qty in index.holders_of(card_id).items():
            record(
                counterpart_id,
                MatchedCardDetail(
                    card_id=card_id,
                    have_quantity=have_qty,
                    want_quantity=want_qty,
                    direction=MatchDirection.OWNER_WANTS,
                ),
            )

    # Owner has what the counterpart wants
    for card_id, have_qty in owner.have.items():
        for counterpart_id, want_qty in index.seekers_of(card_id).items():
            record(
                counterpart_id,
                MatchedCardDetail(
                    card_id=card_id,
                    have_quantity=have_qty,
                    want_quantity=want_qty,
                    direction=MatchDirection.OWNER_HAS,
                ),
            )

    results = [
        MatchResult(
            counterpart_id=counterpart_id,
            match_count=score,
            matched_cards=details[counterpart_id],
        )
        for counterpart_id, score in scores.items()
        if score > 0
    ]
    results.sort(key=lambda m: (-m.match_count, m.counterpart_id))
    return results


async def load_population(
    session: AsyncSession, owner_id: str, owner: Holdings
) -> list[ProfileHoldings]:
    """
    Load the holdings the calculator needs for this owner.

    With the card index enabled only profiles sharing a card are fetched;
    otherwise up to match_population_limit profiles are scanned.
    """
    if settings.use_card_index:
        return await get_counterpart_holdings(session, owner_id, owner.card_ids())

    limit = min(settings.match_population_limit, MATCH_POPULATION_HARD_LIMIT)
    return await list_all_profiles_with_holdings(session, owner_id, limit)


async def compute_fresh_matches(session: AsyncSession, owner_id: str) -> list[MatchResult]:
    """
    Compute an owner's matches from current holdings.

    Raises HoldingsFetchError if holdings cannot be loaded.
    """
    owner = await get_holdings(session, owner_id)
    if owner.is_empty():
        logger.debug("Profile %s has no holdings, skipping population scan", owner_id)
        return []

    population = await load_population(session, owner_id, owner)
    return calculate_matches(owner, population, owner_id=owner_id)


async def attach_display(session: AsyncSession, matches: list[MatchResult]) -> None:
    """Fill in card and counterpart display payloads."""
    if not matches:
        return

    card_ids = {d.card_id for m in matches for d in m.matched_cards}
    cards = await get_cards(session, card_ids)
    profiles = await get_profiles(session, (m.counterpart_id for m in matches))

    for match in matches:
        for detail in match.matched_cards:
            detail.card = cards.get(detail.card_id)
        profile = profiles.get(match.counterpart_id)
        if profile is not None:
            match.counterpart = CounterpartSummary(
                id=profile.id,
                display_name=profile.display_name,
                username=profile.username,
                contact_info=profile.contact_info,
                trading_locations=profile.trading_locations,
            )


async def compute_matches(session: AsyncSession, owner_id: str) -> list[MatchResult]:
    """
    Compute an owner's matches with card and profile details.

    Read-only. Returns an empty list if holdings cannot be loaded.
    """
    try:
        matches = await compute_fresh_matches(session, owner_id)
        await attach_display(session, matches)
    except HoldingsFetchError as e:
        logger.warning("Could not compute matches for %s: %s", owner_id, e.message)
        return []
    return matches


async def compute_pair_match(
    session: AsyncSession, owner_id: str, counterpart_id: str
) -> MatchResult | None:
    """
    Compute the overlap between the owner and one other profile.

    Used when the owner views someone's profile. Nothing is persisted.
    Returns None when there is no overlap or holdings cannot be loaded.
    """
    if owner_id == counterpart_id:
        return None

    try:
        owner = await get_holdings(session, owner_id)
        if owner.is_empty():
            return None
        other = await get_holdings(session, counterpart_id)
        matches = calculate_matches(
            owner, [ProfileHoldings(profile_id=counterpart_id, holdings=other)], owner_id=owner_id
        )
        await attach_display(session, matches)
    except HoldingsFetchError as e:
        logger.warning(
            "Could not compute overlap between %s and %s: %s", owner_id, counterpart_id, e.message
        )
        return None

    return matches[0] if matches else None
