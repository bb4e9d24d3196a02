"""
Match endpoints.

Trigger reconciliation for an owner and expose the calculator's live
output, including the read-only overlap shown on another profile's page.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cardswap.db import require_profile
from cardswap.db.database import get_session
from cardswap.matching import compute_matches, compute_pair_match, refresh_notifications
from cardswap.models.match import CounterpartSummary, MatchDirection, MatchResult

router = APIRouter(prefix="/matches", tags=["matches"])


class CardResponse(BaseModel):
    """Display payload for a card."""

    id: str
    name: str
    display_name: str = Field(..., description="Name with set code and collector number")
    set_code: str | None = None
    collector_number: str | None = None
    image_url: str | None = None
    rarity: str | None = None


class MatchedCardResponse(BaseModel):
    """One card contributing to a match."""

    card_id: str
    card: CardResponse | None = None
    have_quantity: int
    want_quantity: int
    direction: MatchDirection = Field(
        ...,
        description="owner_wants: they have it and you want it; "
        "owner_has: you have it and they want it",
    )


class CounterpartResponse(BaseModel):
    """The other side of a match."""

    id: str
    display_name: str
    username: str | None = None
    contact_info: str = ""
    trading_locations: str | None = None


class MatchResponse(BaseModel):
    """A scored overlap with one counterpart."""

    counterpart_id: str
    counterpart: CounterpartResponse | None = None
    match_count: int
    matched_cards: list[MatchedCardResponse] = Field(default_factory=list)


class MatchListResponse(BaseModel):
    """Response model for live matches."""

    owner_id: str
    matches: list[MatchResponse] = Field(default_factory=list)


class PairMatchResponse(BaseModel):
    """Response model for the overlap between two profiles."""

    owner_id: str
    counterpart_id: str
    match_count: int = 0
    matched_cards: list[MatchedCardResponse] = Field(default_factory=list)


class ReconcileResponse(BaseModel):
    """Response model for a reconciliation run."""

    owner_id: str
    new_matches: int = Field(..., description="Records newly flagged unread by this run")
    unread_count: int


def counterpart_to_response(summary: CounterpartSummary | None) -> CounterpartResponse | None:
    if summary is None:
        return None
    return CounterpartResponse(
        id=summary.id,
        display_name=summary.display_name,
        username=summary.username,
        contact_info=summary.contact_info,
        trading_locations=summary.trading_locations,
    )


def _matched_cards(match: MatchResult) -> list[MatchedCardResponse]:
    return [
        MatchedCardResponse(
            card_id=detail.card_id,
            card=(
                CardResponse(
                    id=detail.card.id,
                    name=detail.card.name,
                    display_name=detail.card.display_name(),
                    set_code=detail.card.set_code,
                    collector_number=detail.card.collector_number,
                    image_url=detail.card.image_url,
                    rarity=detail.card.rarity,
                )
                if detail.card is not None
                else None
            ),
            have_quantity=detail.have_quantity,
            want_quantity=detail.want_quantity,
            direction=detail.direction,
        )
        for detail in match.matched_cards
    ]


@router.post("/{owner_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_owner_matches(
    owner_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ReconcileResponse:
    """
    Recompute the owner's matches and store the differences.

    Called on profile page load and when the notification bell opens.
    """
    await require_profile(session, owner_id)
    summary = await refresh_notifications(session, owner_id)
    return ReconcileResponse(
        owner_id=owner_id,
        new_matches=summary.new_matches,
        unread_count=summary.unread_count,
    )


@router.get("/{owner_id}", response_model=MatchListResponse)
async def get_live_matches(
    owner_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MatchListResponse:
    """
    Compute the owner's current matches with card details.

    Read-only: stored match records are not touched.
    """
    await require_profile(session, owner_id)
    matches = await compute_matches(session, owner_id)
    return MatchListResponse(
        owner_id=owner_id,
        matches=[
            MatchResponse(
                counterpart_id=m.counterpart_id,
                counterpart=counterpart_to_response(m.counterpart),
                match_count=m.match_count,
                matched_cards=_matched_cards(m),
            )
            for m in matches
        ],
    )


@router.get("/{owner_id}/with/{counterpart_id}", response_model=PairMatchResponse)
async def get_pair_match(
    owner_id: str,
    counterpart_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PairMatchResponse:
    """
    Overlap between the owner and a profile they are viewing.

    Nothing is persisted. match_count is 0 when there is no overlap.
    """
    await require_profile(session, owner_id)
    await require_profile(session, counterpart_id)

    match = await compute_pair_match(session, owner_id, counterpart_id)
    if match is None:
        return PairMatchResponse(owner_id=owner_id, counterpart_id=counterpart_id)

    return PairMatchResponse(
        owner_id=owner_id,
        counterpart_id=counterpart_id,
        match_count=match.match_count,
        matched_cards=_matched_cards(match),
    )
