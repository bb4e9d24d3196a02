"""
Profile and holdings endpoints.

A thin write path standing in for the profile editing flows: the matching
engine reads what these endpoints store. Holdings changes do not reconcile
anyone's matches; owners pick them up on their next reconciliation.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cardswap.db import (
    create_profile,
    delete_profile,
    get_cards,
    replace_holdings,
    require_profile,
)
from cardswap.db.database import get_session

router = APIRouter(prefix="/profiles", tags=["profiles"])


class ProfileCreateRequest(BaseModel):
    """Request model for creating a profile."""

    user_id: str = Field(..., min_length=1, max_length=255)
    display_name: str = Field(..., min_length=1, max_length=100)
    contact_info: str = Field(default="", max_length=500)
    trading_locations: str | None = Field(default=None, max_length=500)
    username: str | None = Field(default=None, min_length=3, max_length=30)


class ProfileResponse(BaseModel):
    """Response model for profile data."""

    id: str
    user_id: str
    username: str | None = None
    display_name: str
    contact_info: str = ""
    trading_locations: str | None = None
    last_match_check: datetime | None = None


class HoldingsUpdateRequest(BaseModel):
    """Request model for replacing HAVE and WANT lists."""

    have: dict[str, int] = Field(
        default_factory=dict,
        description="Map of card ids offered to quantities",
        examples=[{"OGN-001": 2}],
    )
    want: dict[str, int] = Field(
        default_factory=dict,
        description="Map of card ids sought to quantities",
        examples=[{"OGN-042": 1}],
    )


class HoldingsResponse(BaseModel):
    """Response model for a profile's holdings."""

    profile_id: str
    have: dict[str, int] = Field(default_factory=dict)
    want: dict[str, int] = Field(default_factory=dict)


class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    profile_id: str
    deleted: bool


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_user_profile(
    request: ProfileCreateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ProfileResponse:
    """Create a trading profile for a user."""
    try:
        profile = await create_profile(
            session,
            user_id=request.user_id,
            display_name=request.display_name.strip(),
            contact_info=request.contact_info.strip(),
            trading_locations=request.trading_locations,
            username=request.username,
        )
    except IntegrityError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A profile already exists for this user or username",
        ) from e

    return ProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        username=profile.username,
        display_name=profile.display_name,
        contact_info=profile.contact_info,
        trading_locations=profile.trading_locations,
        last_match_check=profile.last_match_check,
    )


@router.put("/{profile_id}/holdings", response_model=HoldingsResponse)
async def update_holdings(
    profile_id: str,
    request: HoldingsUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HoldingsResponse:
    """
    Replace a profile's HAVE and WANT lists.

    Every card id must exist and every quantity must be positive.
    """
    await require_profile(session, profile_id)

    for card_id, qty in (*request.have.items(), *request.want.items()):
        if qty <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Quantity for '{card_id}' must be positive",
            )

    requested = set(request.have) | set(request.want)
    known = await get_cards(session, requested)
    unknown = sorted(requested - set(known))
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown card ids: {', '.join(unknown)}",
        )

    holdings = await replace_holdings(session, profile_id, request.have, request.want)
    return HoldingsResponse(profile_id=profile_id, have=holdings.have, want=holdings.want)


@router.delete("/{profile_id}", response_model=DeleteResponse)
async def delete_user_profile(
    profile_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """
    Delete a profile.

    Removes its holdings and every match record naming it, on both sides.
    """
    deleted = await delete_profile(session, profile_id)
    return DeleteResponse(profile_id=profile_id, deleted=deleted)
