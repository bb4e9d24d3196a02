"""
Notification endpoints.

Backs the notification bell: unread badge, dropdown list and
acknowledgement. Reads return stored records as they are; pass
refresh=true to reconcile first.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cardswap.api.matches import CounterpartResponse
from cardswap.config import NOTIFICATION_LIST_HARD_LIMIT
from cardswap.db import require_profile
from cardswap.db.database import get_session
from cardswap.matching import (
    list_matches,
    mark_all_read,
    mark_read,
    reconcile_matches,
    unread_count,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    """A stored match record as shown in the dropdown."""

    id: int
    counterpart: CounterpartResponse
    match_count: int
    is_new: bool
    created_at: datetime
    updated_at: datetime


class NotificationListResponse(BaseModel):
    """Response model for the notification dropdown."""

    owner_id: str
    unread_count: int
    new_matches: int = Field(
        default=0,
        description="Records newly flagged unread by a refresh; 0 without refresh",
    )
    notifications: list[NotificationResponse] = Field(default_factory=list)


class UnreadCountResponse(BaseModel):
    """Response model for the notification badge."""

    owner_id: str
    unread_count: int


class MarkReadResponse(BaseModel):
    """Response model for acknowledging one record."""

    match_id: int
    updated: bool


class MarkAllReadResponse(BaseModel):
    """Response model for acknowledging every record."""

    owner_id: str
    updated: int


@router.get("/{owner_id}", response_model=NotificationListResponse)
async def get_notifications(
    owner_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    refresh: bool = False,
    limit: Annotated[int | None, Query(ge=1, le=NOTIFICATION_LIST_HARD_LIMIT)] = None,
) -> NotificationListResponse:
    """List the owner's match records, newest first."""
    await require_profile(session, owner_id)

    new_matches = await reconcile_matches(session, owner_id) if refresh else 0
    records = await list_matches(session, owner_id, limit)

    return NotificationListResponse(
        owner_id=owner_id,
        unread_count=await unread_count(session, owner_id),
        new_matches=new_matches,
        notifications=[
            NotificationResponse(
                id=record.id,
                counterpart=CounterpartResponse(
                    id=record.counterpart.id,
                    display_name=record.counterpart.display_name,
                    username=record.counterpart.username,
                    contact_info=record.counterpart.contact_info,
                    trading_locations=record.counterpart.trading_locations,
                ),
                match_count=record.match_count,
                is_new=record.is_new,
                created_at=record.created_at,
                updated_at=record.updated_at,
            )
            for record in records
        ],
    )


@router.get("/{owner_id}/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    owner_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> UnreadCountResponse:
    """Number of unacknowledged match records. Does not recompute."""
    count = await unread_count(session, owner_id)
    return UnreadCountResponse(owner_id=owner_id, unread_count=count)


@router.post("/{owner_id}/read-all", response_model=MarkAllReadResponse)
async def acknowledge_all(
    owner_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MarkAllReadResponse:
    """Mark every unread record of the owner as read."""
    return MarkAllReadResponse(owner_id=owner_id, updated=await mark_all_read(session, owner_id))


@router.post("/{owner_id}/{match_id}/read", response_model=MarkReadResponse)
async def acknowledge_match(
    owner_id: str,
    match_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MarkReadResponse:
    """
    Mark one record as read.

    Returns 404 for an unknown record and 403 when the record belongs to
    another owner.
    """
    updated = await mark_read(session, match_id, owner_id)
    return MarkReadResponse(match_id=match_id, updated=updated)
