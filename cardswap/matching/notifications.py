"""
Match notifications.

Read and acknowledge stored match records. Reads never recompute; callers
that want fresh data reconcile first (refresh_notifications does both).
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from cardswap.config import NOTIFICATION_LIST_HARD_LIMIT, settings
from cardswap.db.operations import (
    count_unread,
    get_match_record,
    list_match_records,
    mark_all_matches_read,
    mark_match_read,
)
from cardswap.matching.reconciler import reconcile_matches
from cardswap.models.db import MatchRecordDB
from cardswap.models.errors import (
    MatchFetchError,
    MatchNotFoundError,
    MatchPersistError,
    UnauthorizedMutationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationSummary:
    new_matches: int
    unread_count: int


async def unread_count(session: AsyncSession, owner_id: str) -> int:
    """Number of the owner's match records not yet acknowledged."""
    try:
        return await count_unread(session, owner_id)
    except MatchFetchError as e:
        logger.warning("Could not count unread matches for %s: %s", owner_id, e.message)
        return 0


async def list_matches(
    session: AsyncSession, owner_id: str, limit: int | None = None
) -> list[MatchRecordDB]:
    """The owner's match records with counterpart profiles, newest first."""
    effective = min(limit or settings.notification_list_limit, NOTIFICATION_LIST_HARD_LIMIT)
    try:
        return await list_match_records(session, owner_id, effective)
    except MatchFetchError as e:
        logger.warning("Could not list matches for %s: %s", owner_id, e.message)
        return []


async def mark_read(session: AsyncSession, match_id: int, owner_id: str) -> bool:
    """
    Acknowledge one match record.

    Raises:
        MatchNotFoundError: No record with this id
        UnauthorizedMutationError: The record belongs to another owner

    Returns:
        True if the record was updated
    """
    try:
        record = await get_match_record(session, match_id)
    except MatchFetchError as e:
        logger.warning("Could not load match %d: %s", match_id, e.message)
        return False

    if record is None:
        raise MatchNotFoundError(match_id)
    if record.owner_profile_id != owner_id:
        logger.warning("Profile %s tried to mark match %d it does not own", owner_id, match_id)
        raise UnauthorizedMutationError(match_id, owner_id)

    try:
        return await mark_match_read(session, match_id, owner_id) > 0
    except MatchPersistError as e:
        logger.error("Could not mark match %d read: %s", match_id, e.detail or e.message)
        return False


async def mark_all_read(session: AsyncSession, owner_id: str) -> int:
    """Acknowledge every unread record of the owner. Returns how many changed."""
    try:
        return await mark_all_matches_read(session, owner_id)
    except MatchPersistError as e:
        logger.error("Could not mark matches read for %s: %s", owner_id, e.detail or e.message)
        return 0


async def refresh_notifications(session: AsyncSession, owner_id: str) -> NotificationSummary:
    """Reconcile the owner's matches, then report the unread count."""
    new_matches = await reconcile_matches(session, owner_id)
    return NotificationSummary(
        new_matches=new_matches,
        unread_count=await unread_count(session, owner_id),
    )
