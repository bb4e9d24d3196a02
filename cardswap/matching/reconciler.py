"""
Match reconciliation.

Keeps an owner's stored match records in step with freshly computed
matches. The diff is planned by a pure function and then applied one
operation at a time, so a failed write only loses that one operation; the
next reconciliation converges the rest.

Only the owner's own records are touched. A counterpart's record about the
owner stays stale until the counterpart reconciles.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from cardswap.db.operations import (
    delete_match_records,
    get_match_records,
    insert_match_records,
    touch_last_match_check,
    update_match_record,
)
from cardswap.matching.calculator import compute_fresh_matches
from cardswap.models.db import MatchRecordDB
from cardswap.models.errors import HoldingsFetchError, MatchFetchError, MatchPersistError
from cardswap.models.match import MatchResult, NewMatchRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchUpdate:
    """A staged change to an existing record."""

    match_id: int
    counterpart_id: str
    match_count: int
    is_new: bool
    resurfaced: bool  # is_new goes from False to True


@dataclass
class ReconciliationPlan:
    """The minimal set of writes that brings stored records up to date."""

    inserts: list[NewMatchRecord] = field(default_factory=list)
    updates: list[MatchUpdate] = field(default_factory=list)
    deletes: list[int] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.inserts and not self.updates and not self.deletes

    @property
    def new_count(self) -> int:
        """Records this plan would newly flag as unread."""
        return len(self.inserts) + sum(1 for u in self.updates if u.resurfaced)


def plan_reconciliation(
    owner_id: str,
    fresh: Sequence[MatchResult],
    existing: Sequence[MatchRecordDB],
) -> ReconciliationPlan:
    """
    Diff fresh matches against stored records.

    - New counterpart: insert as unread.
    - Changed count: update; flag unread again only if it had been read.
    - Counterpart no longer matching: delete.
    - Duplicate rows for one counterpart: keep the first, delete the rest.
    """
    plan = ReconciliationPlan()

    by_counterpart: dict[str, MatchRecordDB] = {}
    for record in existing:
        if record.counterpart_profile_id in by_counterpart:
            plan.deletes.append(record.id)
            continue
        by_counterpart[record.counterpart_profile_id] = record

    fresh_ids: set[str] = set()
    for match in fresh:
        fresh_ids.add(match.counterpart_id)
        stored = by_counterpart.get(match.counterpart_id)

        if stored is None:
            plan.inserts.append(
                NewMatchRecord(
                    owner_id=owner_id,
                    counterpart_id=match.counterpart_id,
                    match_count=match.match_count,
                    is_new=True,
                )
            )
        elif stored.match_count != match.match_count:
            plan.updates.append(
                MatchUpdate(
                    match_id=stored.id,
                    counterpart_id=match.counterpart_id,
                    match_count=match.match_count,
                    is_new=True,
                    resurfaced=not stored.is_new,
                )
            )

    plan.deletes.extend(
        record.id
        for counterpart_id, record in by_counterpart.items()
        if counterpart_id not in fresh_ids
    )
    return plan


async def apply_plan(session: AsyncSession, plan: ReconciliationPlan) -> int:
    """
    Apply a plan, skipping any operation that fails to persist.

    Returns the number of records newly flagged unread by the writes that
    succeeded.
    """
    new_count = 0

    for record in plan.inserts:
        try:
            new_count += await insert_match_records(session, [record])
        except MatchPersistError as e:
            logger.error(
                "Skipping insert of match %s -> %s: %s",
                record.owner_id,
                record.counterpart_id,
                e.detail or e.message,
            )

    for change in plan.updates:
        try:
            await update_match_record(session, change.match_id, change.match_count, change.is_new)
        except MatchPersistError as e:
            logger.error("Skipping update of match %d: %s", change.match_id, e.detail or e.message)
            continue
        if change.resurfaced:
            new_count += 1

    if plan.deletes:
        try:
            await delete_match_records(session, plan.deletes)
        except MatchPersistError as e:
            logger.error(
                "Skipping delete of %d stale match(es): %s",
                len(plan.deletes),
                e.detail or e.message,
            )

    return new_count


async def reconcile_matches(session: AsyncSession, owner_id: str) -> int:
    """
    Recompute an owner's matches and persist the differences.

    Running it twice with no holdings changes in between writes nothing the
    second time and returns 0.

    Returns:
        Number of records this run newly flagged unread (not the total
        unread count). 0 if holdings or stored records could not be read,
        in which case nothing is written.
    """
    try:
        fresh = await compute_fresh_matches(session, owner_id)
        existing = await get_match_records(session, owner_id)
    except (HoldingsFetchError, MatchFetchError) as e:
        logger.warning("Skipping reconciliation for %s: %s", owner_id, e.message)
        return 0

    plan = plan_reconciliation(owner_id, fresh, existing)
    new_count = await apply_plan(session, plan) if not plan.is_empty() else 0

    try:
        await touch_last_match_check(session, owner_id)
    except MatchPersistError as e:
        logger.error("Could not record match check for %s: %s", owner_id, e.detail or e.message)

    logger.info(
        "Reconciled matches for %s: %d inserted, %d updated, %d deleted, %d new",
        owner_id,
        len(plan.inserts),
        len(plan.updates),
        len(plan.deletes),
        new_count,
    )
    return new_count
