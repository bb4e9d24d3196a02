"""
Database CRUD operations.

Provides async functions for profiles, reference cards, card holdings and
match records. Read failures surface as HoldingsFetchError or
MatchFetchError; every match write runs in its own SAVEPOINT and surfaces
as MatchPersistError, so one failed write never poisons the caller's
transaction.
"""

from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cardswap.models.card import Card
from cardswap.models.db import CardDB, CardHoldingDB, MatchRecordDB, ProfileDB
from cardswap.models.errors import (
    HoldingsFetchError,
    MatchFetchError,
    MatchPersistError,
    ProfileNotFoundError,
)
from cardswap.models.holdings import HoldingRole, Holdings, ProfileHoldings
from cardswap.models.match import NewMatchRecord

_UPSERT_BUILDERS: dict[str, Any] = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@asynccontextmanager
async def _persisting(session: AsyncSession, action: str) -> AsyncIterator[None]:
    """Run a write inside a SAVEPOINT, translating failures to MatchPersistError."""
    try:
        async with session.begin_nested():
            yield
    except SQLAlchemyError as e:
        raise MatchPersistError(f"Failed to {action}", detail=str(e)) from e


# --- Profile Operations ---


async def get_profile(session: AsyncSession, profile_id: str) -> ProfileDB | None:
    """
    Get a profile by id.

    Returns None if no such profile exists.
    """
    result = await session.execute(select(ProfileDB).where(ProfileDB.id == profile_id))
    return result.scalar_one_or_none()


async def require_profile(session: AsyncSession, profile_id: str) -> ProfileDB:
    """Get a profile by id, raising ProfileNotFoundError if it does not exist."""
    profile = await get_profile(session, profile_id)
    if profile is None:
        raise ProfileNotFoundError(profile_id)
    return profile


async def get_profiles(session: AsyncSession, profile_ids: Iterable[str]) -> dict[str, ProfileDB]:
    """Get several profiles at once, keyed by id. Unknown ids are omitted."""
    ids = list(set(profile_ids))
    if not ids:
        return {}
    try:
        result = await session.execute(select(ProfileDB).where(ProfileDB.id.in_(ids)))
    except SQLAlchemyError as e:
        raise HoldingsFetchError("Failed to load profiles", detail=str(e)) from e
    return {profile.id: profile for profile in result.scalars().all()}


async def list_profile_ids(session: AsyncSession) -> list[str]:
    """All profile ids, in id order."""
    result = await session.execute(select(ProfileDB.id).order_by(ProfileDB.id))
    return list(result.scalars().all())


async def create_profile(
    session: AsyncSession,
    user_id: str,
    display_name: str,
    contact_info: str = "",
    trading_locations: str | None = None,
    username: str | None = None,
    profile_id: str | None = None,
) -> ProfileDB:
    """
    Create a new profile.

    Raises IntegrityError if the user already has a profile.
    """
    profile = ProfileDB(
        user_id=user_id,
        display_name=display_name,
        contact_info=contact_info,
        trading_locations=trading_locations,
        username=username,
        last_match_check=None,
    )
    if profile_id is not None:
        profile.id = profile_id
    session.add(profile)
    await session.flush()
    return profile


async def delete_profile(session: AsyncSession, profile_id: str) -> bool:
    """
    Delete a profile with its holdings and every match record naming it.

    Match records are removed on both sides: those the profile owns and
    those other owners keep about it. Returns False if not found.
    """
    profile = await get_profile(session, profile_id)
    if profile is None:
        return False

    await session.execute(
        delete(MatchRecordDB).where(
            or_(
                MatchRecordDB.owner_profile_id == profile_id,
                MatchRecordDB.counterpart_profile_id == profile_id,
            )
        )
    )
    await session.execute(delete(CardHoldingDB).where(CardHoldingDB.profile_id == profile_id))
    await session.delete(profile)
    await session.flush()
    return True


async def touch_last_match_check(
    session: AsyncSession, profile_id: str, checked_at: datetime | None = None
) -> None:
    """Record when the profile's matches were last reconciled."""
    when = checked_at or datetime.now(UTC)
    async with _persisting(session, f"update last_match_check for {profile_id}"):
        await session.execute(
            update(ProfileDB).where(ProfileDB.id == profile_id).values(last_match_check=when)
        )


# --- Card Operations ---


def card_to_model(card: CardDB) -> Card:
    """Convert a database card to a domain model."""
    return Card(
        id=card.id,
        name=card.name,
        set_code=card.set_code,
        collector_number=card.collector_number,
        image_url=card.image_url,
        rarity=card.rarity,
    )


async def get_cards(session: AsyncSession, card_ids: Iterable[str]) -> dict[str, Card]:
    """Look up display payloads for card ids. Unknown ids are omitted."""
    ids = list(set(card_ids))
    if not ids:
        return {}
    try:
        result = await session.execute(select(CardDB).where(CardDB.id.in_(ids)))
    except SQLAlchemyError as e:
        raise HoldingsFetchError("Failed to load cards", detail=str(e)) from e
    return {card.id: card_to_model(card) for card in result.scalars().all()}


async def upsert_cards(session: AsyncSession, cards: Sequence[Card]) -> int:
    """
    Insert or update reference cards.

    Returns the number of cards written.
    """
    for card in cards:
        await session.merge(
            CardDB(
                id=card.id,
                name=card.name,
                set_code=card.set_code,
                collector_number=card.collector_number,
                image_url=card.image_url,
                rarity=card.rarity,
            )
        )
    await session.flush()
    return len(cards)


# --- Holdings Operations ---


def _group_holdings(rows: Iterable[CardHoldingDB]) -> dict[str, Holdings]:
    grouped: dict[str, Holdings] = {}
    for row in rows:
        holdings = grouped.setdefault(row.profile_id, Holdings())
        holdings.add(row.role, row.card_id, row.quantity)
    return grouped


async def get_holdings(session: AsyncSession, profile_id: str) -> Holdings:
    """
    Get a profile's HAVE and WANT lists.

    Returns empty holdings for unknown profiles.
    """
    try:
        result = await session.execute(
            select(CardHoldingDB).where(CardHoldingDB.profile_id == profile_id)
        )
    except SQLAlchemyError as e:
        raise HoldingsFetchError(f"Failed to load holdings for {profile_id}", detail=str(e)) from e
    return _group_holdings(result.scalars().all()).get(profile_id, Holdings())


async def list_all_profiles_with_holdings(
    session: AsyncSession, exclude_profile_id: str, limit: int
) -> list[ProfileHoldings]:
    """
    Load holdings for up to `limit` profiles other than the excluded one.

    This is the full population scan; cost grows with the number of
    profiles. Prefer get_counterpart_holdings.
    """
    try:
        id_result = await session.execute(
            select(ProfileDB.id)
            .where(ProfileDB.id != exclude_profile_id)
            .order_by(ProfileDB.id)
            .limit(limit)
        )
        profile_ids = list(id_result.scalars().all())
        if not profile_ids:
            return []
        rows = await session.execute(
            select(CardHoldingDB).where(CardHoldingDB.profile_id.in_(profile_ids))
        )
    except SQLAlchemyError as e:
        raise HoldingsFetchError("Failed to load profile population", detail=str(e)) from e

    grouped = _group_holdings(rows.scalars().all())
    return [
        ProfileHoldings(profile_id=pid, holdings=grouped.get(pid, Holdings()))
        for pid in profile_ids
    ]


async def get_counterpart_holdings(
    session: AsyncSession, owner_id: str, card_ids: Iterable[str]
) -> list[ProfileHoldings]:
    """
    Load holdings of other profiles, restricted to the given card ids.

    Uses the card_id index, so only profiles sharing at least one card with
    the owner are touched. The returned holdings are partial: they contain
    only the requested cards, which is all that scoring needs.
    """
    ids = list(set(card_ids))
    if not ids:
        return []
    try:
        result = await session.execute(
            select(CardHoldingDB).where(
                CardHoldingDB.card_id.in_(ids),
                CardHoldingDB.profile_id != owner_id,
            )
        )
    except SQLAlchemyError as e:
        raise HoldingsFetchError("Failed to load counterpart holdings", detail=str(e)) from e

    grouped = _group_holdings(result.scalars().all())
    return [ProfileHoldings(profile_id=pid, holdings=h) for pid, h in sorted(grouped.items())]


async def replace_holdings(
    session: AsyncSession,
    profile_id: str,
    have: dict[str, int],
    want: dict[str, int],
) -> Holdings:
    """
    Replace a profile's HAVE and WANT lists.

    Deletes existing holdings and creates new ones.
    """
    await session.execute(delete(CardHoldingDB).where(CardHoldingDB.profile_id == profile_id))
    for role, cards in ((HoldingRole.HAVE, have), (HoldingRole.WANT, want)):
        for card_id, quantity in cards.items():
            session.add(
                CardHoldingDB(profile_id=profile_id, card_id=card_id, role=role, quantity=quantity)
            )
    await session.flush()
    return await get_holdings(session, profile_id)


# --- Match Record Operations ---


async def get_match_records(session: AsyncSession, owner_id: str) -> list[MatchRecordDB]:
    """Get every match record stored for an owner."""
    try:
        result = await session.execute(
            select(MatchRecordDB)
            .where(MatchRecordDB.owner_profile_id == owner_id)
            .execution_options(populate_existing=True)
        )
    except SQLAlchemyError as e:
        raise MatchFetchError(f"Failed to load matches for {owner_id}", detail=str(e)) from e
    return list(result.scalars().all())


async def get_match_record(session: AsyncSession, match_id: int) -> MatchRecordDB | None:
    """Get a single match record by id."""
    try:
        result = await session.execute(
            select(MatchRecordDB)
            .where(MatchRecordDB.id == match_id)
            .execution_options(populate_existing=True)
        )
    except SQLAlchemyError as e:
        raise MatchFetchError(f"Failed to load match {match_id}", detail=str(e)) from e
    return result.scalar_one_or_none()


async def list_match_records(
    session: AsyncSession, owner_id: str, limit: int
) -> list[MatchRecordDB]:
    """Get an owner's match records with counterpart profiles, newest first."""
    try:
        result = await session.execute(
            select(MatchRecordDB)
            .where(MatchRecordDB.owner_profile_id == owner_id)
            .options(selectinload(MatchRecordDB.counterpart))
            .order_by(MatchRecordDB.created_at.desc(), MatchRecordDB.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
    except SQLAlchemyError as e:
        raise MatchFetchError(f"Failed to list matches for {owner_id}", detail=str(e)) from e
    return list(result.scalars().all())


async def count_unread(session: AsyncSession, owner_id: str) -> int:
    """Count an owner's match records flagged as new."""
    try:
        result = await session.execute(
            select(func.count())
            .select_from(MatchRecordDB)
            .where(MatchRecordDB.owner_profile_id == owner_id, MatchRecordDB.is_new.is_(True))
        )
    except SQLAlchemyError as e:
        raise MatchFetchError(f"Failed to count unread for {owner_id}", detail=str(e)) from e
    return int(result.scalar_one())


async def insert_match_records(session: AsyncSession, records: Sequence[NewMatchRecord]) -> int:
    """
    Insert match records, merging into any existing row for the same pair.

    On an (owner, counterpart) conflict the stored count is overwritten and
    the row stays or becomes unread if it was unread or its count changed.
    Concurrent reconciliations for one owner therefore never duplicate rows.

    Returns the number of records this call newly flagged as unread: rows it
    created, plus read rows it flipped back to unread. Rows a concurrent run
    already wrote, or that stay read, are not counted.
    """
    if not records:
        return 0

    values = [
        {
            "owner_profile_id": r.owner_id,
            "counterpart_profile_id": r.counterpart_id,
            "match_count": r.match_count,
            "is_new": r.is_new,
        }
        for r in records
    ]

    async with _persisting(session, f"insert {len(records)} match record(s)"):
        before = await _unread_flags(session, records, lock=True)

        builder = _UPSERT_BUILDERS.get(session.get_bind().dialect.name)
        if builder is None:
            await _merge_match_records(session, records)
        else:
            stmt = builder(MatchRecordDB).values(values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["owner_profile_id", "counterpart_profile_id"],
                set_={
                    "match_count": stmt.excluded.match_count,
                    "is_new": or_(
                        MatchRecordDB.is_new,
                        MatchRecordDB.match_count != stmt.excluded.match_count,
                    ),
                    "updated_at": func.now(),
                },
            )
            await session.execute(stmt)

        after = await _unread_flags(session, records)

    return sum(1 for pair, is_new in after.items() if is_new and not before.get(pair, False))


async def _unread_flags(
    session: AsyncSession, records: Sequence[NewMatchRecord], lock: bool = False
) -> dict[tuple[str, str], bool]:
    """Map each stored (owner, counterpart) pair among records to its is_new flag."""
    pairs = {(r.owner_id, r.counterpart_id) for r in records}
    stmt = select(
        MatchRecordDB.owner_profile_id,
        MatchRecordDB.counterpart_profile_id,
        MatchRecordDB.is_new,
    ).where(
        MatchRecordDB.owner_profile_id.in_(sorted({owner for owner, _ in pairs})),
        MatchRecordDB.counterpart_profile_id.in_(sorted({counterpart for _, counterpart in pairs})),
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return {
        (owner, counterpart): bool(is_new)
        for owner, counterpart, is_new in result.all()
        if (owner, counterpart) in pairs
    }


async def _merge_match_records(session: AsyncSession, records: Sequence[NewMatchRecord]) -> None:
    """Read-then-write fallback for dialects without ON CONFLICT."""
    for record in records:
        result = await session.execute(
            select(MatchRecordDB).where(
                MatchRecordDB.owner_profile_id == record.owner_id,
                MatchRecordDB.counterpart_profile_id == record.counterpart_id,
            )
        )
        existing = result.scalar_one_or_none()
        if existing is None:
            session.add(
                MatchRecordDB(
                    owner_profile_id=record.owner_id,
                    counterpart_profile_id=record.counterpart_id,
                    match_count=record.match_count,
                    is_new=record.is_new,
                )
            )
            continue
        existing.is_new = existing.is_new or existing.match_count != record.match_count
        existing.match_count = record.match_count
    await session.flush()


async def update_match_record(
    session: AsyncSession, match_id: int, match_count: int, is_new: bool
) -> None:
    """Overwrite a record's count and unread flag."""
    async with _persisting(session, f"update match {match_id}"):
        await session.execute(
            update(MatchRecordDB)
            .where(MatchRecordDB.id == match_id)
            .values(match_count=match_count, is_new=is_new, updated_at=func.now())
        )


async def delete_match_records(session: AsyncSession, match_ids: Sequence[int]) -> int:
    """
    Delete match records by id.

    Returns the number of deleted records.
    """
    if not match_ids:
        return 0
    async with _persisting(session, f"delete {len(match_ids)} match record(s)"):
        result = await session.execute(
            delete(MatchRecordDB).where(MatchRecordDB.id.in_(list(match_ids)))
        )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount)  # type: ignore[attr-defined]


async def mark_match_read(session: AsyncSession, match_id: int, owner_id: str) -> int:
    """
    Clear the unread flag on one record, scoped to its owner.

    Returns the number of rows changed (0 when the owner does not match).
    """
    async with _persisting(session, f"mark match {match_id} read"):
        result = await session.execute(
            update(MatchRecordDB)
            .where(MatchRecordDB.id == match_id, MatchRecordDB.owner_profile_id == owner_id)
            .values(is_new=False, updated_at=func.now())
        )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def mark_all_matches_read(session: AsyncSession, owner_id: str) -> int:
    """
    Clear the unread flag on every unread record of an owner.

    Returns the number of records changed.
    """
    async with _persisting(session, f"mark all matches read for {owner_id}"):
        result = await session.execute(
            update(MatchRecordDB)
            .where(MatchRecordDB.owner_profile_id == owner_id, MatchRecordDB.is_new.is_(True))
            .values(is_new=False, updated_at=func.now())
        )
    return int(result.rowcount)  # type: ignore[attr-defined]
