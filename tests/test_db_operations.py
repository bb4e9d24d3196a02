"""Tests for database CRUD operations."""

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from cardswap.db.operations import (
    create_profile,
    delete_match_records,
    delete_profile,
    get_cards,
    get_counterpart_holdings,
    get_holdings,
    get_match_records,
    get_profile,
    get_profiles,
    insert_match_records,
    list_all_profiles_with_holdings,
    list_profile_ids,
    mark_all_matches_read,
    replace_holdings,
    require_profile,
    update_match_record,
    upsert_cards,
)
from cardswap.matching.reconciler import reconcile_matches
from cardswap.models.card import Card
from cardswap.models.db import CardHoldingDB, MatchRecordDB
from cardswap.models.errors import (
    HoldingsFetchError,
    MatchFetchError,
    MatchPersistError,
    ProfileNotFoundError,
)
from cardswap.models.holdings import HoldingRole
from cardswap.models.match import NewMatchRecord


def _db_down() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


class TestProfileOperations:
    async def test_create_profile(self, session: AsyncSession) -> None:
        """Can create a new profile with a generated id."""
        profile = await create_profile(session, "user-1", "Vi", contact_info="vi@piltover.gg")

        assert profile.id is not None
        assert profile.user_id == "user-1"
        assert profile.last_match_check is None

    async def test_one_profile_per_user(self, session: AsyncSession) -> None:
        await create_profile(session, "user-1", "Vi")

        with pytest.raises(IntegrityError):
            await create_profile(session, "user-1", "Vi again")

    async def test_require_profile(self, session: AsyncSession, make_profile) -> None:
        await make_profile("p1")

        assert (await require_profile(session, "p1")).id == "p1"
        with pytest.raises(ProfileNotFoundError):
            await require_profile(session, "missing")

    async def test_get_profiles(self, session: AsyncSession, make_profile) -> None:
        await make_profile("p1")
        await make_profile("p2")

        profiles = await get_profiles(session, ["p1", "p2", "missing"])

        assert set(profiles) == {"p1", "p2"}
        assert await get_profiles(session, []) == {}

    async def test_list_profile_ids(self, session: AsyncSession, make_profile) -> None:
        await make_profile("p2")
        await make_profile("p1")

        assert await list_profile_ids(session) == ["p1", "p2"]

    async def test_delete_profile_removes_records_on_both_sides(
        self, session: AsyncSession, make_profile
    ) -> None:
        await make_profile("p1", have={"card-b": 3}, want={"card-a": 2})
        await make_profile("p2", have={"card-a": 5}, want={"card-b": 1})
        await make_profile("p3", want={"card-b": 1})
        for owner in ("p1", "p2", "p3"):
            await reconcile_matches(session, owner)
        await session.commit()

        assert await delete_profile(session, "p2") is True
        await session.commit()

        assert await get_profile(session, "p2") is None
        assert (await get_holdings(session, "p2")).is_empty()
        assert {r.counterpart_profile_id for r in await get_match_records(session, "p1")} == {"p3"}
        assert {r.counterpart_profile_id for r in await get_match_records(session, "p3")} == {"p1"}
        assert await get_match_records(session, "p2") == []

    async def test_delete_missing_profile(self, session: AsyncSession) -> None:
        assert await delete_profile(session, "missing") is False


class TestCardOperations:
    async def test_get_cards_omits_unknown(self, session: AsyncSession) -> None:
        cards = await get_cards(session, ["card-a", "nope"])

        assert set(cards) == {"card-a"}
        assert cards["card-a"].name == "Jinx, Loose Cannon"

    async def test_upsert_updates_existing(self, session: AsyncSession) -> None:
        await upsert_cards(
            session,
            [Card(id="card-a", name="Jinx, Loose Cannon", set_code="OGN", rarity="Epic")],
        )
        await session.commit()

        cards = await get_cards(session, ["card-a"])
        assert cards["card-a"].rarity == "Epic"


class TestHoldingsOperations:
    async def test_replace_holdings(self, session: AsyncSession, make_profile) -> None:
        await make_profile("p1", have={"card-a": 1})

        holdings = await replace_holdings(session, "p1", {"card-b": 2}, {"card-c": 1})

        assert holdings.have == {"card-b": 2}
        assert holdings.want == {"card-c": 1}

    async def test_missing_quantity_counts_as_one(
        self, session: AsyncSession, make_profile
    ) -> None:
        await make_profile("p1")
        session.add(
            CardHoldingDB(profile_id="p1", card_id="card-a", role=HoldingRole.HAVE, quantity=None)
        )
        session.add(
            CardHoldingDB(profile_id="p1", card_id="card-b", role=HoldingRole.WANT, quantity=0)
        )
        await session.commit()

        holdings = await get_holdings(session, "p1")

        assert holdings.have == {"card-a": 1}
        assert holdings.want == {"card-b": 1}

    async def test_full_population_excludes_owner(
        self, session: AsyncSession, make_profile
    ) -> None:
        await make_profile("p1", want={"card-a": 1})
        await make_profile("p2", have={"card-a": 1})
        await make_profile("p3")

        population = await list_all_profiles_with_holdings(session, "p1", limit=10)

        assert [p.profile_id for p in population] == ["p2", "p3"]
        assert population[1].holdings.is_empty()

    async def test_counterpart_holdings_restricted_to_cards(
        self, session: AsyncSession, make_profile
    ) -> None:
        await make_profile("p1", want={"card-a": 1})
        await make_profile("p2", have={"card-a": 2, "card-b": 1}, want={"card-c": 1})
        await make_profile("p3", have={"card-d": 1})

        population = await get_counterpart_holdings(session, "p1", ["card-a"])

        assert len(population) == 1
        assert population[0].profile_id == "p2"
        assert population[0].holdings.have == {"card-a": 2}
        assert population[0].holdings.want == {}

    async def test_counterpart_holdings_without_cards(self, session: AsyncSession) -> None:
        assert await get_counterpart_holdings(session, "p1", []) == []

    async def test_read_failure_is_holdings_fetch_error(self, session: AsyncSession) -> None:
        with (
            patch.object(session, "execute", side_effect=_db_down()),
            pytest.raises(HoldingsFetchError),
        ):
            await get_holdings(session, "p1")


class TestMatchRecordOperations:
    async def test_insert_conflict_keeps_one_row(
        self, session: AsyncSession, make_profile
    ) -> None:
        """A second insert for the same pair merges into the existing row."""
        await make_profile("p1")
        await make_profile("p2")
        assert await insert_match_records(session, [NewMatchRecord("p1", "p2", 3)]) == 1
        await session.commit()
        first = (await get_match_records(session, "p1"))[0]
        await update_match_record(session, first.id, 3, False)

        assert await insert_match_records(session, [NewMatchRecord("p1", "p2", 3)]) == 0
        await session.commit()

        records = await get_match_records(session, "p1")
        assert len(records) == 1
        assert records[0].id == first.id
        assert records[0].is_new is False

    async def test_insert_conflict_with_new_count_resurfaces(
        self, session: AsyncSession, make_profile
    ) -> None:
        await make_profile("p1")
        await make_profile("p2")
        await insert_match_records(session, [NewMatchRecord("p1", "p2", 3)])
        first = (await get_match_records(session, "p1"))[0]
        await update_match_record(session, first.id, 3, False)

        newly_unread = await insert_match_records(session, [NewMatchRecord("p1", "p2", 1)])

        assert newly_unread == 1
        records = await get_match_records(session, "p1")
        assert len(records) == 1
        assert records[0].match_count == 1
        assert records[0].is_new is True

    async def test_insert_over_unread_row_counts_nothing(
        self, session: AsyncSession, make_profile
    ) -> None:
        await make_profile("p1")
        await make_profile("p2")
        await insert_match_records(session, [NewMatchRecord("p1", "p2", 3)])

        assert await insert_match_records(session, [NewMatchRecord("p1", "p2", 4)]) == 0
        assert (await get_match_records(session, "p1"))[0].match_count == 4

    async def test_merge_fallback_counts_like_upsert(
        self, session: AsyncSession, make_profile
    ) -> None:
        """Dialects without ON CONFLICT report newly unread rows the same way."""
        await make_profile("p1")
        await make_profile("p2")
        await make_profile("p3")
        await insert_match_records(session, [NewMatchRecord("p1", "p2", 2)])
        await mark_all_matches_read(session, "p1")

        with patch.dict("cardswap.db.operations._UPSERT_BUILDERS", clear=True):
            newly_unread = await insert_match_records(
                session, [NewMatchRecord("p1", "p2", 2), NewMatchRecord("p1", "p3", 1)]
            )

        assert newly_unread == 1
        records = await get_match_records(session, "p1")
        assert {r.counterpart_profile_id: r.is_new for r in records} == {"p2": False, "p3": True}

    async def test_unique_pair_constraint(self, session: AsyncSession, make_profile) -> None:
        await make_profile("p1")
        await make_profile("p2")
        session.add(
            MatchRecordDB(owner_profile_id="p1", counterpart_profile_id="p2", match_count=1)
        )
        await session.flush()
        session.add(
            MatchRecordDB(owner_profile_id="p1", counterpart_profile_id="p2", match_count=2)
        )

        with pytest.raises(IntegrityError):
            await session.flush()

    async def test_delete_match_records(self, session: AsyncSession, make_profile) -> None:
        await make_profile("p1")
        await make_profile("p2")
        await make_profile("p3")
        await insert_match_records(
            session, [NewMatchRecord("p1", "p2", 1), NewMatchRecord("p1", "p3", 1)]
        )
        records = await get_match_records(session, "p1")

        deleted = await delete_match_records(session, [r.id for r in records])

        assert deleted == 2
        assert await get_match_records(session, "p1") == []
        assert await delete_match_records(session, []) == 0

    async def test_failed_write_leaves_transaction_usable(
        self, session: AsyncSession, make_profile
    ) -> None:
        """A failed write is rolled back to its savepoint only."""
        await make_profile("p1")
        await make_profile("p2")
        await make_profile("p3")
        await insert_match_records(session, [NewMatchRecord("p1", "p2", 2)])

        with pytest.raises(MatchPersistError):
            await insert_match_records(session, [NewMatchRecord("p1", "p3", None)])

        records = await get_match_records(session, "p1")
        assert [r.counterpart_profile_id for r in records] == ["p2"]

    async def test_read_failure_is_match_fetch_error(self, session: AsyncSession) -> None:
        with (
            patch.object(session, "execute", side_effect=_db_down()),
            pytest.raises(MatchFetchError),
        ):
            await get_match_records(session, "p1")

    async def test_records_are_owner_scoped(self, session: AsyncSession, make_profile) -> None:
        await make_profile("p1")
        await make_profile("p2")
        await insert_match_records(
            session, [NewMatchRecord("p1", "p2", 1), NewMatchRecord("p2", "p1", 1)]
        )

        result = await session.execute(select(MatchRecordDB))
        assert len(result.scalars().all()) == 2
        assert [r.owner_profile_id for r in await get_match_records(session, "p1")] == ["p1"]
