"""
Batch match reconciliation.

Reconciles every profile's matches once, each in its own session, so that
owners who have not opened the app recently still see current counts.
Can be run as a standalone script or called from a scheduler.
"""

import argparse
import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from cardswap.db.database import async_session_factory
from cardswap.db.operations import list_profile_ids
from cardswap.matching.reconciler import reconcile_matches

logger = logging.getLogger(__name__)


async def reconcile_profile(profile_id: str) -> int:
    """
    Reconcile one profile in its own session.

    Returns:
        Number of records newly flagged unread, 0 on failure
    """
    try:
        async with async_session_factory() as session:
            new_count = await reconcile_matches(session, profile_id)
            await session.commit()
        return new_count
    except SQLAlchemyError as e:
        logger.error("Error reconciling %s: %s", profile_id, e)
        return 0


async def run_reconcile_all(profile_ids: list[str] | None = None) -> dict[str, int]:
    """
    Reconcile all or the given profiles.

    Returns:
        Dict mapping profile id to number of records newly flagged unread
    """
    if profile_ids is None:
        async with async_session_factory() as session:
            profile_ids = await list_profile_ids(session)

    results: dict[str, int] = {}
    for profile_id in profile_ids:
        results[profile_id] = await reconcile_profile(profile_id)

    logger.info(
        "Reconciliation complete. %d profiles, %d new matches",
        len(results),
        sum(results.values()),
    )
    return results


def main() -> None:
    """CLI entry point for batch reconciliation."""
    parser = argparse.ArgumentParser(description="Reconcile stored trade matches")
    parser.add_argument("profile_ids", nargs="*", help="Profiles to reconcile (default: all)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_reconcile_all(args.profile_ids or None))


if __name__ == "__main__":
    main()
