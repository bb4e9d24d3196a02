"""
Seed the reference card table from the card catalog API.

The catalog is paginated as {"items": [...], "page": n, "pages": total};
a plain list response is accepted as a single page. Overnumbered variants
(collector numbers containing "*") are skipped.
"""

import asyncio
import logging
from typing import Any

import httpx

from cardswap.config import settings
from cardswap.db.database import async_session_factory, init_db
from cardswap.db.operations import upsert_cards
from cardswap.models.card import Card

logger = logging.getLogger(__name__)


def parse_catalog_card(item: dict[str, Any]) -> Card | None:
    """
    Convert one catalog entry to a Card.

    Returns None for entries without an id or name, and for overnumbered
    variants.
    """
    card_id = item.get("id") or item.get("riftbound_id")
    name = item.get("name")
    if not card_id or not name:
        return None

    collector_number = str(item.get("collector_number") or item.get("number") or "") or None
    public_code = item.get("public_code") or ""
    if "*" in public_code or (collector_number and "*" in collector_number):
        return None

    classification = item.get("classification") or {}
    return Card(
        id=str(card_id),
        name=name,
        set_code=item.get("set_code") or item.get("set"),
        collector_number=collector_number,
        image_url=item.get("image_url") or item.get("image"),
        rarity=classification.get("rarity") or item.get("rarity"),
    )


async def fetch_catalog(client: httpx.AsyncClient, base_url: str | None = None) -> list[Card]:
    """
    Fetch every page of the card catalog.

    Raises:
        httpx.HTTPError: If the first page cannot be fetched
        ValueError: If the response has an unexpected shape
    """
    base = (base_url or settings.card_catalog_url).rstrip("/")

    response = await client.get(f"{base}/cards", params={"page": 1})
    response.raise_for_status()
    data = response.json()

    if isinstance(data, list):
        items: list[dict[str, Any]] = data
    elif isinstance(data, dict) and isinstance(data.get("items"), list):
        items = list(data["items"])
        for page in range(2, int(data.get("pages") or 1) + 1):
            page_response = await client.get(f"{base}/cards", params={"page": page})
            if page_response.is_error:
                logger.warning(
                    "Failed to fetch catalog page %d: %d", page, page_response.status_code
                )
                continue
            items.extend(page_response.json().get("items") or [])
    else:
        raise ValueError("Unexpected catalog response: expected a list or an object with items")

    cards = [card for card in (parse_catalog_card(item) for item in items) if card is not None]
    logger.info("Parsed %d cards from %d catalog entries", len(cards), len(items))
    return cards


async def run_seed(base_url: str | None = None) -> int:
    """
    Fetch the catalog and upsert it into the database.

    Returns:
        Number of cards written
    """
    async with httpx.AsyncClient(
        headers={"Accept": "application/json", "User-Agent": "CardSwap/1.0"},
        follow_redirects=True,
        timeout=30.0,
    ) as client:
        cards = await fetch_catalog(client, base_url)

    if not cards:
        logger.warning("Card catalog returned no cards; nothing to seed")
        return 0

    async with async_session_factory() as session:
        count = await upsert_cards(session, cards)
        await session.commit()

    logger.info("Seeded %d cards", count)
    return count


async def _main() -> None:
    await init_db()
    await run_seed()


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(_main())


if __name__ == "__main__":
    main()
