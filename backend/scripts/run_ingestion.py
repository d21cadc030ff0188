"""
Helper script to run a price guide CSV ingestion outside the API server

Usage:
  python backend/scripts/run_ingestion.py --category pokemon_cards
  python backend/scripts/run_ingestion.py --all

Notes:
  - Expects PRICE_CHARTING_API_KEY and DATABASE_URL in the environment (.env).
  - Without DATABASE_URL the products are only kept in memory for this run.
"""

import asyncio
import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from app.core.config import settings  # noqa: E402
from app.core.container import build_container  # noqa: E402
from app.core.exceptions import PriceTrackerError  # noqa: E402

logger = logging.getLogger("run_ingestion")


async def main(categories, run_all: bool) -> int:
    container = build_container(settings)
    try:
        if container.storage_backend == "database":
            from app.core.database import init_db
            await init_db()

        if run_all:
            result = await container.ingestion_service.ingest_all(triggered_manually=True)
            summary = result.summary
            logger.info(
                "Ingestion complete: processed=%s successful=%s failed=%s products=%s",
                summary.categoriesProcessed,
                summary.successful,
                summary.failed,
                summary.totalProducts,
            )
            print(result.model_dump_json(indent=2))
            return 0 if summary.failed == 0 else 1

        failures = 0
        for category in categories:
            result = await container.ingestion_service.ingest(category, triggered_manually=True)
            print(result.model_dump_json(exclude_none=True))
            if not result.success:
                failures += 1
        return 0 if failures == 0 else 1

    except PriceTrackerError as e:
        logger.error(e.message)
        return 2
    finally:
        await container.shutdown()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Ingest Price Charting price guide CSV exports")
    parser.add_argument("--category", action="append", default=[], help="Category to ingest (repeatable)")
    parser.add_argument("--all", action="store_true", help="Ingest every configured category")
    args = parser.parse_args()

    if not args.all and not args.category:
        parser.error(f"pass --all or --category (one of {', '.join(settings.PRICE_CHARTING_CATEGORIES)})")

    sys.exit(asyncio.run(main(args.category, args.all)))
