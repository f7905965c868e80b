"""Delete swipes older than SWIPE_RETENTION_DAYS.

Usage: python -m scripts.purge_expired_swipes [--dry-run]
"""
import argparse
import asyncio
import sys
sys.path.insert(0, ".")

from sqlalchemy import func, select
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from mergemates.config import get_settings
from mergemates.database import get_engine, get_session_factory
from mergemates.errors import TransientStoreError
from mergemates.logging_config import configure_logging
from mergemates.models.match import Swipe
from mergemates.services.swipe_service import SwipeLedger
from mergemates.stores.sql import SqlSwipeStore


async def purge(dry_run: bool = False) -> int:
    async with get_session_factory()() as session:
        ledger = SwipeLedger(SqlSwipeStore(session))
        cutoff = ledger.cutoff()

        if dry_run:
            stmt = select(func.count()).select_from(Swipe).where(Swipe.created_at < cutoff)
            count = (await session.execute(stmt)).scalar_one()
            print(f"  {count} swipes older than {cutoff.isoformat()} would be deleted.")
            return count

        deleted = await ledger.purge_expired()
        await session.commit()
    print(f"  Deleted {deleted} swipes older than {cutoff.isoformat()}.")
    return deleted


async def main(dry_run: bool, attempts: int = 3) -> None:
    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TransientStoreError),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        ):
            with attempt:
                await purge(dry_run=dry_run)
    finally:
        await get_engine().dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Purge expired swipes")
    parser.add_argument("--dry-run", action="store_true", help="Only count expired swipes")
    parser.add_argument("--attempts", type=int, default=3, help="Retries on a transient store error")
    args = parser.parse_args()

    configure_logging(get_settings().LOG_LEVEL)
    asyncio.run(main(args.dry_run, args.attempts))
