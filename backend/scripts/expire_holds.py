"""Cancel pending reservations whose payment hold has lapsed.

Meant to run periodically (cron, scheduler). Availability checks already
ignore lapsed holds, so a missed run only leaves stale rows behind.
"""
from __future__ import annotations

import argparse
import asyncio
import logging

from booking_engine.db.session import dispose_engine, get_sessionmaker
from booking_engine.services import lifecycle_service

DEFAULT_BATCH_SIZE = 500


async def expire_holds(batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    sessionmaker = get_sessionmaker()
    total = 0
    try:
        while True:
            async with sessionmaker() as session:
                expired = await lifecycle_service.expire_stale_holds(
                    session, limit=batch_size
                )
            total += expired
            if expired < batch_size:
                break
    finally:
        await dispose_engine()
    print(f"Expired {total} pending hold(s).")
    return total


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(expire_holds(args.batch_size))


if __name__ == "__main__":
    main()
