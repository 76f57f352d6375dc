from __future__ import annotations
import asyncio
import logging

from ..config import get_settings
from ..db import SessionLocal
from ..observability.logging import setup_logging
from ..services.otp_sweeper import purge_expired_otps

S = get_settings()
log = logging.getLogger("worker.otp_sweeper")


async def run_once() -> int:
    total = 0
    async with SessionLocal() as db:
        # drain in batches so one tick clears a backlog
        while True:
            purged = await purge_expired_otps(db, batch=S.OTP_SWEEP_BATCH)
            total += purged
            if purged < S.OTP_SWEEP_BATCH:
                break
    if total:
        log.info(f"purged {total} expired otps")
    return total


async def run_forever():
    while True:
        try:
            await run_once()
        except Exception as e:
            log.exception("otp_sweeper error: %s", e)
        await asyncio.sleep(S.OTP_SWEEP_INTERVAL_SEC)


def main():
    setup_logging()
    asyncio.run(run_forever())


if __name__ == "__main__":
    main()
