"""
Finish the stock side of sales left with inventory_sync=pending.

    python reconcile.py                 # every business
    python reconcile.py <business_id>   # one business

Safe to run on a schedule: what is missing is read from the ledger, so a
movement is never applied twice.
"""

import asyncio
import logging
import sys

from beanie import PydanticObjectId

from app.core.database import init_db
from app.core.log_config import configure_logging
from app.services.sale_coordinator import reconcile_pending

logger = logging.getLogger("reconcile")


async def run(business_id=None):
    await init_db()
    report = await reconcile_pending(business_id)
    if report.still_pending:
        logger.warning("%d sales still pending; see warnings above", report.still_pending)
    return report

if __name__ == "__main__":
    configure_logging()
    target = PydanticObjectId(sys.argv[1]) if len(sys.argv) > 1 else None
    report = asyncio.run(run(target))
    sys.exit(1 if report.still_pending else 0)
