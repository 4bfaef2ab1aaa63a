"""Run one workflow tick: escalate overdue approvals and time out expired steps.

Usage:
    uv run python -m scripts.run_workflow_tick [tenant_id]
If tenant_id is omitted, scans instances of all tenants whose open
approvals have a deadline that has passed.
Meant to be run by a scheduler (cron, Kubernetes CronJob) every few minutes;
running it twice in a row changes nothing the second time.
Requires Postgres. Batch size comes from WORKFLOW_TICK_BATCH_SIZE.
"""

import asyncio
import sys

from app.api.v1.dependencies.workflow import build_instance_service
from app.core.config import get_settings
import app.infrastructure.persistence.database as database
from app.infrastructure.services import build_default_registry
from app.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger("scripts.run_workflow_tick")


async def main() -> None:
    """Run the tick in one transaction and print the counts."""
    settings = get_settings()
    setup_logging()
    session_factory = database.ensure_engine()
    tenant_id = sys.argv[1] if len(sys.argv) > 1 else None

    try:
        async with database.store_errors():
            async with session_factory() as session:
                async with session.begin():
                    service = build_instance_service(session, build_default_registry())
                    result = await service.tick(
                        tenant_id=tenant_id, limit=settings.workflow_tick_batch_size
                    )
    finally:
        if database.engine is not None:
            await database.engine.dispose()

    print(
        f"Done. scanned={result.scanned} escalated={result.escalated} "
        f"timed_out={result.timed_out} skipped_stale={result.skipped_stale}"
    )
    if result.scanned >= settings.workflow_tick_batch_size:
        logger.warning(
            "Tick hit the batch limit (%d); remaining instances are scanned on the next run",
            settings.workflow_tick_batch_size,
        )


if __name__ == "__main__":
    asyncio.run(main())
