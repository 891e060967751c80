"""
Backfill driver: fetch missing app data from IPFS and insert it.

Flow:
1. Query Postgres once for app data hashes without a full document
2. For each hash (at most `concurrency` at a time):
   derive CID -> fetch from gateway -> insert into app_data
3. Report each item as it completes and a summary at the end

There is no retry loop. Failures are reported and the pass continues; the
idempotent insert means a later run picks up whatever is still missing.
"""

import asyncio
import logging
import time
from collections import Counter
from typing import Dict, List, Optional, Protocol, Sequence

from core.errors import ErrorCategory, PipelineError, classify_exception
from core.logging import get_logger, log_with_context, set_log_context

from appdata_backfill import metrics
from appdata_backfill.cid import AppDataHash, app_data_cid, hash_hex
from appdata_backfill.config import BackfillConfig
from appdata_backfill.gateway import IpfsGateway
from appdata_backfill.schemas import BackfillSummary, ItemOutcome
from appdata_backfill.store import PostgresStore

logger = get_logger(__name__)


class Gateway(Protocol):
    async def fetch(self, cid: str) -> bytes: ...


class Store(Protocol):
    async def insert(self, app_data_hash: AppDataHash, full: bytes) -> None: ...


class ItemError(PipelineError):
    """Failure of one step for one item, e.g. "ipfs fetch | Caused by: status 404, ..."."""

    def __init__(self, step: str, cause: Exception):
        self.step = step
        super().__init__(
            step.replace("_", " "),
            cause=cause,
            category=classify_exception(cause),
        )


class BackfillRunner:
    """
    Runs fetch+insert for a list of hashes with bounded concurrency.

    Starts `concurrency` worker tasks that pull items from a shared iterator,
    so the number of live tasks stays fixed however long the work list is.
    Completion order is not defined.
    """

    def __init__(
        self,
        gateway: Gateway,
        store: Store,
        concurrency: int = 32,
        dry_run: bool = False,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.gateway = gateway
        self.store = store
        self.concurrency = concurrency
        self.dry_run = dry_run

    async def handle_one(self, app_data_hash: AppDataHash) -> int:
        """
        Fetch and insert a single document.

        Returns:
            Number of payload bytes fetched

        Raises:
            ItemError: Wrapping the failure of the step that failed
        """
        try:
            cid = app_data_cid(app_data_hash)
        except PipelineError as e:
            raise ItemError("cid", e) from e

        try:
            full = await self.gateway.fetch(cid)
        except PipelineError as e:
            raise ItemError("ipfs_fetch", e) from e

        if not self.dry_run:
            try:
                await self.store.insert(app_data_hash, full)
            except PipelineError as e:
                raise ItemError("insert", e) from e

        return len(full)

    async def _process(self, index: int, app_data_hash: AppDataHash) -> ItemOutcome:
        start = time.perf_counter()
        hex_hash = hash_hex(app_data_hash)
        try:
            size = await self.handle_one(app_data_hash)
        except ItemError as e:
            duration = time.perf_counter() - start
            outcome = ItemOutcome(
                index=index,
                app_data_hash=hex_hash,
                status="err",
                step=e.step,
                error_message=str(e),
                error_category=e.category.value,
                duration_ms=int(duration * 1000),
            )
            metrics.record_failure(e.step, e.category.value, duration)
            log_with_context(
                logger,
                logging.WARNING,
                outcome.report_line(),
                item_index=index,
                app_data_hash=hex_hash,
                operation=e.step,
                error_category=e.category.value,
                error_message=str(e.cause),
                duration_ms=outcome.duration_ms,
            )
            return outcome
        except Exception as e:
            # Unexpected bug in one item; report it and keep the pass going
            duration = time.perf_counter() - start
            outcome = ItemOutcome(
                index=index,
                app_data_hash=hex_hash,
                status="err",
                step="unhandled",
                error_message=repr(e),
                error_category=ErrorCategory.UNKNOWN.value,
                duration_ms=int(duration * 1000),
            )
            metrics.record_failure("unhandled", ErrorCategory.UNKNOWN.value, duration)
            logger.error(
                f"err {index} {hex_hash} unhandled: {e!r}",
                exc_info=e,
                extra={
                    "item_index": index,
                    "app_data_hash": hex_hash,
                    "error_category": ErrorCategory.UNKNOWN.value,
                    "duration_ms": outcome.duration_ms,
                },
            )
            return outcome

        duration = time.perf_counter() - start
        outcome = ItemOutcome(
            index=index,
            app_data_hash=hex_hash,
            status="ok",
            bytes_fetched=size,
            duration_ms=int(duration * 1000),
        )
        metrics.record_success(size, duration)
        log_with_context(
            logger,
            logging.INFO,
            outcome.report_line(),
            item_index=index,
            app_data_hash=hex_hash,
            bytes_fetched=size,
            duration_ms=outcome.duration_ms,
        )
        return outcome

    async def run_items(self, hashes: Sequence[AppDataHash]) -> List[ItemOutcome]:
        """Process every hash and return one outcome per hash, in list order."""
        results: Dict[int, ItemOutcome] = {}
        work = iter(enumerate(hashes))

        async def worker() -> None:
            # Workers share one iterator; next() never yields to the loop
            for index, app_data_hash in work:
                results[index] = await self._process(index, app_data_hash)

        workers = [
            asyncio.ensure_future(worker())
            for _ in range(min(self.concurrency, len(hashes)))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for task in workers:
                task.cancel()

        return [results[i] for i in range(len(hashes))]

    async def run(self, hashes: Sequence[AppDataHash]) -> BackfillSummary:
        """Process every hash and summarize the pass."""
        start = time.perf_counter()
        outcomes = await self.run_items(hashes)

        failures = Counter(o.error_category for o in outcomes if not o.success)
        inserted = sum(1 for o in outcomes if o.success)
        summary = BackfillSummary(
            total=len(outcomes),
            inserted=inserted,
            failed=len(outcomes) - inserted,
            dry_run=self.dry_run,
            failures_by_category=dict(failures),
            duration_seconds=round(time.perf_counter() - start, 3),
        )
        log_with_context(
            logger,
            logging.INFO,
            summary.report_line(),
            total=summary.total,
            inserted=summary.inserted,
            failed=summary.failed,
            dry_run=summary.dry_run,
        )
        return summary


async def run_backfill(
    config: BackfillConfig,
    gateway: Optional[IpfsGateway] = None,
    store: Optional[PostgresStore] = None,
) -> BackfillSummary:
    """
    Run one complete backfill pass.

    Args:
        config: Backfill configuration
        gateway: Optional pre-built gateway client (built from config if None)
        store: Optional pre-built store client (built from config if None)

    Returns:
        BackfillSummary for the pass

    Raises:
        StoreError: If the work list cannot be loaded
    """
    set_log_context(stage="backfill")

    gateway = gateway or IpfsGateway(
        config.ipfs_url,
        query=config.ipfs_auth,
        timeout_seconds=config.timeout_seconds,
        max_connections=config.concurrency,
    )
    store = store or PostgresStore(config.postgres_url, pool_size=config.concurrency)

    async with store, gateway:
        logger.info("Fetching all missing app data hashes.")
        hashes = await store.app_data_without_full()
        logger.info(f"Done. Have {len(hashes)} total.", extra={"total": len(hashes)})

        runner = BackfillRunner(
            gateway,
            store,
            concurrency=config.concurrency,
            dry_run=config.dry_run,
        )
        return await runner.run(hashes)
