"""Poll cycle orchestration: fetch, dedup, render, dispatch, commit per source."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

import spacewatch.sources  # noqa: F401 (registers adapters)
from spacewatch.config import Config, load_source_configs
from spacewatch.delivery.dispatcher import TelegramDispatcher
from spacewatch.errors import DeliveryError, FetchError, RenderError, StoreWriteError
from spacewatch.render.renderer import render
from spacewatch.sources.adapter import SourceAdapter
from spacewatch.sources.items import NormalizedItem
from spacewatch.sources.registry import get_adapter_class
from spacewatch.storage.connection import get_connection
from spacewatch.storage.seen_store import DedupStore

logger = logging.getLogger(__name__)


@dataclass
class SourceResult:
    """Outcome of one source's pipeline within a cycle."""

    source_id: str
    status: str = "ok"  # ok | skipped | fetch_error | error
    items_seen: int = 0
    items_new: int = 0
    dispatched: int = 0
    baselined: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class CycleResult:
    started_at: str
    finished_at: str
    sources: list[SourceResult]

    @property
    def failed(self) -> list[SourceResult]:
        return [s for s in self.sources if s.errors]

    @property
    def dispatched(self) -> int:
        return sum(s.dispatched for s in self.sources)

    @property
    def status(self) -> str:
        if not self.failed:
            return "success"
        if len(self.failed) == len(self.sources):
            return "error"
        return "partial"

    def to_dict(self) -> dict:
        return {
            "dispatched": self.dispatched,
            "sources": [asdict(s) for s in self.sources],
        }


@dataclass
class PollContext:
    """Everything a cycle needs, built once at startup.

    ``commit_policy`` is ``"confirmed"`` (record a fingerprint only after
    Telegram confirms delivery) or ``"after_dispatch"`` (record it once the
    send call returns, delivered or not).
    """

    channel_id: str
    store: DedupStore
    dispatcher: TelegramDispatcher
    adapters: list[SourceAdapter]
    commit_policy: str = "confirmed"
    baseline_on_first_run: bool = True
    max_workers: int = 4
    failure_alert_threshold: int = 5
    locks: dict[str, threading.Lock] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for adapter in self.adapters:
            self.locks.setdefault(adapter.name, threading.Lock())


def build_context(config: Config) -> PollContext:
    """Instantiate configured adapters and register their store partitions."""
    adapters: list[SourceAdapter] = []
    for source_config in load_source_configs(config):
        source_type = source_config.get("type", "")
        adapter_cls = get_adapter_class(source_type)
        if adapter_cls is None:
            logger.warning("Unknown source type '%s', skipping", source_type)
            continue
        adapter = adapter_cls(config.fetch_timeout_seconds)
        adapter.configure(source_config)
        adapters.append(adapter)

    store = DedupStore(config.database_path)
    store.ensure_partitions({a.name: a.source_type for a in adapters})
    logger.info("Configured sources: %s", ", ".join(a.name for a in adapters) or "(none)")

    return PollContext(
        channel_id=config.telegram_chat_id,
        store=store,
        dispatcher=TelegramDispatcher(
            config.telegram_bot_token, max_retries=config.telegram_max_retries,
        ),
        adapters=adapters,
        commit_policy=config.commit_policy,
        baseline_on_first_run=config.baseline_on_first_run,
        max_workers=config.max_workers,
        failure_alert_threshold=config.source_failure_alert_threshold,
    )


def _record_source_failure(database_path: str, source_id: str, error_msg: str) -> int:
    """Record a fetch failure. Returns updated consecutive_failures count."""
    now = datetime.now(timezone.utc).isoformat()
    with get_connection(database_path) as conn:
        conn.execute(
            "INSERT INTO source_errors "
            "(source_id, consecutive_failures, last_error, last_failed_at) "
            "VALUES (?, 1, ?, ?) "
            "ON CONFLICT(source_id) DO UPDATE SET "
            "consecutive_failures = consecutive_failures + 1, "
            "last_error = excluded.last_error, last_failed_at = excluded.last_failed_at",
            (source_id, error_msg, now),
        )
        row = conn.execute(
            "SELECT consecutive_failures FROM source_errors WHERE source_id = ?",
            (source_id,),
        ).fetchone()
    return row["consecutive_failures"] if row else 1


def _record_source_success(database_path: str, source_id: str) -> None:
    """Reset the consecutive failure count after a successful fetch."""
    now = datetime.now(timezone.utc).isoformat()
    with get_connection(database_path) as conn:
        conn.execute(
            "INSERT INTO source_errors "
            "(source_id, consecutive_failures, last_succeeded_at) "
            "VALUES (?, 0, ?) "
            "ON CONFLICT(source_id) DO UPDATE SET "
            "consecutive_failures = 0, last_succeeded_at = excluded.last_succeeded_at",
            (source_id, now),
        )


def _is_seen(context: PollContext, adapter: SourceAdapter, item: NormalizedItem) -> bool:
    if context.store.exists(item.source_id, item.fingerprint):
        return True
    if adapter.similarity_window:
        recent = context.store.recent(item.source_id, adapter.similarity_window)
        return adapter.matches_seen(item, recent)
    return False


def _handle_fetch_failure(context: PollContext, adapter: SourceAdapter, exc: FetchError) -> None:
    logger.error("Source '%s' fetch failed: %s", adapter.name, exc)
    consecutive = _record_source_failure(context.store.database_path, adapter.name, str(exc))
    if consecutive == context.failure_alert_threshold:
        context.dispatcher.send_alert(
            context.channel_id,
            f"Source '{adapter.name}' has failed {consecutive} consecutive cycle(s). "
            "Check logs for details.",
        )


def _deliver(context: PollContext, item: NormalizedItem, result: SourceResult) -> None:
    """Render, dispatch, and commit one new item."""
    try:
        payload = render(item)
    except RenderError as exc:
        logger.error("Render failed for '%s' (%s): %s", item.source_id, item.fingerprint, exc)
        result.status = "error"
        result.errors.append(f"render: {exc}")
        return

    delivered = False
    settled = False
    try:
        context.dispatcher.send(context.channel_id, payload)
        delivered = True
    except DeliveryError as exc:
        result.status = "error"
        result.errors.append(f"delivery ({exc.kind}): {exc}")
        if exc.delivered:
            # Chunks already in the channel must not be posted again
            delivered = True
            logger.warning(
                "Partial delivery for '%s' (%s): %d chunk(s) sent before %s failure: %s",
                item.source_id, item.fingerprint, exc.delivered, exc.kind, exc,
            )
        elif not exc.transient:
            settled = True
            logger.error(
                "Dropping item from '%s' (%s) after permanent delivery failure: %s",
                item.source_id, item.fingerprint, exc,
            )
        else:
            logger.error(
                "Delivery failed for '%s' (%s, %s): %s",
                item.source_id, item.fingerprint, exc.kind, exc,
            )

    if delivered or settled or context.commit_policy == "after_dispatch":
        context.store.record(
            item.source_id, item.fingerprint, datetime.now(timezone.utc).isoformat()
        )
    if delivered:
        result.dispatched += 1
        logger.info("Dispatched new item from '%s' (%s)", item.source_id, item.fingerprint)


def _process_source(context: PollContext, adapter: SourceAdapter) -> SourceResult:
    result = SourceResult(adapter.name)

    try:
        items = [item for raw in adapter.fetch() for item in adapter.normalize(raw)]
    except FetchError as exc:
        _handle_fetch_failure(context, adapter, exc)
        result.status = "fetch_error"
        result.errors.append(f"fetch: {exc}")
        return result
    _record_source_success(context.store.database_path, adapter.name)
    result.items_seen = len(items)

    baseline = context.baseline_on_first_run and not context.store.is_baselined(adapter.name)
    try:
        for item in items:
            if _is_seen(context, adapter, item):
                continue
            if baseline:
                context.store.record(item.source_id, item.fingerprint)
                result.baselined += 1
                continue
            result.items_new += 1
            _deliver(context, item, result)
        if baseline:
            context.store.mark_baselined(adapter.name)
            logger.info(
                "Source '%s' baselined with %d item(s); nothing dispatched",
                adapter.name, result.baselined,
            )
    except StoreWriteError as exc:
        logger.error("Source '%s' could not commit seen state: %s", adapter.name, exc)
        result.status = "error"
        result.errors.append(f"store: {exc}")
    return result


def _run_source(context: PollContext, adapter: SourceAdapter) -> SourceResult:
    """Run one source's pipeline, skipping it if its previous run is in flight."""
    lock = context.locks.setdefault(adapter.name, threading.Lock())
    if not lock.acquire(blocking=False):
        logger.warning(
            "Source '%s' is still running from a previous cycle; skipping", adapter.name
        )
        return SourceResult(adapter.name, status="skipped")
    try:
        return _process_source(context, adapter)
    except Exception as exc:
        logger.exception("Source '%s' pipeline failed", adapter.name)
        return SourceResult(adapter.name, status="error", errors=[f"unexpected: {exc}"])
    finally:
        lock.release()


def run_cycle(context: PollContext) -> CycleResult:
    """Run every configured source once. Failures never cross sources."""
    started_at = datetime.now(timezone.utc).isoformat()
    logger.info("Poll cycle started (%d sources)", len(context.adapters))

    results: list[SourceResult] = []
    if context.adapters:
        workers = max(1, min(context.max_workers, len(context.adapters)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="source") as pool:
            futures = [pool.submit(_run_source, context, a) for a in context.adapters]
            results = [f.result() for f in futures]

    cycle = CycleResult(
        started_at=started_at,
        finished_at=datetime.now(timezone.utc).isoformat(),
        sources=results,
    )
    for failed in cycle.failed:
        logger.warning("Source '%s' finished with errors: %s", failed.source_id, "; ".join(failed.errors))
    logger.info(
        "Poll cycle complete: %d dispatched, %d source(s) failed",
        cycle.dispatched, len(cycle.failed),
    )
    return cycle
