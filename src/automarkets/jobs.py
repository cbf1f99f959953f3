"""Creation and resolution jobs: wire Settings to the engine and guard against overlapping runs.

Shared by the CLI, the scheduler and the HTTP triggers.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

import structlog

from automarkets.config import Settings
from automarkets.engine.builder import MarketBuilder
from automarkets.engine.images import BattleImageCompositor, cleanup_old_images
from automarkets.engine.resolver import ResolutionChecker
from automarkets.models import CycleResult, MarketType, ResolutionReport
from automarkets.notify.publisher import LogPublisher, Publisher, WebhookPublisher
from automarkets.provider.base import TokenDataProvider
from automarkets.provider.solana_tracker import SolanaTrackerClient
from automarkets.storage.automation import append_automation_log, get_automation_config, touch_last_run
from automarkets.storage.db import get_connection, init_schema
from automarkets.storage.markets import MarketStore

log = structlog.get_logger(__name__)

_creation_lock = threading.Lock()
_resolution_lock = threading.Lock()


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_provider(settings: Settings) -> SolanaTrackerClient:
    return SolanaTrackerClient(
        api_key=settings.provider_api_key,
        base_url=settings.provider_base_url,
        timeout=settings.provider_timeout_sec,
        requests_per_second=settings.requests_per_second,
    )


def build_publisher(settings: Settings) -> Publisher:
    if settings.webhook_url:
        return WebhookPublisher(settings.webhook_url)
    return LogPublisher()


def build_compositor(settings: Settings) -> BattleImageCompositor:
    return BattleImageCompositor(settings.uploads_dir)


def _close(*resources: object) -> None:
    for r in resources:
        close = getattr(r, "close", None)
        if callable(close):
            close()


def _log_type(result: CycleResult) -> str:
    if not result.success:
        return "error"
    if not result.market_created or result.market_type is None:
        return "skipped"
    return result.market_type.value


def run_creation_job(
    settings: Settings,
    *,
    manual: bool = False,
    forced_type: MarketType | None = None,
    test_mode: bool | None = None,
    provider: TokenDataProvider | None = None,
    publisher: Publisher | None = None,
    compositor: Callable[[str, str], str] | None = None,
    clock: Callable[[], int] = _now_ms,
) -> CycleResult:
    """Run one creation cycle and record it in the execution log.

    Scheduled runs (manual=False) do nothing while automation is disabled.
    Overlapping calls return immediately without creating anything.
    """
    if not _creation_lock.acquire(blocking=False):
        log.warning("creation_cycle_already_running")
        return CycleResult(success=True, reason="already_running")

    owned: list[object] = []
    conn = None
    try:
        conn = get_connection(settings.db_path)
        init_schema(conn)
        if not manual and not get_automation_config(conn).enabled:
            log.info("automation_disabled")
            append_automation_log(conn, "disabled", True, error_message="automation disabled", execution_time=clock())
            return CycleResult(success=True, reason="automation_disabled")

        if provider is None:
            provider = build_provider(settings)
            owned.append(provider)
        if publisher is None:
            publisher = build_publisher(settings)
            owned.append(publisher)
        if compositor is None:
            compositor = build_compositor(settings)
            owned.append(compositor)

        builder = MarketBuilder(
            provider,
            MarketStore(conn),
            publisher=publisher,
            compositor=compositor,
            clock=clock,
            test_mode=settings.test_mode if test_mode is None else test_mode,
        )
        result = builder.run(forced_type)

        addresses = result.token_addresses + [None, None]
        append_automation_log(
            conn,
            question_type=_log_type(result),
            success=result.success,
            market_id=result.market_id,
            token_address=addresses[0],
            token_address2=addresses[1],
            error_message=result.error or (None if result.market_created else result.reason),
            execution_time=clock(),
        )
        if result.market_created:
            touch_last_run(conn, clock())
        return result
    finally:
        _close(*owned)
        if conn is not None:
            conn.close()
        _creation_lock.release()


def run_resolution_job(
    settings: Settings,
    *,
    provider: TokenDataProvider | None = None,
    publisher: Publisher | None = None,
    clock: Callable[[], int] = _now_ms,
) -> ResolutionReport:
    """Run one resolution pass over all pending markets. Not gated by the automation flag."""
    if not _resolution_lock.acquire(blocking=False):
        log.warning("resolution_check_already_running")
        return ResolutionReport(skipped="already_running")

    owned: list[object] = []
    conn = None
    try:
        conn = get_connection(settings.db_path)
        init_schema(conn)
        if provider is None:
            provider = build_provider(settings)
            owned.append(provider)
        if publisher is None:
            publisher = build_publisher(settings)
            owned.append(publisher)
        checker = ResolutionChecker(
            provider,
            MarketStore(conn),
            publisher=publisher,
            clock=clock,
            window_sec=settings.resolution_window_sec,
            chart_interval=settings.chart_interval,
            chart_limit=settings.chart_limit,
        )
        return checker.run()
    finally:
        _close(*owned)
        if conn is not None:
            conn.close()
        _resolution_lock.release()


def run_image_cleanup(settings: Settings) -> dict:
    return cleanup_old_images(settings.uploads_dir, settings.image_max_age_days)
