"""Job wiring: enable gate, execution log, overlap guard, publishers, scheduler registration."""

import httpx

from automarkets import jobs
from automarkets.jobs import run_creation_job, run_resolution_job
from automarkets.models import MarketType, TokenDetail
from automarkets.notify.publisher import WebhookPublisher
from automarkets.scheduler import CREATION_JOB_ID, RESOLUTION_JOB_ID, AutomationScheduler
from automarkets.storage.automation import get_automation_config, recent_automation_logs, set_automation_enabled
from automarkets.storage.db import get_connection, init_schema
from automarkets.storage.markets import MarketStore
from tests.conftest import NOW, FakeProvider, RecordingPublisher, addr, trending


def _conn(settings):
    conn = get_connection(settings.db_path)
    init_schema(conn)
    return conn


def _run(settings, provider, **kwargs):
    return run_creation_job(
        settings,
        provider=provider,
        publisher=RecordingPublisher(),
        compositor=lambda a, b: "/uploads/x.png",
        clock=lambda: NOW,
        **kwargs,
    )


def test_scheduled_creation_skipped_while_disabled(settings):
    provider = FakeProvider(trending=[trending(1, "BONK")])
    result = _run(settings, provider)
    assert result.success and not result.market_created
    assert result.reason == "automation_disabled"
    assert provider.calls == []
    conn = _conn(settings)
    try:
        logs = recent_automation_logs(conn)
        assert [e.question_type for e in logs] == ["disabled"]
    finally:
        conn.close()


def test_manual_creation_bypasses_flag_and_logs(settings):
    result = _run(settings, FakeProvider(trending=[trending(1, "BONK")]), manual=True)
    assert result.market_created
    conn = _conn(settings)
    try:
        entry = recent_automation_logs(conn)[0]
        assert entry.question_type == "market_cap"
        assert entry.success is True
        assert entry.market_id == result.market_id
        assert entry.token_address == addr(1)
        assert get_automation_config(conn).last_run == NOW
    finally:
        conn.close()


def test_enabled_scheduled_creation(settings):
    conn = _conn(settings)
    set_automation_enabled(conn, True)
    conn.close()
    result = _run(settings, FakeProvider(trending=[trending(1, "BONK")]), test_mode=True)
    assert result.market_created
    conn = _conn(settings)
    try:
        market = MarketStore(conn).get_market(result.market_id)
        assert market.expires_at == NOW + 5 * 60_000
    finally:
        conn.close()


def test_failed_cycle_is_logged_as_error(settings):
    provider = FakeProvider()
    provider.fail.add("list_trending")
    result = _run(settings, provider, manual=True)
    assert result.success is False
    conn = _conn(settings)
    try:
        entry = recent_automation_logs(conn)[0]
        assert entry.question_type == "error"
        assert entry.success is False
        assert "unavailable" in entry.error_message
    finally:
        conn.close()


def test_forced_type(settings):
    tokens = [trending(1, "AAA", market_cap=1_000_000), trending(2, "BBB", market_cap=1_000_000)]
    result = _run(settings, FakeProvider(trending=tokens), manual=True, forced_type=MarketType.BATTLE_DUMP)
    assert result.market_type == MarketType.BATTLE_DUMP
    assert result.token_addresses == [addr(1), addr(2)]


def test_overlapping_creation_is_skipped(settings):
    assert jobs._creation_lock.acquire(blocking=False)
    try:
        result = _run(settings, FakeProvider(trending=[trending(1, "BONK")]), manual=True)
    finally:
        jobs._creation_lock.release()
    assert result.reason == "already_running"
    assert not result.market_created


def test_resolution_job_runs_regardless_of_flag(settings):
    _run(settings, FakeProvider(trending=[trending(1, "BONK", market_cap=300_000)]), manual=True)
    expires = NOW + 120 * 60_000
    provider = FakeProvider(details={addr(1): TokenDetail(address=addr(1), market_cap=900_000)})
    report = run_resolution_job(settings, provider=provider, publisher=RecordingPublisher(), clock=lambda: expires)
    assert report.checked == 1 and report.resolved == 1


def test_overlapping_resolution_is_skipped(settings):
    assert jobs._resolution_lock.acquire(blocking=False)
    try:
        report = run_resolution_job(settings, provider=FakeProvider(), publisher=RecordingPublisher())
    finally:
        jobs._resolution_lock.release()
    assert report.skipped == "already_running"


def test_webhook_publisher_posts_and_swallows_errors():
    sent = []

    def handler(request):
        sent.append(request.read())
        return httpx.Response(200)

    pub = WebhookPublisher("https://hooks.test/x", http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    pub.publish("market:created", {"id": 1})
    assert b'"type":"market:created"' in sent[0].replace(b" ", b"")

    failing = WebhookPublisher(
        "https://hooks.test/x", http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    )
    failing.publish("market:created", {"id": 1})


def test_build_publisher_from_settings(settings):
    assert not isinstance(jobs.build_publisher(settings), WebhookPublisher)
    settings.notifications = {"webhook_url": "https://hooks.test/x"}
    assert isinstance(jobs.build_publisher(settings), WebhookPublisher)


def test_scheduler_registers_both_jobs(settings):
    scheduler = AutomationScheduler(settings)
    scheduler.configure()
    ids = {job.id for job in scheduler.scheduler.get_jobs()}
    assert ids == {CREATION_JOB_ID, RESOLUTION_JOB_ID}
    for job in scheduler.scheduler.get_jobs():
        assert job.max_instances == 1
    status = scheduler.status()
    assert status["running"] is False
    assert len(status["jobs"]) == 2
