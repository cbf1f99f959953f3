"""Automation config (global enable flag) and creation-cycle execution log."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from automarkets.models import AutomationConfig, AutomationLogEntry

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

LOG_COLUMNS = [
    "id", "execution_time", "market_id", "question_type", "token_address", "token_address2",
    "success", "error_message",
]


def get_automation_config(conn: DuckDBPyConnection) -> AutomationConfig:
    """Return the config row, or the default (disabled) when none exists yet."""
    row = conn.execute("SELECT enabled, last_run FROM automation_config WHERE id = 1").fetchone()
    if not row:
        return AutomationConfig()
    return AutomationConfig(enabled=bool(row[0]), last_run=row[1])


def set_automation_enabled(conn: DuckDBPyConnection, enabled: bool) -> AutomationConfig:
    conn.execute(
        """
        INSERT INTO automation_config (id, enabled) VALUES (1, ?)
        ON CONFLICT (id) DO UPDATE SET enabled = excluded.enabled
        """,
        [enabled],
    )
    return get_automation_config(conn)


def touch_last_run(conn: DuckDBPyConnection, last_run: int) -> None:
    """Record the time of the last successful creation without changing the flag."""
    conn.execute(
        """
        INSERT INTO automation_config (id, enabled, last_run) VALUES (1, false, ?)
        ON CONFLICT (id) DO UPDATE SET last_run = excluded.last_run
        """,
        [last_run],
    )


def append_automation_log(
    conn: DuckDBPyConnection,
    question_type: str,
    success: bool,
    market_id: int | None = None,
    token_address: str | None = None,
    token_address2: str | None = None,
    error_message: str | None = None,
    execution_time: int | None = None,
) -> None:
    """Append one execution log row."""
    conn.execute(
        """
        INSERT INTO automation_logs (execution_time, market_id, question_type, token_address, token_address2, success, error_message)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            execution_time or int(time.time() * 1000),
            market_id,
            question_type,
            token_address,
            token_address2,
            success,
            error_message,
        ],
    )


def recent_automation_logs(conn: DuckDBPyConnection, limit: int = 50) -> list[AutomationLogEntry]:
    """Newest-first execution log entries."""
    rows = conn.execute(
        f"SELECT {', '.join(LOG_COLUMNS)} FROM automation_logs ORDER BY id DESC LIMIT ?",
        [limit],
    ).fetchall()
    return [AutomationLogEntry(**dict(zip(LOG_COLUMNS, r))) for r in rows]
