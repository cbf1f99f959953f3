"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS market_seq START 1;
CREATE SEQUENCE IF NOT EXISTS automation_log_seq START 1;

-- Markets (automated rows carry market_type explicitly)
CREATE TABLE IF NOT EXISTS markets (
    id              BIGINT PRIMARY KEY DEFAULT nextval('market_seq'),
    question        VARCHAR NOT NULL,
    category        VARCHAR NOT NULL,
    market_type     VARCHAR,
    is_automated    BOOLEAN NOT NULL DEFAULT FALSE,
    token_address   VARCHAR NOT NULL,
    token_address2  VARCHAR,
    token_name      VARCHAR,
    token_name2     VARCHAR,
    image           VARCHAR,
    payout_type     VARCHAR NOT NULL DEFAULT 'proportional',
    status          VARCHAR NOT NULL DEFAULT 'active',
    resolved_outcome VARCHAR,
    created_at      BIGINT NOT NULL,
    expires_at      BIGINT NOT NULL,
    resolved_at     BIGINT
);

-- One tracking row per automated market, the only row the resolution checker mutates
CREATE TABLE IF NOT EXISTS resolution_tracking (
    market_id       BIGINT PRIMARY KEY,
    market_type     VARCHAR NOT NULL,
    target_value    DOUBLE NOT NULL,
    token_address   VARCHAR NOT NULL,
    token_address2  VARCHAR,
    status          VARCHAR NOT NULL DEFAULT 'pending',
    hit_time        BIGINT,
    hit_time2       BIGINT,
    last_checked    BIGINT
);

-- Global enable flag (single row, id = 1)
CREATE TABLE IF NOT EXISTS automation_config (
    id              INTEGER PRIMARY KEY,
    enabled         BOOLEAN NOT NULL DEFAULT FALSE,
    last_run        BIGINT
);

-- Creation cycle execution log
CREATE TABLE IF NOT EXISTS automation_logs (
    id              BIGINT PRIMARY KEY DEFAULT nextval('automation_log_seq'),
    execution_time  BIGINT NOT NULL,
    market_id       BIGINT,
    question_type   VARCHAR NOT NULL,
    token_address   VARCHAR,
    token_address2  VARCHAR,
    success         BOOLEAN NOT NULL,
    error_message   VARCHAR
);

-- Rotation state (single row, id = 1)
CREATE TABLE IF NOT EXISTS rotation_state (
    id               INTEGER PRIMARY KEY,
    last_market_type VARCHAR,
    last_battle_type VARCHAR,
    updated_at       BIGINT
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
