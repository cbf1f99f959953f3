"""Market Store: markets + resolution_tracking persistence with atomic lifecycle writes."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

import duckdb
import structlog

from automarkets.engine.rotation import RotationState
from automarkets.errors import StorageError
from automarkets.models import (
    Market,
    MarketStatus,
    MarketType,
    Outcome,
    ResolutionTracking,
    TrackingStatus,
)

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

MARKET_COLUMNS = [
    "id", "question", "category", "market_type", "is_automated", "token_address", "token_address2",
    "token_name", "token_name2", "image", "payout_type", "status", "resolved_outcome",
    "created_at", "expires_at", "resolved_at",
]
TRACKING_COLUMNS = [
    "market_id", "market_type", "target_value", "token_address", "token_address2",
    "status", "hit_time", "hit_time2", "last_checked",
]


def _market_from_row(row: tuple[Any, ...]) -> Market:
    return Market(**dict(zip(MARKET_COLUMNS, row)))


def _tracking_from_row(row: tuple[Any, ...]) -> ResolutionTracking:
    return ResolutionTracking(**dict(zip(TRACKING_COLUMNS, row)))


class MarketStore:
    """Create/read/update markets and their resolution tracking rows on one DuckDB connection."""

    def __init__(self, conn: DuckDBPyConnection) -> None:
        self.conn = conn

    @contextmanager
    def _transaction(self, action: str) -> Iterator[None]:
        """Run a block atomically; any failure rolls back and surfaces as StorageError."""
        self.conn.begin()
        try:
            yield
        except Exception as e:
            self.conn.rollback()
            log.error("storage_rollback", action=action, error=str(e))
            if isinstance(e, StorageError):
                raise
            raise StorageError(f"{action} failed: {e}") from e
        else:
            self.conn.commit()

    def _fetch(self, sql: str, params: list[Any] | None = None) -> list[tuple[Any, ...]]:
        try:
            return self.conn.execute(sql, params or []).fetchall()
        except duckdb.Error as e:
            raise StorageError(f"query failed: {e}") from e

    def _execute(self, sql: str, params: list[Any]) -> None:
        try:
            self.conn.execute(sql, params)
        except duckdb.Error as e:
            raise StorageError(f"update failed: {e}") from e

    # --- creation ---

    def create_market(self, market: Market) -> Market:
        """Insert a market row and return it with its id. Not transactional on its own."""
        row = self.conn.execute(
            """
            INSERT INTO markets (question, category, market_type, is_automated, token_address, token_address2,
                                 token_name, token_name2, image, payout_type, status, created_at, expires_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            [
                market.question,
                market.category,
                market.market_type.value if market.market_type else None,
                market.is_automated,
                market.token_address,
                market.token_address2,
                market.token_name,
                market.token_name2,
                market.image,
                market.payout_type,
                market.status.value,
                market.created_at,
                market.expires_at,
            ],
        ).fetchone()
        return market.model_copy(update={"id": int(row[0])})

    def create_resolution_tracking(self, tracking: ResolutionTracking) -> None:
        """Insert a tracking row. Not transactional on its own."""
        if tracking.market_id is None:
            raise StorageError("resolution tracking requires a market_id")
        self.conn.execute(
            """
            INSERT INTO resolution_tracking (market_id, market_type, target_value, token_address, token_address2, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                tracking.market_id,
                tracking.market_type.value,
                tracking.target_value,
                tracking.token_address,
                tracking.token_address2,
                tracking.status.value,
            ],
        )

    def create_automated_market(
        self,
        market: Market,
        tracking: ResolutionTracking,
        rotation: RotationState | None = None,
    ) -> Market:
        """Persist market + pending tracking row (+ rotation state) as one unit."""
        with self._transaction("create_automated_market"):
            created = self.create_market(market)
            self.create_resolution_tracking(tracking.model_copy(update={"market_id": created.id}))
            if rotation is not None:
                self._write_rotation_state(rotation, created.created_at)
        return created

    # --- reads ---

    def get_market(self, market_id: int) -> Market | None:
        rows = self._fetch(f"SELECT {', '.join(MARKET_COLUMNS)} FROM markets WHERE id = ?", [market_id])
        return _market_from_row(rows[0]) if rows else None

    def get_tracking(self, market_id: int) -> ResolutionTracking | None:
        rows = self._fetch(
            f"SELECT {', '.join(TRACKING_COLUMNS)} FROM resolution_tracking WHERE market_id = ?", [market_id]
        )
        return _tracking_from_row(rows[0]) if rows else None

    def list_markets(self, automated_only: bool = True, active_only: bool = False) -> list[Market]:
        """List markets newest first."""
        conditions = ["1=1"]
        if automated_only:
            conditions.append("is_automated = true")
        if active_only:
            conditions.append("status = 'active'")
        rows = self._fetch(
            f"SELECT {', '.join(MARKET_COLUMNS)} FROM markets WHERE {' AND '.join(conditions)} ORDER BY id DESC"
        )
        return [_market_from_row(r) for r in rows]

    def list_active_automated_markets(self) -> list[Market]:
        return self.list_markets(automated_only=True, active_only=True)

    def list_pending(self) -> list[tuple[Market, ResolutionTracking]]:
        """Pending tracking rows joined with their markets, oldest first."""
        market_cols = ", ".join(f"m.{c}" for c in MARKET_COLUMNS)
        tracking_cols = ", ".join(f"t.{c}" for c in TRACKING_COLUMNS)
        rows = self._fetch(
            f"""
            SELECT {market_cols}, {tracking_cols}
            FROM resolution_tracking t
            JOIN markets m ON m.id = t.market_id
            WHERE t.status = 'pending'
            ORDER BY m.id
            """
        )
        split = len(MARKET_COLUMNS)
        return [(_market_from_row(r[:split]), _tracking_from_row(r[split:])) for r in rows]

    # --- resolution transitions ---

    def record_check(
        self,
        market_id: int,
        checked_at: int,
        hit_time: int | None = None,
        hit_time2: int | None = None,
    ) -> None:
        """Stamp last_checked and record battle hit-times the first time they are observed."""
        self._execute(
            """
            UPDATE resolution_tracking
            SET last_checked = ?,
                hit_time = COALESCE(hit_time, ?),
                hit_time2 = COALESCE(hit_time2, ?)
            WHERE market_id = ?
            """,
            [checked_at, hit_time, hit_time2, market_id],
        )

    def _transition(self, market_id: int, market_status: MarketStatus, outcome: Outcome, resolved_at: int) -> None:
        tracking_status = (
            TrackingStatus.REFUNDED if market_status == MarketStatus.REFUNDED else TrackingStatus.RESOLVED
        )
        with self._transaction(f"{market_status.value} market {market_id}"):
            row = self.conn.execute(
                "SELECT status FROM resolution_tracking WHERE market_id = ?", [market_id]
            ).fetchone()
            if row is None:
                raise StorageError(f"no resolution tracking for market {market_id}")
            if row[0] != TrackingStatus.PENDING.value:
                raise StorageError(f"market {market_id} already {row[0]}")
            self.conn.execute(
                "UPDATE markets SET status = ?, resolved_outcome = ?, resolved_at = ? WHERE id = ?",
                [market_status.value, outcome.value, resolved_at, market_id],
            )
            self.conn.execute(
                "UPDATE resolution_tracking SET status = ?, last_checked = ? WHERE market_id = ?",
                [tracking_status.value, resolved_at, market_id],
            )

    def mark_resolved(self, market_id: int, outcome: Outcome, resolved_at: int) -> None:
        """pending -> resolved (terminal). Settlement consumers read resolved_outcome."""
        if outcome not in (Outcome.YES, Outcome.NO):
            raise StorageError(f"invalid resolution outcome: {outcome}")
        self._transition(market_id, MarketStatus.RESOLVED, outcome, resolved_at)

    def mark_refunded(self, market_id: int, resolved_at: int) -> None:
        """pending -> refunded (terminal)."""
        self._transition(market_id, MarketStatus.REFUNDED, Outcome.REFUNDED, resolved_at)

    # --- rotation state ---

    def load_rotation_state(self) -> RotationState:
        rows = self._fetch("SELECT last_market_type, last_battle_type FROM rotation_state WHERE id = 1")
        if not rows:
            return RotationState()
        row = rows[0]
        return RotationState(
            last_market_type=MarketType(row[0]) if row[0] else None,
            last_battle_type=MarketType(row[1]) if row[1] else None,
        )

    def _write_rotation_state(self, state: RotationState, updated_at: int) -> None:
        self.conn.execute(
            """
            INSERT INTO rotation_state (id, last_market_type, last_battle_type, updated_at)
            VALUES (1, ?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                last_market_type = excluded.last_market_type,
                last_battle_type = excluded.last_battle_type,
                updated_at = excluded.updated_at
            """,
            [
                state.last_market_type.value if state.last_market_type else None,
                state.last_battle_type.value if state.last_battle_type else None,
                updated_at,
            ],
        )


def open_store(conn: DuckDBPyConnection) -> MarketStore:
    """Wrap an initialised connection in a MarketStore."""
    try:
        conn.execute("SELECT 1 FROM markets LIMIT 1")
    except duckdb.Error as e:
        raise StorageError(f"market store not initialised: {e}") from e
    return MarketStore(conn)
