"""SQLite position store for the Sensex Options Tracker."""

import json
import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError as ModelValidationError

from sensextracker.errors import StorageError
from sensextracker.models import Position

logger = logging.getLogger(__name__)

# Column name -> JSON record field
POSITION_COLUMNS = {
    "id": "id",
    "entry_price": "entryPrice",
    "current_price": "currentPrice",
    "highest_price": "highestPrice",
    "quantity": "quantity",
    "trailing_percent": "trailingPercent",
    "option_type": "optionType",
    "strike": "strike",
    "stoploss": "stoploss",
    "status": "status",
    "update_log": "updateLog",
    "created_at": "createdAt",
    "exit_price": "exitPrice",
    "exited_at": "exitedAt",
    "final_pnl": "finalPnL",
}

REQUIRED_COLUMNS = [
    "id",
    "entry_price",
    "current_price",
    "highest_price",
    "quantity",
    "trailing_percent",
    "option_type",
    "strike",
    "stoploss",
    "status",
    "update_log",
    "created_at",
]


class PositionStore:
    """SQLite-backed persistence for the tracked position collection.

    The tracker loads the whole collection once at start and saves the
    whole collection after every mutation.
    """

    REQUIRED_TABLES = ["positions"]

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.

        Raises:
            StorageError: If the database cannot be created or opened.
        """
        self.db_path = Path(db_path)
        try:
            self._ensure_db_dir()
            self._init_schema()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open position store {self.db_path}: {e}") from e

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS positions (
                    id INTEGER PRIMARY KEY,
                    entry_price REAL,
                    current_price REAL,
                    highest_price REAL,
                    quantity INTEGER,
                    trailing_percent REAL,
                    option_type TEXT,
                    strike REAL,
                    stoploss REAL,
                    status TEXT,
                    update_log TEXT,
                    created_at TEXT,
                    exit_price REAL,
                    exited_at TEXT,
                    final_pnl REAL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    def save_positions(self, positions: list[Position]) -> None:
        """Replace the stored collection with the given positions.

        The write is a single transaction; on failure the previous
        collection stays stored.

        Args:
            positions: Full position collection.

        Raises:
            StorageError: If the collection cannot be written.
        """
        columns = list(POSITION_COLUMNS)
        placeholders = ", ".join("?" for _ in columns)

        rows = []
        for position in positions:
            record = position.to_record()
            row = []
            for column, field in POSITION_COLUMNS.items():
                value = record.get(field)
                if column == "update_log":
                    value = json.dumps(value)
                row.append(value)
            rows.append(row)

        try:
            conn = self._get_connection()
            try:
                with conn:
                    conn.execute("DELETE FROM positions")
                    conn.executemany(
                        f"INSERT INTO positions ({', '.join(columns)}) VALUES ({placeholders})",
                        rows,
                    )
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Failed to save %d options: %s", len(rows), e)
            raise StorageError(f"Failed to save options: {e}") from e

    def load_positions(self) -> list[Position]:
        """Load the stored collection.

        Rows missing a required field or failing validation are treated
        as corrupt and skipped.

        Returns:
            Positions ordered by id.

        Raises:
            StorageError: If the table cannot be read.
        """
        try:
            conn = self._get_connection()
            try:
                rows = conn.execute("SELECT * FROM positions ORDER BY id").fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to load options: {e}") from e

        positions = []
        for row in rows:
            missing = [c for c in REQUIRED_COLUMNS if row[c] is None]
            if missing:
                logger.warning("Skipping corrupt option %s: missing %s", row["id"], missing)
                continue

            record = {field: row[column] for column, field in POSITION_COLUMNS.items()}
            try:
                record["updateLog"] = json.loads(record["updateLog"])
                positions.append(Position.model_validate(record))
            except (json.JSONDecodeError, ModelValidationError) as e:
                logger.warning("Skipping corrupt option %s: %s", row["id"], e)

        return positions

    def clear(self) -> None:
        """Delete every stored position."""
        try:
            conn = self._get_connection()
            try:
                with conn:
                    conn.execute("DELETE FROM positions")
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to clear options: {e}") from e
