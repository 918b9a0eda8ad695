"""Command history store with SQLite persistence."""

import sqlite3
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Self

from repty.logging import get_logger
from repty.models import Alias, Command, CommandChain, HistoryStats, join_chain

logger = get_logger("store")

DAY_MS = 24 * 60 * 60 * 1000

ALIAS_KINDS = {"single", "chain"}


class StoreNotInitializedError(RuntimeError):
    """Raised when the store is used before it is opened or after it is closed."""


@dataclass
class SearchFilters:
    """Filters for searching the command history."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    command_type: str | None = None
    keywords: list[str] = field(default_factory=list)
    directory: str | None = None
    project_root: str | None = None


def to_ms(value: datetime) -> int:
    """Convert a datetime to a Unix timestamp in milliseconds."""
    return int(value.timestamp() * 1000)


def now_ms() -> int:
    """Current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def _row_to_command(row: sqlite3.Row) -> Command:
    return Command(
        id=row["id"],
        command=row["command"],
        timestamp=row["timestamp"],
        directory=row["directory"],
        exit_code=row["exit_code"],
        tags=row["tags"],
        description=row["description"],
    )


def _row_to_chain(row: sqlite3.Row) -> CommandChain:
    return CommandChain(
        id=row["id"],
        commands_text=row["commands_text"],
        count=row["count"],
        last_used=row["last_used"],
    )


class CommandStore:
    """Manages command history persistence in SQLite database.

    Stores logged commands, recurring command chains and user aliases.
    All listings are returned pre-sorted: commands by timestamp descending,
    chains by count then last use, both descending.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize command store with database path.

        Args:
            db_path: Path to SQLite database file. Parent directories
                     will be created if they don't exist.
        """
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self.ensure_schema()

    @property
    def conn(self) -> sqlite3.Connection:
        """Open database connection.

        Raises:
            StoreNotInitializedError: If the store has been closed
        """
        if self._conn is None:
            raise StoreNotInitializedError(f"Command store is not open: {self._db_path}")
        return self._conn

    def ensure_schema(self) -> None:
        """Create the commands, command_chains and aliases tables if they don't exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS commands (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                command TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                directory TEXT NOT NULL,
                exit_code INTEGER,
                tags TEXT,
                description TEXT
            );

            CREATE TABLE IF NOT EXISTS command_chains (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                commands_text TEXT NOT NULL UNIQUE,
                count INTEGER DEFAULT 1,
                last_used INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS aliases (
                name TEXT PRIMARY KEY,
                commands_text TEXT NOT NULL,
                type TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_timestamp ON commands(timestamp);
            CREATE INDEX IF NOT EXISTS idx_directory ON commands(directory);
            CREATE INDEX IF NOT EXISTS idx_chain_usage ON command_chains(count DESC, last_used DESC);
        """)
        self.conn.commit()

    def insert_command(self, cmd: Command) -> int:
        """Insert a logged command.

        Args:
            cmd: Command to store (its id is ignored)

        Returns:
            Row id of the new command
        """
        cursor = self.conn.execute(
            """
            INSERT INTO commands (command, timestamp, directory, exit_code, tags, description)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (cmd.command, cmd.timestamp, cmd.directory, cmd.exit_code, cmd.tags, cmd.description),
        )
        self.conn.commit()
        logger.debug("Inserted command: id=%s directory=%s", cursor.lastrowid, cmd.directory)
        return cursor.lastrowid

    def search_commands(self, filters: SearchFilters, limit: int = 50) -> list[Command]:
        """Search commands matching all given filters.

        Date bounds are inclusive, keywords are OR'd substring matches and
        the command type is matched as a prefix. When a project root is set
        the directory filter widens to everything beneath that root.

        Args:
            filters: SearchFilters to apply
            limit: Maximum number of commands to return

        Returns:
            Matching commands, most recent first
        """
        clauses = []
        params: list[object] = []

        if filters.start_date is not None:
            clauses.append("timestamp >= ?")
            params.append(to_ms(filters.start_date))

        if filters.end_date is not None:
            clauses.append("timestamp <= ?")
            params.append(to_ms(filters.end_date))

        if filters.command_type:
            clauses.append("command LIKE ?")
            params.append(f"{filters.command_type}%")

        if filters.keywords:
            clauses.append("(" + " OR ".join("command LIKE ?" for _ in filters.keywords) + ")")
            params.extend(f"%{kw}%" for kw in filters.keywords)

        if filters.directory:
            if filters.project_root:
                clauses.append("directory LIKE ?")
                params.append(f"{filters.project_root}%")
            else:
                clauses.append("directory = ?")
                params.append(filters.directory)

        where = " AND ".join(clauses) if clauses else "1=1"
        params.append(limit)

        cursor = self.conn.execute(
            f"""
            SELECT id, command, timestamp, directory, exit_code, tags, description
            FROM commands
            WHERE {where}
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            params,
        )
        return [_row_to_command(row) for row in cursor]

    def get_recent_commands(self, limit: int = 20) -> list[Command]:
        """List the most recently logged commands across all directories.

        Returns:
            Commands, most recent first
        """
        cursor = self.conn.execute(
            """
            SELECT id, command, timestamp, directory, exit_code, tags, description
            FROM commands
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [_row_to_command(row) for row in cursor]

    def get_stats(self, now: int | None = None) -> HistoryStats:
        """Count all commands, and those logged in the last day and week."""
        if now is None:
            now = now_ms()

        def count(since: int | None = None) -> int:
            if since is None:
                row = self.conn.execute("SELECT COUNT(*) FROM commands").fetchone()
            else:
                row = self.conn.execute(
                    "SELECT COUNT(*) FROM commands WHERE timestamp >= ?", (since,)
                ).fetchone()
            return row[0] or 0

        return HistoryStats(
            total=count(),
            today=count(now - DAY_MS),
            this_week=count(now - 7 * DAY_MS),
        )

    def get_frequent_chains(self, limit: int = 10) -> list[CommandChain]:
        """List recorded chains, most used first, then most recently used."""
        cursor = self.conn.execute(
            """
            SELECT id, commands_text, count, last_used
            FROM command_chains
            ORDER BY count DESC, last_used DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [_row_to_chain(row) for row in cursor]

    def get_chain_by_id(self, chain_id: int) -> CommandChain | None:
        """Get a chain by its row id.

        Returns:
            CommandChain if found, None otherwise
        """
        row = self.conn.execute(
            "SELECT id, commands_text, count, last_used FROM command_chains WHERE id = ?",
            (chain_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_chain(row)

    def record_chain_usage(self, commands: list[str], now: int | None = None) -> None:
        """Record one observation of an ordered command sequence.

        Inserts the chain with count 1, or increments the count and refreshes
        last_used when the canonical text is already stored.

        Args:
            commands: Commands in chronological order, oldest first
            now: Observation time in milliseconds (defaults to current time)
        """
        if now is None:
            now = now_ms()
        commands_text = join_chain(commands)

        self.conn.execute(
            """
            INSERT INTO command_chains (commands_text, count, last_used)
            VALUES (?, 1, ?)
            ON CONFLICT(commands_text) DO UPDATE SET
                count = count + 1,
                last_used = excluded.last_used
            """,
            (commands_text, now),
        )
        self.conn.commit()
        logger.debug("Recorded chain usage: commands=%d text=%s", len(commands), commands_text)

    def clear_chains(self) -> None:
        """Delete every recorded chain."""
        self.conn.execute("DELETE FROM command_chains")
        self.conn.commit()

    def clear_history(self) -> None:
        """Delete all commands, chains and aliases."""
        self.conn.execute("DELETE FROM commands")
        self.conn.execute("DELETE FROM command_chains")
        self.conn.execute("DELETE FROM aliases")
        self.conn.commit()

    def add_alias(self, name: str, commands_text: str, kind: str) -> None:
        """Create or replace an alias.

        Args:
            name: Alias name
            commands_text: Command, or canonical chain text for chain aliases
            kind: 'single' or 'chain'
        """
        if kind not in ALIAS_KINDS:
            raise ValueError(f"Invalid alias kind: {kind}")

        self.conn.execute(
            "INSERT OR REPLACE INTO aliases (name, commands_text, type) VALUES (?, ?, ?)",
            (name, commands_text, kind),
        )
        self.conn.commit()

    def get_alias(self, name: str) -> Alias | None:
        """Get an alias by name.

        Returns:
            Alias if found, None otherwise
        """
        row = self.conn.execute(
            "SELECT name, commands_text, type FROM aliases WHERE name = ?",
            (name,),
        ).fetchone()
        if row is None:
            return None
        return Alias(name=row["name"], commands_text=row["commands_text"], kind=row["type"])

    def list_aliases(self) -> list[Alias]:
        """List all aliases ordered by name."""
        cursor = self.conn.execute(
            "SELECT name, commands_text, type FROM aliases ORDER BY name ASC"
        )
        return [
            Alias(name=row["name"], commands_text=row["commands_text"], kind=row["type"])
            for row in cursor
        ]

    def delete_alias(self, name: str) -> bool:
        """Delete an alias.

        Returns:
            True if an alias was deleted, False if none existed
        """
        cursor = self.conn.execute("DELETE FROM aliases WHERE name = ?", (name,))
        self.conn.commit()
        return cursor.rowcount > 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Exit context manager, closing database connection."""
        self.close()
