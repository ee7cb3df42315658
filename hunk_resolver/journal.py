"""SQLite-backed journal of applied resolutions."""

import sqlite3
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional


@dataclass
class JournalEntry:
    """One applied resolution. hunk_id is None for whole-file strategies."""
    path: str
    hunk_id: Optional[int]
    strategy: str
    fingerprint_before: Optional[str]
    fingerprint_after: Optional[str]
    staged: bool
    resolved_at: str

    def to_dict(self) -> dict:
        return asdict(self)


class ResolutionJournal:
    """Append-only log of resolutions for later review."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), isolation_level=None,
                                    check_same_thread=False)
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS resolutions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                path TEXT NOT NULL,
                hunk_id INTEGER,
                strategy TEXT NOT NULL,
                fingerprint_before TEXT,
                fingerprint_after TEXT,
                staged INTEGER NOT NULL,
                resolved_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_resolutions_path ON resolutions (path);
        """)

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def record(self, entry: JournalEntry) -> None:
        """Append a resolution."""
        self.conn.execute(
            """INSERT INTO resolutions
               (path, hunk_id, strategy, fingerprint_before, fingerprint_after,
                staged, resolved_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (entry.path, entry.hunk_id, entry.strategy, entry.fingerprint_before,
             entry.fingerprint_after, int(entry.staged), entry.resolved_at)
        )

    def history(self, path: Optional[str] = None) -> list[JournalEntry]:
        """Return resolutions in the order they were applied, optionally for one path."""
        query = """SELECT path, hunk_id, strategy, fingerprint_before,
                          fingerprint_after, staged, resolved_at
                   FROM resolutions"""
        params: tuple = ()
        if path is not None:
            query += " WHERE path = ?"
            params = (path,)
        query += " ORDER BY id"
        return [
            JournalEntry(
                path=row[0],
                hunk_id=row[1],
                strategy=row[2],
                fingerprint_before=row[3],
                fingerprint_after=row[4],
                staged=bool(row[5]),
                resolved_at=row[6],
            )
            for row in self.conn.execute(query, params)
        ]

    def count(self) -> int:
        """Get the number of recorded resolutions."""
        cursor = self.conn.execute("SELECT COUNT(*) FROM resolutions")
        return cursor.fetchone()[0]

    def clear(self) -> None:
        """Delete the database file."""
        self.conn.close()
        if self.db_path.exists():
            self.db_path.unlink()
