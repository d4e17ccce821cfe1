"""
Forward-only SQL migrations for the content hub database.

Each ``NNN_name.sql`` file in the migrations directory is applied once, in
filename order. Anything after a ``-- Down`` marker is kept for manual
rollback and never executed.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).parent / "migrations"
DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str | Path = DEFAULT_MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _open(self) -> sqlite3.Connection:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                filename TEXT PRIMARY KEY,
                applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
            );
            """
        )
        return conn

    def available(self) -> list[Path]:
        return sorted(self.migrations_dir.glob("*.sql"), key=lambda p: p.name)

    def pending(self) -> list[str]:
        """Filenames not yet recorded in schema_migrations."""
        conn = self._open()
        try:
            return self._pending(conn)
        finally:
            conn.close()

    def _pending(self, conn: sqlite3.Connection) -> list[str]:
        done = {row[0] for row in conn.execute("SELECT filename FROM schema_migrations")}
        return [p.name for p in self.available() if p.name not in done]

    def run_migrations(self) -> list[str]:
        """Apply pending migrations and return their filenames."""
        conn = self._open()
        try:
            todo = self._pending(conn)
            for filename in todo:
                logger.info("Applying migration %s", filename)
                self._apply(conn, filename)
            logger.info("Database %s up to date (%d applied)", self.db_path, len(todo))
            return todo
        finally:
            conn.close()

    def _apply(self, conn: sqlite3.Connection, filename: str) -> None:
        script = (self.migrations_dir / filename).read_text(encoding="utf-8")
        script = script.split(DOWN_MARKER, 1)[0]
        try:
            conn.executescript(script)
            conn.execute("INSERT INTO schema_migrations (filename) VALUES (?)", (filename,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Migration %s failed: %s", filename, e)
            raise RuntimeError(f"Migration {filename} failed: {e}") from e
