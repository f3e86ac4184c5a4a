import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from secondbrain.config import DB_PATH, MAX_HISTORY
from secondbrain.models import CaptureRecord, CaptureTrigger, ContentKind


SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS captures (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    kind       TEXT NOT NULL,
    category   TEXT NOT NULL,
    filename   TEXT NOT NULL,
    path       TEXT NOT NULL,
    preview    TEXT,
    trigger    TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime'))
);

CREATE INDEX IF NOT EXISTS idx_captures_created_at ON captures(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_captures_kind ON captures(kind);

CREATE VIRTUAL TABLE IF NOT EXISTS captures_fts USING fts5(
    filename,
    preview,
    content='captures',
    content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS captures_ai AFTER INSERT ON captures BEGIN
    INSERT INTO captures_fts(rowid, filename, preview)
    VALUES (new.id, new.filename, new.preview);
END;

CREATE TRIGGER IF NOT EXISTS captures_ad AFTER DELETE ON captures BEGIN
    INSERT INTO captures_fts(captures_fts, rowid, filename, preview)
    VALUES ('delete', old.id, old.filename, old.preview);
END;
"""

DATA_FOLDER_KEY = "data_folder"
ORGANIZE_BY_TYPE_KEY = "organize_by_type"
AUTO_SAVE_KEY = "auto_save"


class StorageManager:
    """SQLite-backed settings and capture history.

    Saved files themselves live in the user's data folder; this database only
    remembers where they went so they can be listed and searched.

    One connection is shared by the menu bar thread and the capture worker.
    Every statement and its commit run under ``_lock`` so one thread never
    commits the other's half-finished work.
    """

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        with self._lock:
            self._conn.executescript(SCHEMA)
            self._conn.commit()

    # Settings

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            self._conn.commit()

    def delete_setting(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM settings WHERE key = ?", (key,))
            self._conn.commit()

    def _get_flag(self, key: str, default: bool) -> bool:
        value = self.get_setting(key)
        if value is None:
            return default
        return value == "1"

    @property
    def data_folder(self) -> str | None:
        return self.get_setting(DATA_FOLDER_KEY)

    @data_folder.setter
    def data_folder(self, path: str | Path | None) -> None:
        if path is None:
            self.delete_setting(DATA_FOLDER_KEY)
        else:
            self.set_setting(DATA_FOLDER_KEY, str(path))

    @property
    def organize_by_type(self) -> bool:
        return self._get_flag(ORGANIZE_BY_TYPE_KEY, True)

    @organize_by_type.setter
    def organize_by_type(self, enabled: bool) -> None:
        self.set_setting(ORGANIZE_BY_TYPE_KEY, "1" if enabled else "0")

    @property
    def auto_save(self) -> bool:
        return self._get_flag(AUTO_SAVE_KEY, False)

    @auto_save.setter
    def auto_save(self, enabled: bool) -> None:
        self.set_setting(AUTO_SAVE_KEY, "1" if enabled else "0")

    # Capture history

    def add_capture(self, record: CaptureRecord) -> int:
        with self._lock:
            cursor = self._conn.execute(
                """INSERT INTO captures (kind, category, filename, path, preview, trigger, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.kind.value,
                    record.category,
                    record.filename,
                    record.path,
                    record.preview,
                    record.trigger.value,
                    record.created_at.isoformat(),
                ),
            )
            self._conn.commit()
        return cursor.lastrowid

    def get_recent(self, limit: int = 25) -> list[CaptureRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM captures ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def search(self, query: str, limit: int = 25) -> list[CaptureRecord]:
        sanitized = self._sanitize_fts_query(query)
        if not sanitized:
            return []
        with self._lock:
            rows = self._conn.execute(
                """SELECT c.* FROM captures c
                   JOIN captures_fts f ON c.id = f.rowid
                   WHERE captures_fts MATCH ?
                   ORDER BY c.created_at DESC, c.id DESC
                   LIMIT ?""",
                (sanitized, limit),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def get_capture(self, capture_id: int) -> CaptureRecord | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM captures WHERE id = ?", (capture_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def purge_old(self, keep_count: int | None = None) -> int:
        """Forget all but the newest captures. Saved files are left alone."""
        keep = keep_count if keep_count is not None else MAX_HISTORY
        with self._lock:
            rows = self._conn.execute(
                "SELECT id FROM captures ORDER BY created_at DESC, id DESC LIMIT -1 OFFSET ?",
                (keep,),
            ).fetchall()
            for row in rows:
                self._conn.execute("DELETE FROM captures WHERE id = ?", (row["id"],))
            if rows:
                self._conn.commit()
        return len(rows)

    def clear_all(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM captures")
            self._conn.commit()

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) as cnt FROM captures").fetchone()
        return row["cnt"]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _sanitize_fts_query(query: str) -> str:
        # Quote each token to prevent FTS5 syntax errors from special chars
        tokens = query.split()
        if not tokens:
            return ""
        quoted = ['"' + token.replace('"', '""') + '"' for token in tokens]
        return " ".join(quoted)

    def _row_to_record(self, row: sqlite3.Row) -> CaptureRecord:
        return CaptureRecord(
            id=row["id"],
            kind=ContentKind(row["kind"]),
            category=row["category"],
            filename=row["filename"],
            path=row["path"],
            preview=row["preview"],
            trigger=CaptureTrigger(row["trigger"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
