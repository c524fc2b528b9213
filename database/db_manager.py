import logging
import os
import sqlite3
from utils.constants import DB_FILE, LAST_GENERATION_SETTING

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_FILE
        self._conn: sqlite3.Connection | None = None

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def initialize(self):
        """Create schema and seed defaults."""
        conn = self.get_connection()
        self._create_schema(conn)
        self._seed_defaults(conn)
        conn.commit()

    def _create_schema(self, conn: sqlite3.Connection):
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS recurring_items (
                id                   TEXT PRIMARY KEY,
                kind                 TEXT NOT NULL CHECK(kind IN ('expense','income')),
                title                TEXT NOT NULL,
                amount               TEXT NOT NULL,
                category             TEXT NOT NULL,
                note                 TEXT NOT NULL DEFAULT '',
                frequency            TEXT NOT NULL
                                     CHECK(frequency IN ('daily','weekly','monthly','yearly','custom')),
                custom_interval_days INTEGER NOT NULL DEFAULT 1 CHECK(custom_interval_days >= 1),
                weekdays             TEXT,
                day_of_month         INTEGER CHECK(day_of_month BETWEEN 1 AND 32),
                start_date           TEXT NOT NULL,
                end_date             TEXT,
                next_due_date        TEXT NOT NULL,
                last_generated_date  TEXT,
                is_active            INTEGER NOT NULL DEFAULT 1,
                created_at           TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS transactions (
                id                INTEGER PRIMARY KEY AUTOINCREMENT,
                type              TEXT NOT NULL CHECK(type IN ('income','expense')),
                amount            TEXT NOT NULL,
                category          TEXT NOT NULL,
                description       TEXT NOT NULL DEFAULT '',
                date              TEXT NOT NULL,
                origin            TEXT NOT NULL DEFAULT 'manual' CHECK(origin IN ('manual','recurring')),
                recurring_item_id TEXT REFERENCES recurring_items(id) ON DELETE SET NULL,
                created_at        TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_recurring_items_next_due ON recurring_items(next_due_date);
            CREATE INDEX IF NOT EXISTS idx_transactions_date        ON transactions(date);
            CREATE INDEX IF NOT EXISTS idx_transactions_recurring   ON transactions(recurring_item_id);

            CREATE TABLE IF NOT EXISTS app_settings (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)

    def _seed_defaults(self, conn: sqlite3.Connection):
        defaults = [
            (LAST_GENERATION_SETTING, ""),
        ]
        for key, value in defaults:
            conn.execute(
                "INSERT OR IGNORE INTO app_settings(key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_setting(self, key: str, default: str = "") -> str:
        conn = self.get_connection()
        row = conn.execute(
            "SELECT value FROM app_settings WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str):
        conn = self.get_connection()
        conn.execute(
            "INSERT OR REPLACE INTO app_settings(key, value) VALUES (?, ?)",
            (key, value),
        )
        conn.commit()

    @staticmethod
    def open(db_folder: str | None = None) -> "DatabaseManager":
        """Startup factory: open (creating if needed) the DB in db_folder or CWD."""
        if db_folder:
            os.makedirs(db_folder, exist_ok=True)
            path = os.path.join(db_folder, DB_FILE)
        else:
            path = DB_FILE
        logger.debug("Opening database %s", path)
        db = DatabaseManager(path)
        db.initialize()
        return db

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None
