"""
RECIPIENT STORE

Per-chat autopost settings and the append-only call log.

Implementations:
- InMemoryRecipientStore   process-local, logs capped at 100 per chat
- SQLiteRecipientStore     durable, tables telegram_chats / telegram_call_history

The scheduler treats the store as an async key-value/log API: config saves
are last-write-wins, there are no transactions across calls.
"""

import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import CallLog, RecipientConfig

logger = logging.getLogger(__name__)

DEFAULT_CALL_LOG_LIMIT = 20


class RecipientStore(ABC):

    @abstractmethod
    async def get_active_recipients(self) -> List[RecipientConfig]:
        """Recipients with autopost enabled."""

    @abstractmethod
    async def get_recipient(self, chat_id: str) -> Optional[RecipientConfig]:
        ...

    @abstractmethod
    async def get_call_logs(self, chat_id: str, limit: int = DEFAULT_CALL_LOG_LIMIT) -> List[CallLog]:
        """Most recent first."""

    @abstractmethod
    async def save_recipient_config(self, config: RecipientConfig):
        ...

    @abstractmethod
    async def append_call_log(self, chat_id: str, log: CallLog):
        ...

    @abstractmethod
    async def get_stats(self) -> Dict:
        ...


class InMemoryRecipientStore(RecipientStore):
    """Dict-backed store. Newest log first, at most max_logs_per_chat kept."""

    def __init__(self, max_logs_per_chat: int = 100):
        self.max_logs_per_chat = max_logs_per_chat
        self._chats: Dict[str, RecipientConfig] = {}
        self._logs: Dict[str, List[CallLog]] = {}

    async def get_active_recipients(self) -> List[RecipientConfig]:
        return [c for c in self._chats.values() if c.autopost_enabled]

    async def get_recipient(self, chat_id: str) -> Optional[RecipientConfig]:
        return self._chats.get(str(chat_id))

    async def get_call_logs(self, chat_id: str, limit: int = DEFAULT_CALL_LOG_LIMIT) -> List[CallLog]:
        return list(self._logs.get(str(chat_id), [])[:limit])

    async def save_recipient_config(self, config: RecipientConfig):
        self._chats[str(config.chat_id)] = config

    async def append_call_log(self, chat_id: str, log: CallLog):
        logs = self._logs.setdefault(str(chat_id), [])
        logs.insert(0, log)
        del logs[self.max_logs_per_chat:]

    async def get_stats(self) -> Dict:
        return {
            'backend': 'memory',
            'chats': len(self._chats),
            'active_chats': sum(1 for c in self._chats.values() if c.autopost_enabled),
            'call_logs': sum(len(logs) for logs in self._logs.values()),
        }


class SQLiteRecipientStore(RecipientStore):
    """
    SQLite-backed store.

    Each call opens its own short-lived connection; the queries are small
    and local, so they run directly on the event loop thread.
    """

    CHAT_COLUMNS = (
        'chat_id', 'chat_title', 'autopost_enabled', 'min_confidence_score',
        'max_calls_per_day', 'quiet_hours_start', 'quiet_hours_end',
        'call_count', 'last_call_at', 'vibe_mode',
    )

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_db()

    def _ensure_db_dir(self):
        directory = os.path.dirname(self.db_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)

    def _get_conn(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        try:
            conn = self._get_conn()
            cursor = conn.cursor()

            cursor.execute('''
            CREATE TABLE IF NOT EXISTS telegram_chats (
                chat_id TEXT PRIMARY KEY,
                chat_title TEXT NOT NULL DEFAULT 'Telegram Chat',
                autopost_enabled INTEGER NOT NULL DEFAULT 0,
                min_confidence_score REAL NOT NULL DEFAULT 6.5,
                max_calls_per_day INTEGER NOT NULL DEFAULT 10,
                quiet_hours_start INTEGER,
                quiet_hours_end INTEGER,
                call_count INTEGER NOT NULL DEFAULT 0,
                last_call_at TEXT,
                vibe_mode TEXT NOT NULL DEFAULT 'neutral'
            )
            ''')

            cursor.execute('''
            CREATE TABLE IF NOT EXISTS telegram_call_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                chat_id TEXT NOT NULL,
                mint TEXT NOT NULL,
                symbol TEXT NOT NULL,
                score REAL NOT NULL,
                created_at TEXT NOT NULL,
                delivered INTEGER NOT NULL DEFAULT 1,
                message_id INTEGER,
                triggered_by TEXT NOT NULL DEFAULT 'auto'
            )
            ''')

            cursor.execute(
                'CREATE INDEX IF NOT EXISTS idx_call_history_chat '
                'ON telegram_call_history(chat_id, created_at)'
            )

            conn.commit()
            conn.close()
            logger.info(f"[STORE] Recipient database ready: {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"[STORE] Failed to initialize recipient database: {e}")
            raise

    async def get_active_recipients(self) -> List[RecipientConfig]:
        try:
            conn = self._get_conn()
            rows = conn.execute(
                'SELECT * FROM telegram_chats WHERE autopost_enabled = 1'
            ).fetchall()
            conn.close()
            return [self._row_to_config(row) for row in rows]
        except sqlite3.Error as e:
            logger.error(f"[STORE] Error fetching active chats: {e}")
            return []

    async def get_recipient(self, chat_id: str) -> Optional[RecipientConfig]:
        try:
            conn = self._get_conn()
            row = conn.execute(
                'SELECT * FROM telegram_chats WHERE chat_id = ?', (str(chat_id),)
            ).fetchone()
            conn.close()
            return self._row_to_config(row) if row else None
        except sqlite3.Error as e:
            logger.error(f"[STORE] Error fetching chat {chat_id}: {e}")
            return None

    async def get_call_logs(self, chat_id: str, limit: int = DEFAULT_CALL_LOG_LIMIT) -> List[CallLog]:
        try:
            conn = self._get_conn()
            rows = conn.execute(
                'SELECT * FROM telegram_call_history WHERE chat_id = ? '
                'ORDER BY created_at DESC, id DESC LIMIT ?',
                (str(chat_id), limit),
            ).fetchall()
            conn.close()
            return [CallLog.from_dict(dict(row)) for row in rows]
        except sqlite3.Error as e:
            logger.error(f"[STORE] Error fetching call logs for {chat_id}: {e}")
            return []

    async def save_recipient_config(self, config: RecipientConfig):
        data = config.to_dict()
        data['chat_id'] = str(config.chat_id)
        data['autopost_enabled'] = int(config.autopost_enabled)

        columns = ', '.join(self.CHAT_COLUMNS)
        placeholders = ', '.join(['?'] * len(self.CHAT_COLUMNS))
        updates = ', '.join(f"{c} = excluded.{c}" for c in self.CHAT_COLUMNS if c != 'chat_id')

        try:
            conn = self._get_conn()
            conn.execute(
                f"INSERT INTO telegram_chats ({columns}) VALUES ({placeholders}) "
                f"ON CONFLICT(chat_id) DO UPDATE SET {updates}",
                tuple(data[c] for c in self.CHAT_COLUMNS),
            )
            conn.commit()
            conn.close()
        except sqlite3.Error as e:
            logger.error(f"[STORE] Error saving chat {config.chat_id}: {e}")
            raise

    async def append_call_log(self, chat_id: str, log: CallLog):
        try:
            conn = self._get_conn()
            conn.execute(
                'INSERT INTO telegram_call_history '
                '(chat_id, mint, symbol, score, created_at, delivered, message_id, triggered_by) '
                'VALUES (?, ?, ?, ?, ?, ?, ?, ?)',
                (
                    str(chat_id), log.mint, log.symbol, log.score,
                    log.created_at.isoformat(), int(log.delivered),
                    log.message_id, log.triggered_by,
                ),
            )
            conn.commit()
            conn.close()
        except sqlite3.Error as e:
            logger.error(f"[STORE] Error appending call log for {chat_id}: {e}")
            raise

    async def get_stats(self) -> Dict:
        try:
            conn = self._get_conn()
            chats = conn.execute('SELECT COUNT(*) FROM telegram_chats').fetchone()[0]
            active = conn.execute(
                'SELECT COUNT(*) FROM telegram_chats WHERE autopost_enabled = 1'
            ).fetchone()[0]
            logs = conn.execute('SELECT COUNT(*) FROM telegram_call_history').fetchone()[0]
            conn.close()
        except sqlite3.Error as e:
            logger.error(f"[STORE] Error reading stats: {e}")
            return {'backend': 'sqlite', 'error': str(e)}

        return {
            'backend': 'sqlite',
            'db_path': self.db_path,
            'chats': chats,
            'active_chats': active,
            'call_logs': logs,
        }

    @staticmethod
    def _row_to_config(row: sqlite3.Row) -> RecipientConfig:
        data = dict(row)
        data['autopost_enabled'] = bool(data['autopost_enabled'])
        return RecipientConfig.from_dict(data)
