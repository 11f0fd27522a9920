"""
Repository pattern for data access.

Handles reading accounts and usage records from the usage store, plus the
write helpers used to seed it.
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from .db import DEFAULT_DB_PATH, from_db_timestamp, get_connection, to_db_timestamp
from .models import UsageRecord, UsageType, UserAccount

logger = logging.getLogger(__name__)

_USAGE_COLUMNS = """
    user_id, usage_type, begin_time, end_time, gear_id, app_name,
    gear_size, addtl_fs_gb, cart_name
"""


def _row_to_record(row) -> UsageRecord:
    return UsageRecord(
        user_id=row[0],
        usage_type=UsageType(row[1]),
        begin_time=from_db_timestamp(row[2]),
        end_time=from_db_timestamp(row[3]),
        gear_id=row[4],
        app_name=row[5],
        gear_size=row[6],
        addtl_fs_gb=row[7],
        cart_name=row[8]
    )


class UsageRepository:
    """Repository for reading user accounts and usage records.

    Queries open a connection each, so iterators are materialised before
    the connection is closed.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def iter_accounts(
        self,
        plan_id: Optional[str] = None,
        login: Optional[str] = None
    ) -> Iterator[UserAccount]:
        """Iterate user accounts, optionally filtered by plan and login.

        Args:
            plan_id: Optional billing plan filter
            login: Optional exact login filter

        Returns:
            Iterator of matching accounts ordered by login
        """
        conn = get_connection(self.db_path)
        try:
            query = "SELECT id, login, plan_id FROM user_account"
            params = []
            conditions = []

            if plan_id:
                conditions.append("plan_id = ?")
                params.append(plan_id)
            if login:
                conditions.append("login = ?")
                params.append(login)

            if conditions:
                query += " WHERE " + " AND ".join(conditions)
            query += " ORDER BY login"

            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()

        logger.debug("Matched %d accounts (plan=%s, login=%s)", len(rows), plan_id, login)
        return iter([UserAccount(id=row[0], login=row[1], plan_id=row[2]) for row in rows])

    def iter_usage_records(
        self,
        user_ids: Optional[Iterable[str]] = None,
        app_name: Optional[str] = None,
        gear_id: Optional[str] = None,
        begin_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> Iterator[UsageRecord]:
        """Iterate usage records active at some point in a time window.

        A record matches the window when it begins before ``end_time`` and
        is either still open or ends after ``begin_time``.

        Args:
            user_ids: Optional set of account ids to restrict to
            app_name: Optional application name filter
            gear_id: Optional gear id filter
            begin_time: Optional window start
            end_time: Optional window end

        Returns:
            Iterator of records ordered by begin time
        """
        conn = get_connection(self.db_path)
        try:
            query = f"SELECT {_USAGE_COLUMNS} FROM usage_record"
            params = []
            conditions = []

            if user_ids is not None:
                user_ids = list(user_ids)
                if not user_ids:
                    return iter([])
                placeholders = ", ".join("?" for _ in user_ids)
                conditions.append(f"user_id IN ({placeholders})")
                params.extend(user_ids)
            if app_name:
                conditions.append("app_name = ?")
                params.append(app_name)
            if gear_id:
                conditions.append("gear_id = ?")
                params.append(gear_id)
            if end_time is not None:
                conditions.append("begin_time < ?")
                params.append(to_db_timestamp(end_time))
            if begin_time is not None:
                conditions.append("(end_time IS NULL OR end_time > ?)")
                params.append(to_db_timestamp(begin_time))

            if conditions:
                query += " WHERE " + " AND ".join(conditions)
            query += " ORDER BY begin_time, id"

            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()

        logger.debug("Matched %d usage records", len(rows))
        return iter([_row_to_record(row) for row in rows])


# Global repository instance
_default_repository: Optional[UsageRepository] = None


def get_repository(db_path: str = DEFAULT_DB_PATH) -> UsageRepository:
    """Get a repository instance.

    Reuses the previous instance while the database path is unchanged.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of UsageRepository
    """
    global _default_repository
    if _default_repository is None or _default_repository.db_path != db_path:
        _default_repository = UsageRepository(db_path)
    return _default_repository


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the user_account and usage_record tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS user_account (
                id TEXT PRIMARY KEY,
                login TEXT NOT NULL UNIQUE,
                plan_id TEXT
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL REFERENCES user_account(id),
                usage_type TEXT NOT NULL,
                begin_time TEXT NOT NULL,
                end_time TEXT,
                gear_id TEXT,
                app_name TEXT,
                gear_size TEXT,
                addtl_fs_gb INTEGER,
                cart_name TEXT
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_usage_record_user_time
            ON usage_record (user_id, begin_time)
        """)
        conn.commit()
    finally:
        conn.close()


def insert_user_account(account: UserAccount, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a single user account.

    Args:
        account: The account to store
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute(
            "INSERT INTO user_account (id, login, plan_id) VALUES (?, ?, ?)",
            (account.id, account.login, account.plan_id)
        )
        conn.commit()
    finally:
        conn.close()


def _record_params(record: UsageRecord):
    return (
        record.user_id,
        record.usage_type.value,
        to_db_timestamp(record.begin_time),
        to_db_timestamp(record.end_time),
        record.gear_id,
        record.app_name,
        record.gear_size,
        record.addtl_fs_gb,
        record.cart_name
    )


def insert_usage_record(record: UsageRecord, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a single usage record.

    Args:
        record: The usage record to store
        db_path: Path to SQLite database file
    """
    insert_usage_records([record], db_path)


def insert_usage_records(records: List[UsageRecord], db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert multiple usage records atomically.

    All records are inserted in a single transaction.

    Args:
        records: List of usage records to store
        db_path: Path to SQLite database file
    """
    if not records:
        return

    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        for record in records:
            conn.execute(f"""
                INSERT INTO usage_record ({_USAGE_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, _record_params(record))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
