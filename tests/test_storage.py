"""
Unit tests for storage layer.

Tests schema creation, account and record queries, and window matching.
"""

import os
import tempfile
from datetime import datetime, timezone

import pytest

from gear_usage_report.storage.db import get_connection
from gear_usage_report.storage.models import UsageRecord, UsageType, UserAccount
from gear_usage_report.storage.repository import (
    UsageRepository,
    get_repository,
    initialize_schema,
    insert_usage_record,
    insert_usage_records,
    insert_user_account,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def db_path():
    """Initialized temporary database with two accounts."""
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "test.db")
        initialize_schema(path)
        insert_user_account(UserAccount(id="u1", login="alice", plan_id="silver"), path)
        insert_user_account(UserAccount(id="u2", login="bob", plan_id="free"), path)
        yield path


def _gear(user_id, begin, end=None, **kwargs):
    defaults = dict(
        gear_id="5237a1d0e0b8cd6a2a000001",
        app_name="app1",
        gear_size="small",
    )
    defaults.update(kwargs)
    return UsageRecord(
        user_id=user_id,
        usage_type=UsageType.GEAR_USAGE,
        begin_time=begin,
        end_time=end,
        **defaults
    )


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self, db_path):
        """Verify tables are created correctly."""
        conn = get_connection(db_path)
        try:
            cursor = conn.execute("""
                SELECT name FROM sqlite_master
                WHERE type='table' AND name IN ('user_account', 'usage_record')
                ORDER BY name
            """)
            assert [row[0] for row in cursor.fetchall()] == ["usage_record", "user_account"]

            cursor = conn.execute("PRAGMA table_info(usage_record)")
            column_names = [col[1] for col in cursor.fetchall()]
            assert column_names == [
                'id', 'user_id', 'usage_type', 'begin_time', 'end_time',
                'gear_id', 'app_name', 'gear_size', 'addtl_fs_gb', 'cart_name'
            ]
        finally:
            conn.close()

    def test_schema_creation_is_idempotent(self, db_path):
        initialize_schema(db_path)
        assert len(list(UsageRepository(db_path).iter_accounts())) == 2


class TestAccountQueries:
    """Test account lookups."""

    def test_all_accounts(self, db_path):
        accounts = list(UsageRepository(db_path).iter_accounts())
        assert [a.login for a in accounts] == ["alice", "bob"]

    def test_filter_by_plan(self, db_path):
        accounts = list(UsageRepository(db_path).iter_accounts(plan_id="silver"))
        assert accounts == [UserAccount(id="u1", login="alice", plan_id="silver")]

    def test_filter_by_login(self, db_path):
        accounts = list(UsageRepository(db_path).iter_accounts(login="bob"))
        assert [a.id for a in accounts] == ["u2"]

    def test_login_under_other_plan(self, db_path):
        accounts = list(UsageRepository(db_path).iter_accounts(plan_id="silver", login="bob"))
        assert accounts == []


class TestUsageRecordQueries:
    """Test usage record lookups."""

    def test_round_trip_fields(self, db_path):
        """Verify every field is stored and read back."""
        record = UsageRecord(
            user_id="u1",
            usage_type=UsageType.ADDTL_FS_GB,
            begin_time=utc(2024, 1, 1, 8, 0, 0),
            end_time=utc(2024, 1, 2, 8, 0, 0),
            gear_id="5237a1d0e0b8cd6a2a000001",
            app_name="app1",
            addtl_fs_gb=5
        )
        insert_usage_record(record, db_path)

        records = list(UsageRepository(db_path).iter_usage_records())
        assert records == [record]

    def test_open_record(self, db_path):
        insert_usage_record(_gear("u1", utc(2024, 1, 1)), db_path)

        records = list(UsageRepository(db_path).iter_usage_records())
        assert records[0].end_time is None

    def test_filter_by_user_app_and_gear(self, db_path):
        insert_usage_records([
            _gear("u1", utc(2024, 1, 1), utc(2024, 1, 2)),
            _gear("u1", utc(2024, 1, 3), utc(2024, 1, 4), app_name="app2"),
            _gear("u1", utc(2024, 1, 5), utc(2024, 1, 6), gear_id="5237a1d0e0b8cd6a2a000002"),
            _gear("u2", utc(2024, 1, 7), utc(2024, 1, 8)),
        ], db_path)
        repository = UsageRepository(db_path)

        assert len(list(repository.iter_usage_records(user_ids=["u1"]))) == 3
        assert len(list(repository.iter_usage_records(user_ids=["u1", "u2"], app_name="app1"))) == 3
        assert len(list(repository.iter_usage_records(gear_id="5237a1d0e0b8cd6a2a000002"))) == 1

    def test_empty_user_ids(self, db_path):
        insert_usage_record(_gear("u1", utc(2024, 1, 1)), db_path)
        assert list(UsageRepository(db_path).iter_usage_records(user_ids=[])) == []

    def test_window_intersection(self, db_path):
        """Verify only records active inside the window are returned."""
        insert_usage_records([
            _gear("u1", utc(2023, 12, 1), utc(2023, 12, 31)),  # before
            _gear("u1", utc(2023, 12, 20), utc(2024, 1, 5)),   # overlaps start
            _gear("u1", utc(2024, 1, 10), utc(2024, 1, 11)),   # inside
            _gear("u1", utc(2024, 1, 30), None),               # open, overlaps end
            _gear("u1", utc(2024, 2, 5), utc(2024, 2, 6)),     # after
            _gear("u1", utc(2023, 11, 1), None),               # open, covers window
        ], db_path)

        records = list(UsageRepository(db_path).iter_usage_records(
            begin_time=utc(2024, 1, 1),
            end_time=utc(2024, 2, 1)
        ))

        assert [r.begin_time for r in records] == [
            utc(2023, 11, 1),
            utc(2023, 12, 20),
            utc(2024, 1, 10),
            utc(2024, 1, 30),
        ]

    def test_insert_empty_record_list(self, db_path):
        insert_usage_records([], db_path)
        assert list(UsageRepository(db_path).iter_usage_records()) == []


class TestGetRepository:
    """Test repository instance reuse."""

    def test_same_path_reuses_instance(self):
        assert get_repository("a.db") is get_repository("a.db")

    def test_new_path_creates_instance(self):
        first = get_repository("a.db")
        second = get_repository("b.db")
        assert second is not first
        assert second.db_path == "b.db"
