"""Tests for meet/meets/repository.py

The SQLite repository stores meets and answers conflict and occupancy
queries. Key functionality:
- CRUD with every field surviving a round trip
- Overlap queries scoped to one organizer, touching meets excluded
- Atomic sections that roll back on error and time out when contended
- Striped organizer locks and the SQLite write lock shared between instances
"""

import sqlite3

import pytest

from meet.meets.errors import InfrastructureError, PersistenceTimeoutError, ValidationError
from meet.meets.models import Meet, MeetQueryOptions
from meet.meets.repository import LOCK_STRIPES, SQLiteMeetRepository, from_db_time, storage_errors, to_db_time
from tests.helpers import make_meet, utc


def insert(repository, start, end, uuid, organizer_id="org-1", title="Intro call") -> Meet:
    return repository.create(make_meet(start, end, organizer_id=organizer_id, uuid=uuid, title=title))


def organizer_on_other_stripe(repository, organizer_id) -> str:
    stripe = repository._stripe(organizer_id)
    return next(f"org-{i}" for i in range(2, 1000) if repository._stripe(f"org-{i}") != stripe)


# ─────────────────────────────────────────────────────────────────────────────
# Schema and time encoding
# ─────────────────────────────────────────────────────────────────────────────


class TestSchema:
    def test_creates_meets_table(self, repository, temp_db):
        conn = sqlite3.connect(str(temp_db))
        try:
            tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        finally:
            conn.close()

        assert "meets" in tables

    def test_init_is_idempotent(self, temp_db):
        SQLiteMeetRepository(temp_db)
        SQLiteMeetRepository(temp_db)

    def test_creates_parent_directory(self, tmp_path):
        repo = SQLiteMeetRepository(tmp_path / "nested" / "meets.db")

        assert repo.db_path.exists()

    def test_rejects_inverted_window_at_storage(self, repository):
        """The CHECK constraint backs up service validation."""
        with pytest.raises(InfrastructureError):
            insert(repository, utc(2025, 9, 3, 11), utc(2025, 9, 3, 10), "bad")


class TestTimeEncoding:
    def test_round_trip(self):
        value = utc(2025, 9, 3, 10, 15, 30, 5)

        assert from_db_time(to_db_time(value)) == value

    def test_fixed_width_sorts_chronologically(self):
        earlier = to_db_time(utc(2025, 9, 3, 9, 59, 59, 999999))
        later = to_db_time(utc(2025, 9, 3, 10))

        assert len(earlier) == len(later)
        assert earlier < later


# ─────────────────────────────────────────────────────────────────────────────
# CRUD
# ─────────────────────────────────────────────────────────────────────────────


class TestCrud:
    def test_create_assigns_id(self, repository):
        meet = insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        assert meet.id
        assert meet.uuid == "a"

    def test_all_fields_round_trip(self, repository):
        meet = Meet(
            title="Pricing review",
            organizer_id="org-1",
            start=utc(2025, 9, 3, 10),
            end=utc(2025, 9, 3, 11),
            uuid="full",
            participants=["carol@example.com", "alice@example.com"],
            description="Quarterly",
            color="#ff0000",
            type=3,
            old_price=50.0,
            discount=10.0,
            price=40.0,
        )
        created = repository.create(meet)

        fetched = repository.get_by_id(created.id)

        assert fetched == created
        # Participant order is preserved
        assert fetched.participants == ["carol@example.com", "alice@example.com"]

    def test_get_by_uuid(self, repository):
        created = insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        assert repository.get_by_uuid("a") == created
        assert repository.get_by_uuid("missing") is None

    def test_get_missing_id(self, repository):
        assert repository.get_by_id("999") is None

    def test_update_overwrites_fields(self, repository):
        created = insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")
        moved = make_meet(utc(2025, 9, 3, 14), utc(2025, 9, 3, 15), uuid="a", title="Moved")

        updated = repository.update(moved)

        assert updated.id == created.id
        assert updated.title == "Moved"
        assert updated.start == utc(2025, 9, 3, 14)

    def test_update_missing_returns_none(self, repository):
        assert repository.update(make_meet(utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), uuid="ghost")) is None

    def test_delete(self, repository):
        created = insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        assert repository.delete(created.id) is True
        assert repository.delete(created.id) is False
        assert repository.get_by_id(created.id) is None

    def test_duplicate_uuid_rejected(self, repository):
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        with pytest.raises(InfrastructureError):
            insert(repository, utc(2025, 9, 4, 10), utc(2025, 9, 4, 11), "a")


# ─────────────────────────────────────────────────────────────────────────────
# Conflict and occupancy queries
# ─────────────────────────────────────────────────────────────────────────────


class TestHasConflict:
    def test_overlap_detected(self, repository):
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        assert repository.has_conflict("org-1", utc(2025, 9, 3, 10, 30), utc(2025, 9, 3, 11, 30))

    def test_touching_is_not_conflict(self, repository):
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        assert not repository.has_conflict("org-1", utc(2025, 9, 3, 11), utc(2025, 9, 3, 12))
        assert not repository.has_conflict("org-1", utc(2025, 9, 3, 9), utc(2025, 9, 3, 10))

    def test_scoped_to_organizer(self, repository):
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a", organizer_id="org-2")

        assert not repository.has_conflict("org-1", utc(2025, 9, 3, 10), utc(2025, 9, 3, 11))

    def test_exclude_uuid(self, repository):
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        assert not repository.has_conflict("org-1", utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), exclude_uuid="a")
        assert repository.has_conflict("org-1", utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), exclude_uuid="b")


class TestGenerateOccupyingSlots:
    def test_returns_intersecting_ordered(self, repository):
        insert(repository, utc(2025, 9, 4, 9), utc(2025, 9, 4, 10), "late")
        insert(repository, utc(2025, 9, 2, 23), utc(2025, 9, 3, 1), "straddle")
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "mid")
        insert(repository, utc(2025, 9, 1, 10), utc(2025, 9, 1, 11), "before")

        meets = repository.generate_occupying_slots("org-1", utc(2025, 9, 3), utc(2025, 9, 5))

        assert [m.uuid for m in meets] == ["straddle", "mid", "late"]


class TestQueryMeets:
    def test_requires_organizer(self, repository):
        with pytest.raises(ValidationError, match="organizer_id is required"):
            repository.query_meets(MeetQueryOptions(organizer_id=""))

    def test_lists_organizer_meets_by_start(self, repository):
        insert(repository, utc(2025, 9, 4, 10), utc(2025, 9, 4, 11), "b")
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")
        insert(repository, utc(2025, 9, 3, 12), utc(2025, 9, 3, 13), "x", organizer_id="org-2")

        meets = repository.query_meets(MeetQueryOptions(organizer_id="org-1"))

        assert [m.uuid for m in meets] == ["a", "b"]

    def test_range_means_fully_inside(self, repository):
        insert(repository, utc(2025, 9, 2, 23), utc(2025, 9, 3, 1), "straddle")
        insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "inside")

        meets = repository.query_meets(
            MeetQueryOptions(organizer_id="org-1", start=utc(2025, 9, 3), end=utc(2025, 9, 4))
        )

        assert [m.uuid for m in meets] == ["inside"]

    def test_only_available_returns_occupying(self, repository):
        insert(repository, utc(2025, 9, 2, 23), utc(2025, 9, 3, 1), "straddle")

        meets = repository.query_meets(
            MeetQueryOptions(organizer_id="org-1", start=utc(2025, 9, 3), end=utc(2025, 9, 4), only_available=True)
        )

        assert [m.uuid for m in meets] == ["straddle"]


# ─────────────────────────────────────────────────────────────────────────────
# Atomic sections and timeouts
# ─────────────────────────────────────────────────────────────────────────────


class TestAtomic:
    def test_commits_on_success(self, repository):
        with repository.atomic("org-1"):
            insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        assert repository.get_by_uuid("a") is not None

    def test_rolls_back_on_error(self, repository):
        with pytest.raises(RuntimeError, match="boom"):
            with repository.atomic("org-1"):
                insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")
                raise RuntimeError("boom")

        assert repository.get_by_uuid("a") is None

    def test_nesting_rejected(self, repository):
        with repository.atomic("org-1"):
            with pytest.raises(RuntimeError, match="cannot be nested"):
                with repository.atomic("org-2"):
                    pass

    def test_requires_an_organizer(self, repository):
        with pytest.raises(ValueError):
            with repository.atomic():
                pass

    def test_contended_lock_times_out(self, repository):
        """A caller that cannot get the organizer's lock in time fails fast."""
        lock = repository._organizer_lock("org-1")
        lock.acquire()
        try:
            with pytest.raises(PersistenceTimeoutError):
                with repository.atomic("org-1", timeout=0.05):
                    pass
        finally:
            lock.release()

    def test_other_stripe_not_blocked(self, repository):
        other = organizer_on_other_stripe(repository, "org-1")
        lock = repository._organizer_lock("org-1")
        lock.acquire()
        try:
            with repository.atomic(other, timeout=0.5):
                insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "b", organizer_id=other)
        finally:
            lock.release()

        assert repository.get_by_uuid("b") is not None

    def test_lock_table_is_fixed_size(self, repository):
        """Seeing many organizers does not allocate a lock per organizer."""
        for i in range(200):
            with repository.atomic(f"org-{i}", timeout=1.0):
                pass

        assert len(repository._organizer_locks) == LOCK_STRIPES
        assert not any(lock.locked() for lock in repository._organizer_locks)

    def test_two_organizers_on_one_stripe(self, repository):
        """Organizers sharing a stripe take the lock once instead of deadlocking."""
        stripe = repository._stripe("org-1")
        twin = next(f"org-{i}" for i in range(2, 100_000) if repository._stripe(f"org-{i}") == stripe)

        with repository.atomic("org-1", twin, timeout=0.5):
            insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a", organizer_id=twin)

        assert repository.get_by_uuid("a").organizer_id == twin
        assert not repository._organizer_lock("org-1").locked()

    def test_two_organizers_released_on_error(self, repository):
        other = organizer_on_other_stripe(repository, "org-1")

        with pytest.raises(RuntimeError):
            with repository.atomic(other, "org-1", timeout=0.5):
                raise RuntimeError("boom")

        assert not repository._organizer_lock("org-1").locked()
        assert not repository._organizer_lock(other).locked()

    def test_timeout_is_infrastructure_error(self):
        assert issubclass(PersistenceTimeoutError, InfrastructureError)


class TestSharedDatabaseFile:
    """Repository instances that share one SQLite file, as separate processes do."""

    def test_write_lock_held_elsewhere_times_out(self, repository, temp_db):
        second = SQLiteMeetRepository(temp_db, timeout=2.0)

        with repository.atomic("org-1"):
            insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")
            with pytest.raises(PersistenceTimeoutError):
                with second.atomic("org-1", timeout=0.2):
                    pass

        assert second.get_by_uuid("a") is not None

    def test_writes_visible_across_instances(self, repository, temp_db):
        second = SQLiteMeetRepository(temp_db, timeout=2.0)

        with repository.atomic("org-1"):
            insert(repository, utc(2025, 9, 3, 10), utc(2025, 9, 3, 11), "a")

        with second.atomic("org-1"):
            assert second.has_conflict("org-1", utc(2025, 9, 3, 10, 30), utc(2025, 9, 3, 12))

    def test_long_statement_interrupted_at_deadline(self, repository):
        endless = "WITH RECURSIVE n(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM n) SELECT count(*) FROM n"

        with pytest.raises(PersistenceTimeoutError, match="count rows timed out"):
            with storage_errors("count rows"), repository._connection(repository._deadline(0.1)) as conn:
                conn.execute(endless).fetchone()


class TestPing:
    def test_ping_healthy(self, repository):
        repository.ping()
