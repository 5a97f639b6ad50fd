"""
Tool: Meet Repository
Purpose: Persistence for meets, including the atomic conflict-check section

MeetRepository is the storage interface the scheduling engine depends on.
SQLiteMeetRepository implements it on a local SQLite file.

Atomicity:
    atomic(*organizer_ids) holds the organizers' locks and a BEGIN IMMEDIATE
    transaction. Repository calls made on the same thread inside the block
    share that transaction, so a conflict check and the following write
    cannot interleave with another writer for the same organizer. Writers in
    other processes, or on other repository instances, are serialized by
    SQLite's write lock.

    Organizer locks are striped: a fixed array of LOCK_STRIPES locks, picked
    by a stable hash of the organizer id. Two organizers may share a stripe;
    locks are always taken in stripe order.

Timeouts:
    Every call takes an optional `timeout` in seconds (default: the
    repository's). The deadline bounds lock acquisition, SQLite's busy wait,
    and statement execution. Running past it raises PersistenceTimeoutError.

Usage:
    repo = SQLiteMeetRepository(Path("data/meets.db"))
    with repo.atomic("org-1", timeout=2.0):
        if not repo.has_conflict("org-1", start, end):
            repo.create(meet)

Dependencies:
    - sqlite3 (stdlib)
"""

import json
import logging
import sqlite3
import threading
import time
import zlib
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from . import DEFAULT_WINDOW_DAYS
from .conflicts import OVERLAP_SQL
from .errors import InfrastructureError, MeetError, PersistenceTimeoutError, ValidationError
from .models import Meet, MeetQueryOptions

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0

# VM instructions between deadline checks while a statement runs
PROGRESS_INTERVAL = 1000

LOCK_STRIPES = 64

MEET_COLUMNS = (
    "id, uuid, title, organizer_id, participants, start_time, end_time, "
    "description, color, type, old_price, discount, price"
)


class MeetRepository(ABC):
    """Storage interface for meets."""

    @abstractmethod
    def create(self, meet: Meet, timeout: float | None = None) -> Meet:
        """Insert a meet and return it with `id` populated."""

    @abstractmethod
    def get_by_id(self, meet_id: str, timeout: float | None = None) -> Meet | None:
        pass

    @abstractmethod
    def get_by_uuid(self, uuid: str, timeout: float | None = None) -> Meet | None:
        pass

    @abstractmethod
    def update(self, meet: Meet, timeout: float | None = None) -> Meet | None:
        """Overwrite the meet with `meet.uuid`. Returns None if it does not exist."""

    @abstractmethod
    def delete(self, meet_id: str, timeout: float | None = None) -> bool:
        pass

    @abstractmethod
    def query_meets(self, options: MeetQueryOptions, timeout: float | None = None) -> list[Meet]:
        pass

    @abstractmethod
    def has_conflict(
        self,
        organizer_id: str,
        start: datetime,
        end: datetime,
        exclude_uuid: str | None = None,
        timeout: float | None = None,
    ) -> bool:
        pass

    @abstractmethod
    def generate_occupying_slots(
        self,
        organizer_id: str,
        start: datetime,
        end: datetime,
        timeout: float | None = None,
    ) -> list[Meet]:
        """Meets of the organizer intersecting [start, end), ordered by start."""

    @abstractmethod
    def atomic(self, *organizer_ids: str, timeout: float | None = None):
        """Context manager making the enclosed calls one atomic unit for the organizers."""

    def ping(self, timeout: float | None = None) -> None:
        """Raise InfrastructureError if storage is unreachable."""


# =============================================================================
# SQLite implementation
# =============================================================================


def to_db_time(value: datetime) -> str:
    """Fixed-width UTC ISO string; lexicographic order matches time order."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def row_to_meet(row: sqlite3.Row) -> Meet:
    """Convert a meets row to a Meet."""
    return Meet(
        id=str(row["id"]),
        uuid=row["uuid"],
        title=row["title"],
        organizer_id=row["organizer_id"],
        participants=json.loads(row["participants"] or "[]"),
        start=from_db_time(row["start_time"]),
        end=from_db_time(row["end_time"]),
        description=row["description"] or "",
        color=row["color"] or "",
        type=row["type"] or 0,
        old_price=row["old_price"] or 0.0,
        discount=row["discount"] or 0.0,
        price=row["price"] or 0.0,
    )


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate sqlite3 errors raised inside the block into MeetErrors."""
    try:
        yield
    except MeetError:
        raise
    except sqlite3.OperationalError as e:
        message = str(e).lower()
        if "interrupted" in message or "locked" in message or "busy" in message:
            raise PersistenceTimeoutError(f"{operation} timed out") from e
        raise InfrastructureError(f"{operation} failed: {e}") from e
    except sqlite3.Error as e:
        raise InfrastructureError(f"{operation} failed: {e}") from e


class SQLiteMeetRepository(MeetRepository):
    """MeetRepository backed by a SQLite database file."""

    def __init__(self, db_path: Path | str, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.db_path = Path(db_path)
        self.default_timeout = timeout
        self._organizer_locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))
        self._local = threading.local()
        self.init_schema()

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def init_schema(self) -> None:
        """Create the meets table and indexes if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with storage_errors("init schema"), self._connection(self._deadline(None)) as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS meets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    uuid TEXT UNIQUE NOT NULL,
                    title TEXT NOT NULL,
                    organizer_id TEXT NOT NULL CHECK(organizer_id != ''),
                    participants TEXT NOT NULL DEFAULT '[]',
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    color TEXT DEFAULT '',
                    type INTEGER DEFAULT 0,
                    old_price REAL DEFAULT 0,
                    discount REAL DEFAULT 0,
                    price REAL DEFAULT 0,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME,
                    CHECK(start_time < end_time)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_meets_organizer_start ON meets(organizer_id, start_time)"
            )

    def _deadline(self, timeout: float | None) -> float:
        if timeout is None:
            timeout = self.default_timeout
        return time.monotonic() + timeout

    @staticmethod
    def _remaining(deadline: float, operation: str) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise PersistenceTimeoutError(f"{operation} timed out")
        return remaining

    def _connect(self, deadline: float) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly by atomic().
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self._remaining(deadline, "connect"),
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.set_progress_handler(lambda: int(time.monotonic() > deadline), PROGRESS_INTERVAL)
        return conn

    @contextmanager
    def _connection(self, deadline: float) -> Iterator[sqlite3.Connection]:
        """Yield the thread's transaction connection, or a fresh one."""
        active = getattr(self._local, "conn", None)
        if active is not None:
            yield active
            return

        conn = self._connect(deadline)
        try:
            yield conn
        finally:
            conn.close()

    @staticmethod
    def _stripe(organizer_id: str) -> int:
        return zlib.crc32(organizer_id.encode("utf-8")) % LOCK_STRIPES

    def _organizer_lock(self, organizer_id: str) -> threading.Lock:
        return self._organizer_locks[self._stripe(organizer_id)]

    @contextmanager
    def _hold_stripes(self, organizer_ids: tuple[str, ...], deadline: float) -> Iterator[None]:
        held: list[threading.Lock] = []
        try:
            for stripe in sorted({self._stripe(o) for o in organizer_ids}):
                lock = self._organizer_locks[stripe]
                if not lock.acquire(timeout=self._remaining(deadline, "organizer lock")):
                    raise PersistenceTimeoutError("organizer lock timed out")
                held.append(lock)
            yield
        finally:
            for lock in reversed(held):
                lock.release()

    @contextmanager
    def atomic(self, *organizer_ids: str, timeout: float | None = None) -> Iterator["SQLiteMeetRepository"]:
        if not organizer_ids:
            raise ValueError("atomic requires at least one organizer id")
        if getattr(self._local, "conn", None) is not None:
            raise RuntimeError("atomic sections cannot be nested")

        deadline = self._deadline(timeout)
        with self._hold_stripes(organizer_ids, deadline):
            with storage_errors("begin transaction"):
                conn = self._connect(deadline)
                try:
                    conn.execute("BEGIN IMMEDIATE")
                except BaseException:
                    conn.close()
                    raise

            self._local.conn = conn
            try:
                yield self
                with storage_errors("commit"):
                    conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    try:
                        conn.execute("ROLLBACK")
                    except sqlite3.Error as e:
                        logger.warning(f"Rollback failed for organizers {', '.join(organizer_ids)}: {e}")
                raise
            finally:
                self._local.conn = None
                conn.close()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, meet: Meet, timeout: float | None = None) -> Meet:
        with storage_errors("create meet"), self._connection(self._deadline(timeout)) as conn:
            cursor = conn.execute(
                """
                INSERT INTO meets (uuid, title, organizer_id, participants, start_time, end_time,
                                   description, color, type, old_price, discount, price)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    meet.uuid,
                    meet.title,
                    meet.organizer_id,
                    json.dumps(list(meet.participants)),
                    to_db_time(meet.start),
                    to_db_time(meet.end),
                    meet.description,
                    meet.color,
                    meet.type,
                    meet.old_price,
                    meet.discount,
                    meet.price,
                ),
            )
            return replace(meet, id=str(cursor.lastrowid))

    def update(self, meet: Meet, timeout: float | None = None) -> Meet | None:
        deadline = self._deadline(timeout)
        with storage_errors("update meet"), self._connection(deadline) as conn:
            cursor = conn.execute(
                """
                UPDATE meets
                SET title = ?, organizer_id = ?, participants = ?, start_time = ?, end_time = ?,
                    description = ?, color = ?, type = ?, old_price = ?, discount = ?, price = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE uuid = ?
                """,
                (
                    meet.title,
                    meet.organizer_id,
                    json.dumps(list(meet.participants)),
                    to_db_time(meet.start),
                    to_db_time(meet.end),
                    meet.description,
                    meet.color,
                    meet.type,
                    meet.old_price,
                    meet.discount,
                    meet.price,
                    meet.uuid,
                ),
            )
            if cursor.rowcount == 0:
                return None

            row = conn.execute(
                f"SELECT {MEET_COLUMNS} FROM meets WHERE uuid = ?", (meet.uuid,)
            ).fetchone()
            return row_to_meet(row)

    def delete(self, meet_id: str, timeout: float | None = None) -> bool:
        with storage_errors("delete meet"), self._connection(self._deadline(timeout)) as conn:
            cursor = conn.execute("DELETE FROM meets WHERE id = ?", (meet_id,))
            return cursor.rowcount > 0

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def ping(self, timeout: float | None = None) -> None:
        with storage_errors("ping"), self._connection(self._deadline(timeout)) as conn:
            conn.execute("SELECT 1").fetchone()

    def get_by_id(self, meet_id: str, timeout: float | None = None) -> Meet | None:
        with storage_errors("get meet"), self._connection(self._deadline(timeout)) as conn:
            row = conn.execute(f"SELECT {MEET_COLUMNS} FROM meets WHERE id = ?", (meet_id,)).fetchone()
        return row_to_meet(row) if row else None

    def get_by_uuid(self, uuid: str, timeout: float | None = None) -> Meet | None:
        with storage_errors("get meet"), self._connection(self._deadline(timeout)) as conn:
            row = conn.execute(f"SELECT {MEET_COLUMNS} FROM meets WHERE uuid = ?", (uuid,)).fetchone()
        return row_to_meet(row) if row else None

    def query_meets(self, options: MeetQueryOptions, timeout: float | None = None) -> list[Meet]:
        if options is None or not options.organizer_id:
            raise ValidationError("organizer_id is required")

        if options.only_available:
            start = options.start or datetime.now(timezone.utc)
            end = options.end or start + timedelta(days=DEFAULT_WINDOW_DAYS)
            return self.generate_occupying_slots(options.organizer_id, start, end, timeout=timeout)

        query = f"SELECT {MEET_COLUMNS} FROM meets WHERE organizer_id = ?"
        params: list = [options.organizer_id]

        if options.start is not None:
            query += " AND start_time >= ?"
            params.append(to_db_time(options.start))
        if options.end is not None:
            query += " AND end_time <= ?"
            params.append(to_db_time(options.end))

        query += " ORDER BY start_time ASC, id ASC"

        with storage_errors("query meets"), self._connection(self._deadline(timeout)) as conn:
            rows = conn.execute(query, params).fetchall()
        return [row_to_meet(row) for row in rows]

    def has_conflict(
        self,
        organizer_id: str,
        start: datetime,
        end: datetime,
        exclude_uuid: str | None = None,
        timeout: float | None = None,
    ) -> bool:
        query = f"SELECT COUNT(1) FROM meets WHERE organizer_id = ? AND {OVERLAP_SQL}"
        params: list = [organizer_id, to_db_time(end), to_db_time(start)]
        if exclude_uuid:
            query += " AND uuid != ?"
            params.append(exclude_uuid)

        with storage_errors("conflict check"), self._connection(self._deadline(timeout)) as conn:
            count = conn.execute(query, params).fetchone()[0]
        return count > 0

    def generate_occupying_slots(
        self,
        organizer_id: str,
        start: datetime,
        end: datetime,
        timeout: float | None = None,
    ) -> list[Meet]:
        with storage_errors("occupying slots"), self._connection(self._deadline(timeout)) as conn:
            rows = conn.execute(
                f"""
                SELECT {MEET_COLUMNS} FROM meets
                WHERE organizer_id = ? AND {OVERLAP_SQL}
                ORDER BY start_time ASC, end_time ASC, uuid ASC
                """,
                (organizer_id, to_db_time(end), to_db_time(start)),
            ).fetchall()
        return [row_to_meet(row) for row in rows]
