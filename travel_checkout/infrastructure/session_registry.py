"""Process-local registry of live checkout sessions."""
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from travel_checkout.application.booking_session import BookingSession
from travel_checkout.domain.entities.notice import CheckoutNotice
from travel_checkout.domain.exceptions import SessionNotFoundError
from travel_checkout.infrastructure.repositories.checkout_snapshot_repository import CheckoutSnapshotRepository
from travel_checkout.utils.clock import Clock, utcnow


logger = logging.getLogger(__name__)

SessionFactory = Callable[[str], BookingSession]


@dataclass
class _Entry:
    session: BookingSession
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_access: float = field(default_factory=time.monotonic)


class SessionRegistry:
    """
    Holds live sessions and serializes access to each of them.

    Each session is owned by one request at a time. A background ticker
    drives the expiration schedulers once per ``tick_interval`` seconds and
    skips sessions that are busy with a request; expiry is computed from
    timer start times, so a skipped tick only delays the notice.
    """

    def __init__(
        self,
        snapshots: CheckoutSnapshotRepository,
        session_factory: SessionFactory,
        clock: Optional[Clock] = None,
        tick_interval: float = 1.0,
        idle_eviction_seconds: Optional[int] = None
    ):
        self.snapshots = snapshots
        self.session_factory = session_factory
        self._clock = clock or utcnow
        self.tick_interval = tick_interval
        self.idle_eviction_seconds = idle_eviction_seconds
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.on_notices: Optional[Callable[[BookingSession, List[CheckoutNotice]], None]] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def create(self) -> BookingSession:
        session_id = uuid.uuid4().hex
        session = self.session_factory(session_id)
        with self._lock:
            self._entries[session_id] = _Entry(session)
        self.persist(session)
        logger.info(f"Checkout session {session_id} created")
        return session

    @contextmanager
    def checkout(self, session_id: str) -> Iterator[BookingSession]:
        """
        Lock a session for the duration of one request.

        The session is ticked with the current time before it is handed out.

        Raises:
            SessionNotFoundError: If the session is neither live nor restorable
        """
        entry = self._get_entry(session_id)
        with entry.lock:
            entry.last_access = time.monotonic()
            notices = entry.session.tick(self._clock())
            if notices:
                self._notify(entry.session, notices)
            yield entry.session

    def peek(self, session_id: str) -> Optional[BookingSession]:
        """Live session without locking it, for busy-flag checks only."""
        with self._lock:
            entry = self._entries.get(session_id)
        return entry.session if entry else None

    def is_busy(self, session_id: str) -> bool:
        session = self.peek(session_id)
        if session is None:
            return False
        return session.orchestrator.in_flight or session.availability.in_flight

    def persist(self, session: BookingSession) -> None:
        """Write the session's snapshot, or drop it once the session is closed."""
        if session.closed:
            self.discard(session)
            return
        self.snapshots.save(session, self._clock())

    def discard(self, session: BookingSession) -> None:
        """
        Forget a closed session.

        The snapshot is kept while an unpaid reservation is still attached,
        so the reservation stays discoverable.
        """
        with self._lock:
            self._entries.pop(session.session_id, None)
        if session.reservation is not None:
            logger.warning(
                f"Session {session.session_id} closed with unpaid reservation "
                f"{session.reservation.reservation_id}; keeping its snapshot"
            )
            self.snapshots.save(session, self._clock())
        else:
            self.snapshots.delete(session.session_id)

    def close(self, session_id: str) -> None:
        """Tear a session down on navigation away."""
        with self.checkout(session_id) as session:
            session.teardown()
            self.discard(session)

    def tick_all(self) -> int:
        """Tick every idle live session once; returns the number of sessions ticked."""
        with self._lock:
            entries = list(self._entries.values())

        ticked = 0
        now = self._clock()
        for entry in entries:
            if not entry.lock.acquire(blocking=False):
                continue
            try:
                notices = entry.session.tick(now)
                ticked += 1
                if notices:
                    self._notify(entry.session, notices)
                    self.persist(entry.session)
                elif self._is_idle(entry):
                    self._evict(entry)
            finally:
                entry.lock.release()
        return ticked

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="checkout-ticker", daemon=True)
        self._thread.start()
        logger.info(f"Session ticker started ({self.tick_interval}s interval)")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.tick_interval * 2)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.tick_interval):
            try:
                self.tick_all()
            except Exception as e:
                logger.error(f"Session ticker iteration failed: {e}", exc_info=True)

    def _get_entry(self, session_id: str) -> _Entry:
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is not None:
                return entry

        session = self.snapshots.load(session_id, self.session_factory, self._clock())
        if session is None:
            raise SessionNotFoundError(session_id)
        with self._lock:
            # Another request may have restored it first.
            entry = self._entries.setdefault(session_id, _Entry(session))
        return entry

    def _is_idle(self, entry: _Entry) -> bool:
        if self.idle_eviction_seconds is None:
            return False
        return time.monotonic() - entry.last_access > self.idle_eviction_seconds

    def _evict(self, entry: _Entry) -> None:
        session = entry.session
        self.snapshots.save(session, self._clock())
        with self._lock:
            self._entries.pop(session.session_id, None)
        logger.info(f"Idle session {session.session_id} evicted from memory")

    def _notify(self, session: BookingSession, notices: List[CheckoutNotice]) -> None:
        for notice in notices:
            logger.info(f"Session {session.session_id}: {notice.code}")
        if self.on_notices is not None:
            self.on_notices(session, notices)
