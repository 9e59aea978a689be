"""
JSON-file backed repository for the command line interface.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager
from datetime import time
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import pendulum
from filelock import FileLock, Timeout

from ..domain.exceptions import RepositoryError
from ..domain.models import BookedInterval, UserCalendar, Weekday, WeeklyRule
from .memory_store import InMemoryStore

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
LOCK_POLL_INTERVAL = 0.05


class JSONFileStore(InMemoryStore):
    """
    In-memory store that loads from and writes back to a JSON document.

    The whole document is rewritten after every mutation through a temporary
    file that replaces the original, so a crash never leaves half a file.
    Mutations run under an exclusive lock on ``<data file>.lock`` and reload
    the document first, so several processes can share one data file.

    Document format::

        {
            "version": 1,
            "calendars": [{"id": "...", "owner_id": "alice"}],
            "rules": [{"id": "...", "calendar_id": "...", "day_of_week": "monday",
                       "start_time": "09:00:00", "end_time": "17:00:00",
                       "active": true, "recurring": true}],
            "bookings": [{"id": "...", "owner_id": "alice", "correlation_id": "x-1",
                          "start": "2024-11-25T12:00:00", "end": "2024-11-25T13:00:00",
                          "title": null, "description": null, "confirmed": false}]
        }
    """

    def __init__(self, path: Path, lock_timeout: float = 10.0):
        super().__init__()
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout
        self._file_lock = FileLock(str(self.lock_path))
        self._guard = asyncio.Lock()
        self._holder: Optional[asyncio.Task] = None
        self._load()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """
        Hold the data file's lock and reload the document.

        Reads inside the block see every write committed by other processes,
        and no other process writes until the block exits. Re-entering from
        the task that already holds the lock does nothing.
        """
        task = asyncio.current_task()
        if task is not None and self._holder is task:
            yield
            return

        async with self._guard:
            await self._acquire_file_lock()
            self._holder = task
            try:
                self._load()
                yield
            finally:
                self._holder = None
                self._file_lock.release()

    async def _acquire_file_lock(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.lock_timeout

        while True:
            try:
                self.lock_path.parent.mkdir(parents=True, exist_ok=True)
                self._file_lock.acquire(timeout=0)
                return
            except Timeout:
                if loop.time() >= deadline:
                    raise RepositoryError(
                        f"Timed out after {self.lock_timeout}s waiting for lock {self.lock_path}"
                    ) from None
                logger.debug("Data file %s is locked, waiting", self.path)
                await asyncio.sleep(LOCK_POLL_INTERVAL)
            except OSError as exc:
                raise RepositoryError(f"Could not lock data file {self.path}: {exc}") from exc

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug("No data file at %s, starting empty", self.path)
            self.calendars, self.rules, self.bookings = {}, {}, {}
            return

        try:
            with open(self.path, "r", encoding="utf-8") as file_handle:
                data = json.load(file_handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise RepositoryError(f"Could not read data file {self.path}: {exc}") from exc

        try:
            calendars = {
                item["id"]: UserCalendar(id=item["id"], owner_id=item["owner_id"])
                for item in data.get("calendars", [])
            }
            rules = {item["id"]: _rule_from_dict(item) for item in data.get("rules", [])}
            bookings = {item["id"]: _booking_from_dict(item) for item in data.get("bookings", [])}
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise RepositoryError(f"Invalid data in {self.path}: {exc}") from exc

        self.calendars, self.rules, self.bookings = calendars, rules, bookings
        logger.debug(
            "Loaded %d calendar(s), %d rule(s), %d booking(s) from %s",
            len(self.calendars),
            len(self.rules),
            len(self.bookings),
            self.path,
        )

    def _changed(self) -> None:
        self.save()

    def save(self) -> None:
        """Write the whole store to ``path``."""
        document = {
            "version": FORMAT_VERSION,
            "calendars": [
                {"id": calendar.id, "owner_id": calendar.owner_id}
                for calendar in self.calendars.values()
            ],
            "rules": [_rule_to_dict(rule) for rule in self.rules.values()],
            "bookings": [_booking_to_dict(booking) for booking in self.bookings.values()],
        }

        temporary = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temporary, "w", encoding="utf-8") as file_handle:
                json.dump(document, file_handle, indent=2)
            temporary.replace(self.path)
        except OSError as exc:
            logger.warning("Could not save data file %s: %s", self.path, exc)
            with contextlib.suppress(OSError):
                temporary.unlink(missing_ok=True)
            raise RepositoryError(f"Could not write data file {self.path}: {exc}") from exc

def _rule_to_dict(rule: WeeklyRule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "calendar_id": rule.calendar_id,
        "day_of_week": rule.day_of_week.name.lower(),
        "start_time": rule.start_time.isoformat(),
        "end_time": rule.end_time.isoformat(),
        "active": rule.active,
        "recurring": rule.recurring,
    }


def _rule_from_dict(item: Dict[str, Any]) -> WeeklyRule:
    return WeeklyRule(
        id=item["id"],
        calendar_id=item["calendar_id"],
        day_of_week=Weekday.parse(item["day_of_week"]),
        start_time=time.fromisoformat(item["start_time"]),
        end_time=time.fromisoformat(item["end_time"]),
        active=item.get("active", True),
        recurring=item.get("recurring", True),
    )


def _booking_to_dict(booking: BookedInterval) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "owner_id": booking.owner_id,
        "correlation_id": booking.correlation_id,
        "start": booking.start.isoformat(),
        "end": booking.end.isoformat(),
        "title": booking.title,
        "description": booking.description,
        "confirmed": booking.confirmed,
    }


def _booking_from_dict(item: Dict[str, Any]) -> BookedInterval:
    return BookedInterval(
        id=item["id"],
        owner_id=item["owner_id"],
        correlation_id=item["correlation_id"],
        start=pendulum.parse(item["start"]).naive(),
        end=pendulum.parse(item["end"]).naive(),
        title=item.get("title"),
        description=item.get("description"),
        confirmed=item.get("confirmed", False),
    )
