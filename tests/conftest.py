from concurrent.futures import Future
from datetime import datetime, timedelta, timezone

import keyring
import pytest
from keyring.backend import KeyringBackend

from src.core.database import DatabaseManager
from src.core.dto.media import MediaItem, MediaType
from src.core.errors import PlaybackError


class MemoryKeyring(KeyringBackend):
    """Keeps the database encryption key out of the real OS credential store."""

    priority = 1

    def __init__(self):
        super().__init__()
        self._passwords = {}

    def get_password(self, service, username):
        return self._passwords.get((service, username))

    def set_password(self, service, username, password):
        self._passwords[(service, username)] = password

    def delete_password(self, service, username):
        self._passwords.pop((service, username), None)


@pytest.fixture(autouse=True)
def memory_keyring(tmp_path, monkeypatch):
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    monkeypatch.setenv("LOOP_DISPLAY_HOME", str(tmp_path / "home"))
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(tmp_path / "data.db")
    manager.connect()
    yield manager
    manager.close()


class FakeTimer:
    def __init__(self, due, seq, callback):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    @property
    def active(self):
        return not (self.cancelled or self.fired)


class FakeScheduler:
    """Manual clock: nothing fires until ``advance`` moves time forward."""

    def __init__(self):
        self.now = 0
        self._seq = 0
        self._timers = []

    def call_later(self, delay_ms, callback):
        self._seq += 1
        timer = FakeTimer(self.now + delay_ms, self._seq, callback)
        self._timers.append(timer)
        return timer

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = [t for t in self._timers if t.active and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target
        self._timers = [t for t in self._timers if t.active]

    @property
    def pending(self):
        return [t for t in self._timers if t.active]


class FakeHost:
    """Full-screen host whose futures complete immediately."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def _complete(self, name):
        self.calls.append(name)
        future = Future()
        if self.fail:
            future.set_exception(PlaybackError(f"{name} refused"))
        else:
            future.set_result(None)
        return future

    def request_fullscreen(self):
        return self._complete("enter")

    def exit_fullscreen(self):
        return self._complete("exit")


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def make_item():
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def factory(item_id, media_type=MediaType.VIDEO, *, title=None, url=None, active=True, age=0):
        suffix = "png" if media_type is MediaType.IMAGE else "mp4"
        return MediaItem(
            id=item_id,
            url=url or f"https://cdn.example.com/{item_id}.{suffix}",
            title=title or item_id.title(),
            media_type=media_type,
            owner_id="owner-1",
            created_at=base - timedelta(minutes=age),
            active=active,
        )

    return factory
