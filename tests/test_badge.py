"""Badge poller lifecycle."""

import threading
import time

from badge import EMPTY_BADGE, BadgeInfo, BadgePoller, BadgePollers


def test_poll_once_stores_latest_info():
    poller = BadgePoller(lambda: BadgeInfo(total=4, is_critical=True), interval=60)
    assert poller.info == EMPTY_BADGE
    assert poller.poll_once() == BadgeInfo(4, True)
    assert poller.info == BadgeInfo(4, True)


def test_fetch_failure_blanks_the_badge():
    def boom():
        raise RuntimeError("api down")

    poller = BadgePoller(boom, interval=60)
    assert poller.poll_once() == EMPTY_BADGE


def test_poller_runs_immediately_and_stops():
    fetched = threading.Event()

    def fetch():
        fetched.set()
        return BadgeInfo(total=1)

    registry = BadgePollers()
    poller = registry.start_for("s1", fetch, interval=60)
    assert fetched.wait(2)
    assert registry.get("s1") is poller

    registry.stop_for("s1")
    assert not poller.is_running
    assert registry.get("s1") is None
    assert registry.info_for("s1") is None


def test_trigger_refresh_wakes_the_poller():
    calls = []
    second = threading.Event()

    def fetch():
        calls.append(1)
        if len(calls) >= 2:
            second.set()
        return BadgeInfo(total=len(calls))

    registry = BadgePollers()
    registry.start_for("s1", fetch, interval=3600)
    try:
        registry.trigger_refresh("s1")
        assert second.wait(2)
    finally:
        registry.stop_all()


def test_restarting_a_session_replaces_the_old_poller():
    registry = BadgePollers()
    first = registry.start_for("s1", lambda: EMPTY_BADGE, interval=3600)
    second = registry.start_for("s1", lambda: EMPTY_BADGE, interval=3600)
    try:
        assert not first.is_running
        assert registry.get("s1") is second
    finally:
        registry.stop_all()
    assert not second.is_running


def _wait_stopped(poller, timeout=2.0):
    deadline = time.monotonic() + timeout
    while poller.is_running and time.monotonic() < deadline:
        time.sleep(0.01)
    return not poller.is_running


def _started(registry, key):
    # returns once the first fetch ran, so the thread is parked on its interval
    fetched = threading.Event()

    def fetch():
        fetched.set()
        return EMPTY_BADGE

    poller = registry.start_for(key, fetch, interval=3600)
    assert fetched.wait(2)
    return poller


def test_sweep_stops_pollers_of_idle_users():
    registry = BadgePollers(idle_ttl=3600)
    idle = _started(registry, "u1")
    active = _started(registry, "u2")
    try:
        base = time.monotonic()
        registry.touch("u1", now=base - 7200)
        registry.touch("u2", now=base)

        assert registry.sweep(now=base + 1) == ["u1"]
        assert not idle.is_running
        assert registry.get("u1") is None
        assert registry.get("u2") is active and active.is_running
    finally:
        registry.stop_all()


def test_idle_poller_expires_on_its_own():
    registry = BadgePollers(idle_ttl=0.05)
    poller = registry.start_for("u1", lambda: EMPTY_BADGE, interval=0.01)
    try:
        assert _wait_stopped(poller)
        assert registry.get("u1") is None
    finally:
        registry.stop_all()


def test_touch_keeps_a_user_active():
    registry = BadgePollers(idle_ttl=60)
    registry.touch("u1", now=1000)
    assert not registry.is_expired("u1", now=1050)
    assert registry.is_expired("u1", now=1061)
    assert registry.sweep(now=1050) == []
    assert registry.sweep(now=1061) == ["u1"]
    assert registry.is_expired("u1", now=1061)
