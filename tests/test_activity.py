"""
Tests for ActivityClock
"""

from wrapper.activity import ActivityClock

from conftest import FakeClock


def make_clock(inactivity=300.0, rcon_wait=300.0):
    fake = FakeClock()
    return fake, ActivityClock(inactivity, rcon_wait, clock=fake)


def test_starts_with_activity_now():
    fake, clock = make_clock()
    assert clock.last_output_at == fake.now
    assert clock.rcon_wait_started_at is None


def test_record_activity_is_monotonic():
    fake, clock = make_clock()
    fake.advance(10)
    assert clock.record_activity() == 1010.0

    # A clock that jumps backwards never rewinds the timestamp
    fake.now = 900.0
    assert clock.record_activity() == 1010.0
    assert clock.last_output_at == 1010.0


def test_inactivity_threshold_is_inclusive():
    fake, clock = make_clock(inactivity=60)
    fake.advance(59.9)
    assert not clock.inactivity_exceeded()
    fake.advance(0.1)
    assert clock.inactivity_exceeded()


def test_rcon_wait_starts_once_and_clears():
    fake, clock = make_clock(rcon_wait=30)
    assert clock.start_rcon_wait() is True
    started = clock.rcon_wait_started_at

    fake.advance(5)
    assert clock.start_rcon_wait() is False
    assert clock.rcon_wait_started_at == started
    assert clock.rcon_waited_for() == 5

    clock.clear_rcon_wait()
    assert clock.rcon_wait_started_at is None
    assert clock.rcon_waited_for() == 0.0


def test_rcon_wait_exceeded_only_while_waiting():
    fake, clock = make_clock(rcon_wait=30)
    fake.advance(1000)
    assert not clock.rcon_wait_exceeded()

    clock.start_rcon_wait()
    fake.advance(29)
    assert not clock.rcon_wait_exceeded()
    fake.advance(1)
    assert clock.rcon_wait_exceeded()
