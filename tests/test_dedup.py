"""
Tests for progress line deduplication and the console relay
"""

from wrapper.dedup import PROGRESS_PREFIX, ProgressDeduplicator, SeenProgressSet, progress_token
from wrapper.process import ConsoleRelay

from conftest import FakeSession, console_text


def test_progress_token():
    assert progress_token("Loading Prefab Bundle 10%") == "10%"
    assert progress_token("Loading Prefab Bundle 10%\r") == "10%"
    assert progress_token("Loading Prefab Bundles") is None
    assert progress_token("Server startup complete") is None


def test_repeated_token_is_suppressed():
    dedup = ProgressDeduplicator()
    assert dedup.accept(PROGRESS_PREFIX + "10%")
    assert not dedup.accept(PROGRESS_PREFIX + "10%")
    assert not dedup.accept(PROGRESS_PREFIX + "10%")
    assert dedup.accept(PROGRESS_PREFIX + "20%")
    assert dedup.suppressed == 2


def test_other_lines_always_pass():
    dedup = ProgressDeduplicator()
    for _ in range(3):
        assert dedup.accept("Saving world...")
    assert dedup.suppressed == 0


def test_seen_set_is_shared_and_never_pruned():
    seen = SeenProgressSet()
    first = ProgressDeduplicator(seen)
    first.accept(PROGRESS_PREFIX + "50%")
    assert "50%" in seen
    assert not ProgressDeduplicator(seen).accept(PROGRESS_PREFIX + "50%")
    assert len(seen) == 1


def test_relay_prints_first_progress_line_once(ctx, fake_clock):
    relay = ConsoleRelay(ctx)
    start = ctx.clock.last_output_at

    fake_clock.advance(1)
    relay.on_line("Loading Prefab Bundle 10%")
    first = ctx.clock.last_output_at
    assert first > start

    fake_clock.advance(1)
    relay.on_line("Loading Prefab Bundle 10%")
    # Suppressed lines do not count as activity
    assert ctx.clock.last_output_at == first

    assert console_text(ctx.console).count("Loading Prefab Bundle 10%") == 1
    assert ctx.metrics.lines_relayed == 1
    assert ctx.metrics.lines_suppressed == 1


def test_relay_drains_once_rcon_is_forwarding(ctx, config, fake_clock):
    relay = ConsoleRelay(ctx)
    ctx.begin_forwarding(FakeSession(config, []))

    fake_clock.advance(3)
    relay.on_line("local console line")

    assert "local console line" not in console_text(ctx.console)
    assert relay.drained == 1
    assert ctx.clock.last_output_at == fake_clock.now
