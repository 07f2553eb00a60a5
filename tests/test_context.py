"""
Tests for the shared supervisor context and its exit routine
"""

import asyncio

import pytest

from wrapper.context import CLEAN_EXIT_CODE, FATAL_EXIT_CODE, ExitReason

from conftest import console_text


def test_first_exit_request_wins(ctx):
    assert ctx.request_exit(ExitReason.INACTIVITY, detail="> 300s without output")
    assert not ctx.request_exit(ExitReason.RCON_DISCONNECT)
    assert not ctx.request_exit(ExitReason.SIGNAL, code=CLEAN_EXIT_CODE)

    assert ctx.exiting
    assert ctx.exit_code == FATAL_EXIT_CODE
    assert ctx.exit_reason is ExitReason.INACTIVITY
    assert "[Watchdog] no output (> 300s without output). Restarting server..." in console_text(ctx.console)


def test_exit_terminates_server_once(ctx):
    ctx.request_exit(ExitReason.RCON_DISCONNECT)
    ctx.request_exit(ExitReason.INACTIVITY)
    ctx.process.terminate.assert_called_once()


def test_clean_exit_message(ctx):
    ctx.request_exit(ExitReason.SIGNAL, code=CLEAN_EXIT_CODE)
    assert ctx.exit_code == 0
    assert "Shutting down" in console_text(ctx.console)


def test_request_termination_without_process(ctx):
    ctx.process = None
    assert ctx.request_termination() is False
    assert ctx.request_exit(ExitReason.INACTIVITY)


def test_emit_writes_raw_text(ctx):
    ctx.emit("[Oxide] Loaded plugin [bold]Kits[/bold] v1.0")
    assert "[Oxide] Loaded plugin [bold]Kits[/bold] v1.0" in console_text(ctx.console)


@pytest.mark.asyncio
async def test_wait_for_exit_returns_code(ctx):
    waiter = asyncio.create_task(ctx.wait_for_exit())
    await asyncio.sleep(0)
    assert not waiter.done()

    ctx.request_exit(ExitReason.RCON_WAIT_TIMEOUT)
    assert await asyncio.wait_for(waiter, timeout=1) == FATAL_EXIT_CODE
