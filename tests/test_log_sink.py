"""
Tests for the RCON message log
"""

from unittest.mock import MagicMock

from wrapper.log_sink import LogSink


def test_open_truncates_and_appends_with_separator(tmp_path):
    path = tmp_path / "latest.log"
    path.write_text("previous run")

    sink = LogSink(str(path))
    sink.open()
    assert path.read_text() == ""

    assert sink.append("first")
    assert sink.append("second")
    sink.close()

    assert path.read_text() == "\nfirst\nsecond"


def test_appends_are_visible_before_close(tmp_path):
    path = tmp_path / "latest.log"
    sink = LogSink(str(path))
    sink.open()

    sink.append("Server startup complete")

    assert path.read_text() == "\nServer startup complete"
    sink.close()


def test_creates_missing_directory(tmp_path):
    path = tmp_path / "logs" / "latest.log"
    sink = LogSink(str(path))
    sink.open()
    sink.append("hello")
    sink.close()
    assert path.read_text() == "\nhello"


def test_open_failure_is_reported_not_raised(tmp_path):
    errors = []
    sink = LogSink(str(tmp_path), on_error=errors.append)

    sink.open()

    assert sink.failures == 1
    assert errors and str(tmp_path) in errors[0]
    assert sink.append("dropped") is False


def test_write_failure_is_reported_not_raised(tmp_path):
    errors = []
    sink = LogSink(str(tmp_path / "latest.log"), on_error=errors.append)
    sink.open()
    sink._file.close()
    broken = MagicMock()
    broken.write.side_effect = OSError("No space left on device")
    sink._file = broken

    assert sink.append("lost") is False
    assert sink.failures == 1
    assert "No space left on device" in errors[0]
