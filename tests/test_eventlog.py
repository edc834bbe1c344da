import logging
import re

from lrcd.eventlog import FileEventLog, NullEventLog, open_event_log

RECORD_RE = re.compile(r"^\[\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z\] (.*)$")


def test_file_log_appends_timestamped_lines(tmp_path) -> None:
    path = tmp_path / "logs" / "chat.log"
    sink = FileEventLog(path)
    sink.record("Guest1 connected")
    sink.record("Guest1: hello")

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [RECORD_RE.match(line).group(1) for line in lines] == [
        "Guest1 connected",
        "Guest1: hello",
    ]


def test_write_failure_is_reported_not_raised(tmp_path, caplog) -> None:
    # A directory cannot be opened for appending.
    sink = FileEventLog(tmp_path)
    with caplog.at_level(logging.WARNING, logger="lrcd.eventlog"):
        sink.record("lost")
    assert "log error" in caplog.text


def test_open_event_log_without_path_is_null() -> None:
    assert isinstance(open_event_log(None), NullEventLog)
    assert isinstance(open_event_log("  "), NullEventLog)
