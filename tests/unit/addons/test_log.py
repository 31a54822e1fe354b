from __future__ import annotations

import logging

from addonlib.log import SUCCESS, AddonLogger, LogLevel

from addon_fakes import RecordingLogger


def test_callback_receives_every_level() -> None:
    events = []
    log = AddonLogger(callback=lambda level, message: events.append((level, message)))

    log.info("i")
    log.success("s")
    log.warning("w")
    log.error("e")

    assert events == [
        (LogLevel.INFO, "i"),
        (LogLevel.SUCCESS, "s"),
        (LogLevel.WARNING, "w"),
        (LogLevel.ERROR, "e"),
    ]


def test_events_reach_stdlib_logging(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="addonlib"):
        AddonLogger().success("installed")

    record = caplog.records[-1]
    assert record.levelno == SUCCESS
    assert record.levelname == "SUCCESS"
    assert record.getMessage() == "installed"


def test_recording_logger_filters_by_level() -> None:
    log = RecordingLogger()
    log.info("a")
    log.warning("b")

    assert log.messages() == ["a", "b"]
    assert log.messages(LogLevel.WARNING) == ["b"]
