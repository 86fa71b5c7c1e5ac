"""Test log level filtering, especially spew level."""

import pytest

from jsupdate.core.log import (
    LEVELS,
    ConsoleSink,
    FileSink,
    LogfireSink,
    OTLPSink,
    level_name,
    setup_logger,
)

ALL_LEVELS = ["spew", "trace", "debug", "info", "warn", "error"]


def emit_everything(logger):
    for name in ALL_LEVELS:
        getattr(logger, name)(f"{name.upper()} message")


@pytest.fixture
def file_logger(tmp_path):
    """Logger writing only to a file at the given level."""
    def _make(level):
        log_file = tmp_path / f"{level}.log"
        logger = setup_logger(
            log_root=tmp_path,
            run_name="test",
            console=ConsoleSink(enabled=False),
            otlp=OTLPSink(enabled=False),
            file=FileSink(enabled=True, level=level, path=str(log_file)),
            logfire=LogfireSink(enabled=False),
        )
        return logger, log_file
    return _make


@pytest.mark.parametrize("level", ALL_LEVELS)
def test_file_level_threshold(file_logger, level):
    """A sink keeps its level and everything more severe."""
    logger, log_file = file_logger(level)

    emit_everything(logger)
    logger.close()

    content = log_file.read_text()
    threshold = ALL_LEVELS.index(level)
    for i, name in enumerate(ALL_LEVELS):
        if i >= threshold:
            assert f"{name.upper()} message" in content
        else:
            assert f"{name.upper()} message" not in content


def test_log_by_level_name(file_logger):
    """log() takes the same names as the level methods, spew included."""
    logger, log_file = file_logger("spew")

    logger.log("spew", "npm output line")
    logger.log("debug", "test output line")
    logger.close()

    content = log_file.read_text()
    assert "npm output line" in content
    assert "test output line" in content


def test_level_ordering():
    """spew < trace < debug < info < warn < error < fatal."""
    order = ["spew", "trace", "debug", "info", "warn", "error", "fatal"]
    numbers = [LEVELS[name] for name in order]

    assert numbers == sorted(numbers)
    assert len(set(numbers)) == len(numbers)
    assert LEVELS['spew'] == 1
    assert LEVELS['trace'] == 3
    assert LEVELS['info'] == 9


def test_level_name_round_trip():
    for name, number in LEVELS.items():
        assert level_name(number) == name


def test_level_name_between_levels():
    """Unnamed severities fall to the nearest lower level."""
    assert level_name(LEVELS['info'] + 1) == "info"
    assert level_name(0) == "unknown"
