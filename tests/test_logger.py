"""Test logging configuration"""

import logging

import pytest

from artist_sync.utils.logger import (
    ConsoleMessageFilter,
    OperationLogger,
    VerboseConsoleFilter,
    get_logger,
    parse_size,
    setup_logging,
)


def record(level, console_output=False, name='artist_sync.sync'):
    log_record = logging.LogRecord(name, level, __file__, 1, "message", None, None)
    if console_output:
        log_record.console_output = True
    return log_record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestLogger:
    """Test console filtering, file logging and operation tracking"""

    def test_console_filter_shows_user_messages_only(self):
        console_filter = ConsoleMessageFilter()

        assert console_filter.filter(record(logging.WARNING))
        assert console_filter.filter(record(logging.INFO, console_output=True))
        assert not console_filter.filter(record(logging.INFO))
        assert not console_filter.filter(record(logging.DEBUG))

    def test_verbose_filter_shows_info(self):
        verbose_filter = VerboseConsoleFilter()

        assert verbose_filter.filter(record(logging.INFO))
        assert not verbose_filter.filter(record(logging.DEBUG))

    def test_parse_size(self):
        assert parse_size("10MB") == 10 * 1024 ** 2
        assert parse_size("500kb") == 500 * 1024
        with pytest.raises(ValueError):
            parse_size("lots")

    def test_file_logging(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "artist-sync.log"
        setup_logging(level="DEBUG", log_file=str(log_file), console_output=False)

        get_logger("artist_sync.test").debug("technical detail")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "technical detail" in log_file.read_text()

    def test_console_info_marks_record(self, caplog):
        logger = get_logger("artist_sync.test")

        with caplog.at_level(logging.INFO, logger="artist_sync.test"):
            logger.console_info("shown to the user")

        assert caplog.records[-1].console_output is True

    def test_operation_logger_progress(self, caplog):
        operation = OperationLogger(get_logger("artist_sync.test"), "Artist sync", show_progress=False)

        with caplog.at_level(logging.INFO, logger="artist_sync.test"):
            operation.start()
            operation.progress("Synced Queen", 1, 2)
            operation.complete("done")

        messages = [r.getMessage() for r in caplog.records]
        assert "Starting Artist sync" in messages
        assert "Artist sync: Synced Queen (1/2)" in messages
        assert "done" in messages
