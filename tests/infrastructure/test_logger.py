#!/usr/bin/env python3
"""Tests for the structured Logger."""

import logging
import threading

import pytest

from fmdecorator.infrastructure.logger import (
    LogLevel,
    Logger,
    get_logger,
    set_global_logger,
)


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_log_levels(self):
        """Log level values match Python logging."""
        assert LogLevel.DEBUG == logging.DEBUG
        assert LogLevel.INFO == logging.INFO
        assert LogLevel.WARNING == logging.WARNING
        assert LogLevel.ERROR == logging.ERROR
        assert LogLevel.CRITICAL == logging.CRITICAL


class TestLogger:
    """Tests for Logger."""

    def test_level_by_name(self, log_handler):
        """Levels may be given by name."""
        logger = Logger("fmdecorator.tests.names", level="warning", handlers=[log_handler])

        assert logger.get_level() == LogLevel.WARNING
        assert not logger.is_enabled_for("INFO")
        assert logger.is_enabled_for(LogLevel.ERROR)

    def test_unknown_level_name(self):
        """Unknown level names raise KeyError."""
        with pytest.raises(KeyError):
            Logger("fmdecorator.tests.bad", level="LOUD", handlers=[])

    def test_filtered_below_level(self, log_handler):
        """Messages below the level are dropped."""
        logger = Logger("fmdecorator.tests.filter", level="INFO", handlers=[log_handler])
        logger.debug("hidden")
        logger.info("shown")

        assert log_handler.messages() == ["shown"]

    def test_context_kwargs(self, logger, log_handler):
        """Keyword context is appended as key=value pairs."""
        logger.info("tag matched", tag="work")

        assert log_handler.messages() == ["tag matched | tag=work"]
        assert log_handler.records[0].context == {"tag": "work"}

    def test_add_context_nests(self, logger, log_handler):
        """Pushed context applies inside the block only."""
        with logger.add_context(rule_id="1"):
            with logger.add_context(rule_name="Work"):
                logger.debug("inner")
            logger.debug("outer")
        logger.debug("after")

        assert log_handler.messages() == [
            "inner | rule_id=1 rule_name=Work",
            "outer | rule_id=1",
            "after",
        ]

    def test_context_is_thread_local(self, logger, log_handler):
        """Context pushed on one thread is not seen on another."""
        seen = []

        def worker():
            logger.info("worker")
            seen.append(True)

        with logger.add_context(rule_id="1"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen == [True]
        assert "worker" in log_handler.messages()

    def test_exception(self, logger, log_handler):
        """Exceptions carry their type and traceback info."""
        try:
            raise ValueError("bad")
        except ValueError as e:
            logger.exception("failed", e, file_path="r.py")

        record = log_handler.records[0]
        assert record.levelno == logging.ERROR
        assert record.context["exception_type"] == "ValueError"
        assert record.context["file_path"] == "r.py"
        assert record.exc_info is not None

    def test_level_helpers(self, logger, log_handler):
        """Each helper logs at its level."""
        logger.debug("d")
        logger.info("i")
        logger.warning("w")
        logger.error("e")

        assert [r.levelno for r in log_handler.records] == [10, 20, 30, 40]
        assert log_handler.messages(logging.WARNING) == ["w", "e"]

    def test_file_handler(self, logger, tmp_path):
        """Rotating file output writes formatted lines."""
        log_file = tmp_path / "fmdecorator.log"
        handler = logger.create_file_handler(log_file)
        logger.add_handler(handler)
        logger.info("to file")
        logger.remove_handler(handler)
        handler.close()

        assert "INFO - to file" in log_file.read_text()


class TestGlobalLogger:
    """Tests for the global logger helpers."""

    def test_set_and_get(self, logger):
        """set_global_logger replaces the instance get_logger returns."""
        set_global_logger(logger)

        assert get_logger(logger.name) is logger

    def test_get_creates_by_name(self):
        """Asking for another name creates a new logger."""
        created = get_logger("fmdecorator.tests.other")

        assert created.name == "fmdecorator.tests.other"
        assert get_logger("fmdecorator.tests.other") is created
