"""Tests for logging setup and fetch summary metadata."""

import logging

from rich.logging import RichHandler

from otco.logging_setup import configure_logging
from otco.output.pagination import build_pagination, truncation_notice


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level_and_handler(self):
        level = configure_logging("debug")

        logger = logging.getLogger("otco")
        assert level == logging.DEBUG
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_repeated_calls_do_not_stack_handlers(self):
        configure_logging("info")
        configure_logging("info")
        assert len(logging.getLogger("otco").handlers) == 1

    def test_unknown_level_falls_back_to_warning(self):
        assert configure_logging("chatty") == logging.WARNING


class TestPaginationSummary:
    """Tests for truncation metadata."""

    def test_build(self):
        pagination = build_pagination(pages=3, record_count=90, truncated=True, page_cap=3, rate_remaining=10)
        assert pagination == {
            "pages": 3,
            "record_count": 90,
            "page_cap": 3,
            "truncated": True,
            "has_more": True,
            "rate_remaining": 10,
        }

    def test_notice_when_truncated(self):
        notice = truncation_notice(build_pagination(pages=2, record_count=60, truncated=True))
        assert "2 page(s)" in notice
        assert "--all" in notice

    def test_no_notice_when_complete(self):
        assert truncation_notice(build_pagination(pages=2, record_count=45, truncated=False)) is None
