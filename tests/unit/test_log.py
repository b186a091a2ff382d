"""Tests for the field logger."""

from __future__ import annotations

import logging

from loks.log import get_logger


class TestFieldLogger:
    def test_fields_are_appended(self, caplog) -> None:
        log = get_logger("loks.test", pod="web-1").with_fields(container="app")

        with caplog.at_level(logging.INFO, logger="loks.test"):
            log.info("Starting to collect logs...")

        (record,) = caplog.records
        assert record.getMessage() == "Starting to collect logs... pod=web-1 container=app"
        assert record.fields == {"pod": "web-1", "container": "app"}

    def test_with_fields_does_not_mutate_parent(self) -> None:
        parent = get_logger("loks.test", pod="web-1")
        child = parent.with_fields(container="app")
        assert parent.fields == {"pod": "web-1"}
        assert child.fields == {"pod": "web-1", "container": "app"}

    def test_with_error(self) -> None:
        log = get_logger("loks.test").with_error(ValueError("bad"))
        assert log.fields == {"error": "ValueError: bad"}
