"""
Tests unitaires Logging - Structured Logger

Lignes JSON, champs obligatoires, timestamp UTC, niveaux, masquage, tampon.
"""

import asyncio
import json
import re
from datetime import datetime, timezone

import pytest

from src.logging import (
    InvalidLogLevelError,
    IStructuredLogger,
    LogConfig,
    LogLevel,
    MissingEventError,
    StructuredLogger,
    correlation_id_var,
    correlation_scope,
)


TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class TestJsonLines:
    """Une ligne JSON par événement."""

    def test_required_fields(self) -> None:
        """timestamp, level, correlation_id, logger, event."""
        logger = StructuredLogger("rotation-engine")

        line = json.loads(logger.info("credential_rotated").to_json())

        assert line["level"] == "INFO"
        assert line["logger"] == "rotation-engine"
        assert line["event"] == "credential_rotated"
        assert line["correlation_id"]
        assert TIMESTAMP_PATTERN.match(line["timestamp"])
        assert "fields" not in line

    def test_fields_included(self) -> None:
        logger = StructuredLogger("session-facade")

        entry = logger.info("session_login", principal_id="u1", device_label="Firefox")

        assert json.loads(entry.to_json())["fields"] == {"principal_id": "u1", "device_label": "Firefox"}

    def test_datetime_serialized(self) -> None:
        logger = StructuredLogger("test")
        at = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)

        line = json.loads(logger.info("credential_revoked", revoked_at=at).to_json())

        assert line["fields"]["revoked_at"] == str(at)

    def test_output_handler(self) -> None:
        lines = []
        logger = StructuredLogger("test", output_handler=lines.append)

        logger.warn("family_revoked", family_id="f1", revoked=3)

        assert len(lines) == 1
        assert json.loads(lines[0])["fields"]["revoked"] == 3

    def test_unicode_preserved(self) -> None:
        entry = StructuredLogger("test").info("révocation")

        assert "révocation" in entry.to_json()


class TestValidation:
    """Entrées invalides."""

    def test_empty_event_rejected(self) -> None:
        with pytest.raises(MissingEventError):
            StructuredLogger("test").info("")

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            StructuredLogger("  ")

    def test_invalid_level_rejected(self) -> None:
        with pytest.raises(InvalidLogLevelError):
            StructuredLogger("test").log("INFO", "event")  # type: ignore

    def test_implements_interface(self) -> None:
        assert isinstance(StructuredLogger("test"), IStructuredLogger)


class TestCorrelation:
    """Résolution du correlation_id."""

    def test_generated_when_absent(self) -> None:
        logger = StructuredLogger("test")

        assert logger.info("a").correlation_id != logger.info("b").correlation_id

    def test_config_default(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(default_correlation_id="boot"))

        assert logger.info("a").correlation_id == "boot"
        assert logger.log(LogLevel.INFO, "b", correlation_id="req-2").correlation_id == "req-2"

    def test_scope_shared_across_loggers(self) -> None:
        """Deux composants, une même requête: un seul correlation_id."""
        engine_logger = StructuredLogger("rotation-engine")
        facade_logger = StructuredLogger("session-facade")

        with correlation_scope("req-42") as correlation_id:
            first = engine_logger.warn("credential_reuse_detected")
            second = facade_logger.warn("session_refresh_rejected")

        assert correlation_id == "req-42"
        assert first.correlation_id == second.correlation_id == "req-42"
        assert correlation_id_var.get() is None

    def test_scope_generated_and_nested(self) -> None:
        logger = StructuredLogger("test")

        with correlation_scope() as outer:
            with correlation_scope() as inner:
                entry = logger.info("a")

        assert outer
        assert inner == outer
        assert entry.correlation_id == outer

    def test_explicit_argument_wins_over_scope(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(default_correlation_id="boot"))

        with correlation_scope("req-1"):
            assert logger.info("a").correlation_id == "req-1"
            assert logger.log(LogLevel.INFO, "b", correlation_id="req-2").correlation_id == "req-2"

    @pytest.mark.asyncio
    async def test_scope_reaches_child_tasks(self) -> None:
        logger = StructuredLogger("test")

        async def child():
            return logger.info("child_event")

        with correlation_scope("req-7"):
            entry = await asyncio.create_task(child())

        assert entry.correlation_id == "req-7"


class TestLevels:
    """Filtrage par niveau."""

    def test_priority_order(self) -> None:
        priorities = [level.priority for level in LogLevel]

        assert priorities == sorted(priorities)

    def test_below_min_level_dropped(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(min_level=LogLevel.WARN))

        assert logger.info("ignored") is None
        assert logger.error("kept") is not None
        assert [e.event for e in logger.entries()] == ["kept"]

    def test_each_level(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(min_level=LogLevel.DEBUG))

        logger.debug("d")
        logger.info("i")
        logger.warn("w")
        logger.error("e")
        logger.critical("c")

        assert [e.level for e in logger.entries()] == list(LogLevel)


class TestMasking:
    """Secrets masqués dans les champs."""

    def test_sensitive_field_masked(self) -> None:
        entry = StructuredLogger("test").info("session_login", principal_id="u1", refresh_secret="abc")

        assert entry.fields == {"principal_id": "u1", "refresh_secret": "***MASKED***"}

    def test_masking_disabled(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(mask_sensitive=False))

        assert logger.info("event", token="abc").fields["token"] == "abc"

    def test_fields_excluded(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(include_fields=False))

        assert logger.info("event", principal_id="u1").fields == {}


class TestBuffer:
    """Tampon mémoire."""

    def test_bounded(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(max_captured_entries=3))

        for i in range(5):
            logger.info(f"event_{i}")

        assert [e.event for e in logger.entries()] == ["event_2", "event_3", "event_4"]

    def test_filters_and_clear(self) -> None:
        logger = StructuredLogger("test")
        logger.info("credential_created")
        logger.error("credential_reuse_detected")
        logger.info("credential_created")

        assert len(logger.entries(event="credential_created")) == 2
        assert len(logger.entries(level=LogLevel.ERROR)) == 1
        assert logger.entries(level=LogLevel.INFO, event="credential_reuse_detected") == []

        logger.clear()
        assert logger.entries() == []
