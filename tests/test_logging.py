from __future__ import annotations

import json
import logging

from fxrate.core.logging import ContextFilter, JsonFormatter, request_id_ctx, source_context


def _format(logger_name: str, message: str, **extra) -> dict:
    record = logging.getLogger(logger_name).makeRecord(
        logger_name, logging.WARNING, __file__, 1, message, (), None, extra=extra or None
    )
    ContextFilter().filter(record)
    return json.loads(JsonFormatter().format(record))


def test_source_context_tags_records() -> None:
    with source_context("bank"):
        line = _format("fxrate.ingestion", "skipping quote")
    assert line["source"] == "bank"
    assert line["request_id"] == "-"
    assert "source" not in _format("fxrate.ingestion", "outside")


def test_extra_fields_are_emitted() -> None:
    token = request_id_ctx.set("req-1")
    try:
        line = _format(
            "fxrate.pair_cache", "fetch failed", source="card", from_currency="USD", to_currency="CNY"
        )
    finally:
        request_id_ctx.reset(token)
    assert line["source"] == "card"
    assert line["from_currency"] == "USD"
    assert line["to_currency"] == "CNY"
    assert line["request_id"] == "req-1"
    assert line["level"] == "WARNING"


def test_explicit_source_wins_over_context() -> None:
    with source_context("bank"):
        line = _format("fxrate.orchestrator", "registered", source="card")
    assert line["source"] == "card"
