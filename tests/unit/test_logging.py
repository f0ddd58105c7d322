"""Tests for the log line formatter."""

import json
import logging

from trendpipe.core.logging import JSONExtrasFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("trendpipe.test", logging.INFO, __file__, 1, "Scout finished %s", ("ok",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_extras_are_appended_as_json() -> None:
    line = JSONExtrasFormatter().format(_record(candidates=4, feed_url="https://a.example/rss"))

    message, _, payload = line.partition("Scout finished ok ")
    assert "| INFO     | trendpipe.test |" in message
    assert json.loads(payload) == {"candidates": 4, "feed_url": "https://a.example/rss"}


def test_line_without_extras_has_no_payload() -> None:
    line = JSONExtrasFormatter().format(_record())

    assert line.endswith("Scout finished ok")
