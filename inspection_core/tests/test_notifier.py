"""Tests for inspection_core.notifier."""

from __future__ import annotations

import json
from typing import List

import httpx
import pytest
import respx

from inspection_core.config import CoreSettings
from inspection_core.notifier import HttpNotifier, LoggingNotifier, build_notifier
from inspection_core.schemas import InspectionWorkCompleted

_URL = "http://hooks.test/inspections"


def _make_event(count: int = 2) -> InspectionWorkCompleted:
    return InspectionWorkCompleted(
        inspection_id="INSP-1",
        has_anomalies=count > 0,
        anomalies_count=count,
    )


def _make_notifier(**overrides) -> tuple:
    sleeps: List[float] = []
    defaults = dict(max_retries=3, sleep=sleeps.append)
    defaults.update(overrides)
    return HttpNotifier(_URL, **defaults), sleeps


@respx.mock
def test_post_success_sends_camel_case_payload() -> None:
    route = respx.post(_URL).mock(return_value=httpx.Response(204))
    notifier, sleeps = _make_notifier()
    try:
        assert notifier.send(_make_event()) is True
    finally:
        notifier.close()

    assert route.call_count == 1
    body = json.loads(route.calls[0].request.content)
    assert body == {
        "type": "INSPECTION_WORK_COMPLETED",
        "inspectionId": "INSP-1",
        "hasAnomalies": True,
        "anomaliesCount": 2,
    }
    assert sleeps == []


@respx.mock
def test_server_error_retries_with_backoff() -> None:
    route = respx.post(_URL).mock(return_value=httpx.Response(503))
    notifier, sleeps = _make_notifier(max_retries=3)
    try:
        assert notifier.send(_make_event()) is False
    finally:
        notifier.close()

    assert route.call_count == 3
    assert sleeps == [1, 2]


@respx.mock
def test_client_error_does_not_retry() -> None:
    route = respx.post(_URL).mock(return_value=httpx.Response(422))
    notifier, sleeps = _make_notifier(max_retries=3)
    try:
        assert notifier.send(_make_event()) is False
    finally:
        notifier.close()

    assert route.call_count == 1
    assert sleeps == []


@respx.mock
def test_network_error_then_recovery() -> None:
    route = respx.post(_URL).mock(
        side_effect=[httpx.ConnectError("refused"), httpx.Response(200)]
    )
    notifier, sleeps = _make_notifier(max_retries=3)
    try:
        assert notifier.send(_make_event()) is True
    finally:
        notifier.close()

    assert route.call_count == 2
    assert sleeps == [1]


@respx.mock
def test_notify_never_raises() -> None:
    respx.post(_URL).mock(side_effect=httpx.ConnectError("refused"))
    notifier, _ = _make_notifier(max_retries=2)
    try:
        notifier.notify(_make_event())
    finally:
        notifier.close()


def test_logging_notifier_accepts_event() -> None:
    LoggingNotifier().notify(_make_event(0))


class TestBuildNotifier:
    def test_default_is_logging(self) -> None:
        settings = CoreSettings(notify_webhook_url=None)
        assert isinstance(build_notifier(settings), LoggingNotifier)

    def test_webhook_configured(self) -> None:
        settings = CoreSettings(notify_webhook_url=_URL, notify_max_retries=5)
        notifier = build_notifier(settings)
        try:
            assert isinstance(notifier, HttpNotifier)
        finally:
            notifier.close()


class TestEventModel:
    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValueError, match="anomalies_count"):
            _make_event(-1)
