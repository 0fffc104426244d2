"""Tests for offline webhook dispatch."""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import httpx

from safewatt.alerts.webhook import build_offline_payload, dispatch_webhooks


def _payload(device_id: str = "D1") -> dict:
    return build_offline_payload(device_id, "VAULTER", datetime(2025, 1, 1, tzinfo=UTC))


def test_build_offline_payload():
    payload = _payload()
    assert payload["event"] == "deviceDisconnected"
    assert payload["device"] == {
        "deviceId": "D1",
        "deviceType": "VAULTER",
        "lastSeen": "2025-01-01T00:00:00+00:00",
    }


def test_dispatch_webhooks_success():
    with patch("safewatt.alerts.webhook.httpx.Client") as mock_client_cls:
        mock_client = MagicMock()
        mock_client_cls.return_value.__enter__ = MagicMock(return_value=mock_client)
        mock_client_cls.return_value.__exit__ = MagicMock(return_value=False)
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.is_success = True
        mock_client.post.return_value = mock_response

        results = dispatch_webhooks("https://example.com/hook", [_payload()])

    assert len(results) == 1
    assert results[0]["success"] is True
    assert results[0]["status_code"] == 200
    mock_client.post.assert_called_once()
    assert mock_client.post.call_args.kwargs["json"]["device"]["deviceId"] == "D1"


def test_dispatch_webhooks_http_error():
    with patch("safewatt.alerts.webhook.httpx.Client") as mock_client_cls:
        mock_client = MagicMock()
        mock_client_cls.return_value.__enter__ = MagicMock(return_value=mock_client)
        mock_client_cls.return_value.__exit__ = MagicMock(return_value=False)
        mock_response = MagicMock()
        mock_response.status_code = 500
        mock_response.is_success = False
        mock_client.post.return_value = mock_response

        results = dispatch_webhooks("https://example.com/hook", [_payload()])

    assert results[0]["success"] is False
    assert results[0]["status_code"] == 500


def test_dispatch_webhooks_network_error():
    with patch("safewatt.alerts.webhook.httpx.Client") as mock_client_cls:
        mock_client = MagicMock()
        mock_client_cls.return_value.__enter__ = MagicMock(return_value=mock_client)
        mock_client_cls.return_value.__exit__ = MagicMock(return_value=False)
        mock_client.post.side_effect = httpx.ConnectError("Connection refused")

        results = dispatch_webhooks("https://example.com/hook", [_payload()])

    assert results[0]["success"] is False
    assert results[0]["status_code"] is None
    assert "Connection refused" in results[0]["error"]


def test_dispatch_webhooks_one_client_per_sweep():
    with patch("safewatt.alerts.webhook.httpx.Client") as mock_client_cls:
        mock_client = MagicMock()
        mock_client_cls.return_value.__enter__ = MagicMock(return_value=mock_client)
        mock_client_cls.return_value.__exit__ = MagicMock(return_value=False)
        delivered = MagicMock(status_code=200, is_success=True)
        mock_client.post.side_effect = [httpx.ConnectError("Connection refused"), delivered]

        results = dispatch_webhooks("https://example.com/hook", [_payload("D1"), _payload("D2")])

    assert mock_client_cls.call_count == 1
    assert mock_client.post.call_count == 2
    assert [(r["deviceId"], r["success"]) for r in results] == [("D1", False), ("D2", True)]


def test_dispatch_webhooks_nothing_to_send():
    with patch("safewatt.alerts.webhook.httpx.Client") as mock_client_cls:
        assert dispatch_webhooks("https://example.com/hook", []) == []
    mock_client_cls.assert_not_called()
