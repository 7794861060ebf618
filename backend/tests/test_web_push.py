from __future__ import annotations

from types import SimpleNamespace

import pytest
from pywebpush import WebPushException
from requests import ConnectionError as RequestsConnectionError

from notifyhub.core.exceptions import ProviderDeliveryFailure
from notifyhub.services import web_push
from notifyhub.services.web_push import PushEndpoint, WebPushProvider

ENDPOINT = PushEndpoint(endpoint="https://push.example/abc", p256dh="key", auth="secret")


@pytest.fixture()
def provider() -> WebPushProvider:
    return WebPushProvider(vapid_private_key="private", vapid_claims_email="mailto:ops@example.com")


def test_send_passes_subscription_info_and_claims(provider, monkeypatch) -> None:
    captured = {}

    def fake_webpush(**kwargs):
        captured.update(kwargs)

    monkeypatch.setattr(web_push, "webpush", fake_webpush)

    provider.send(ENDPOINT, {"title": "Hi", "body": "Body"})

    assert captured["subscription_info"] == {
        "endpoint": "https://push.example/abc",
        "keys": {"p256dh": "key", "auth": "secret"},
    }
    assert captured["vapid_claims"] == {"sub": "mailto:ops@example.com"}
    assert '"title": "Hi"' in captured["data"]


@pytest.mark.parametrize(("status_code", "permanent"), [(410, True), (404, True), (429, False), (500, False)])
def test_rejections_are_classified(provider, monkeypatch, status_code, permanent) -> None:
    def fake_webpush(**kwargs):
        raise WebPushException(
            "Push failed",
            response=SimpleNamespace(status_code=status_code, text="rejected"),
        )

    monkeypatch.setattr(web_push, "webpush", fake_webpush)

    with pytest.raises(ProviderDeliveryFailure) as excinfo:
        provider.send(ENDPOINT, {})

    assert excinfo.value.status_code == status_code
    assert excinfo.value.permanent is permanent


def test_network_error_is_transient(provider, monkeypatch) -> None:
    def fake_webpush(**kwargs):
        raise RequestsConnectionError("connection refused")

    monkeypatch.setattr(web_push, "webpush", fake_webpush)

    with pytest.raises(ProviderDeliveryFailure) as excinfo:
        provider.send(ENDPOINT, {})

    assert excinfo.value.permanent is False
    assert excinfo.value.status_code is None


def test_missing_vapid_key_fails_without_calling_push_service(monkeypatch) -> None:
    def fake_webpush(**kwargs):
        raise AssertionError("push service must not be called")

    monkeypatch.setattr(web_push, "webpush", fake_webpush)
    unconfigured = WebPushProvider(vapid_private_key="", vapid_claims_email="mailto:ops@example.com")

    with pytest.raises(ProviderDeliveryFailure) as excinfo:
        unconfigured.send(ENDPOINT, {})

    assert excinfo.value.permanent is False
