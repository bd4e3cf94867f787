"""
Tests for the Paystack adapter using httpx.MockTransport.
"""
import json

import httpx
import pytest

from orangerides.core.errors import ConfigurationError, PaymentProviderError, ProviderUnavailableError
from orangerides.features.payments.paystack_provider import PaystackProvider, compute_signature


def _provider(handler, **kwargs):
    kwargs.setdefault("secret_key", "sk_test_x")
    kwargs.setdefault("webhook_secret", "whsec_x")
    return PaystackProvider(base_url="https://api.paystack.test", transport=httpx.MockTransport(handler), **kwargs)


def test_verify_transaction_parses_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={
            "status": True,
            "message": "Verification successful",
            "data": {
                "status": "success",
                "amount": 1_000_000,
                "reference": "ref_123",
                "metadata": {"user_id": "o1", "plan": "Weekly"},
            },
        })

    tx = _provider(handler).verify_transaction("ref_123")
    assert seen["url"] == "https://api.paystack.test/transaction/verify/ref_123"
    assert seen["auth"] == "Bearer sk_test_x"
    assert tx.succeeded is True
    assert tx.amount == 1_000_000
    assert tx.metadata == {"user_id": "o1", "plan": "Weekly"}


def test_verify_transaction_escapes_reference():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["raw_path"] = request.url.raw_path
        seen["query"] = request.url.query
        return httpx.Response(200, json={"status": True, "data": {"status": "failed", "amount": 0, "reference": "x"}})

    _provider(handler).verify_transaction("ref/../x?y=1")
    assert seen["raw_path"] == b"/transaction/verify/ref%2F..%2Fx%3Fy%3D1"
    assert seen["query"] == b""


def test_verify_transaction_tolerates_non_dict_metadata():
    def handler(request):
        return httpx.Response(200, json={"status": True, "data": {"status": "failed", "amount": 0, "metadata": ""}})

    tx = _provider(handler).verify_transaction("ref_1")
    assert tx.succeeded is False
    assert tx.metadata == {}
    assert tx.reference == "ref_1"


def test_timeout_is_provider_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderUnavailableError):
        _provider(handler).verify_transaction("ref_1")


def test_connect_error_is_provider_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderUnavailableError):
        _provider(handler).verify_transaction("ref_1")


def test_rejection_is_provider_error():
    def handler(request):
        return httpx.Response(400, json={"status": False, "message": "Transaction reference not found"})

    with pytest.raises(PaymentProviderError) as exc:
        _provider(handler).verify_transaction("nope")
    assert "not found" in exc.value.message


def test_missing_secret_key_is_configuration_error(monkeypatch):
    from orangerides.core.config import settings
    monkeypatch.setattr(settings, "PAYSTACK_SECRET_KEY", None)

    def handler(request):
        raise AssertionError("no request expected")

    provider = PaystackProvider(transport=httpx.MockTransport(handler))
    with pytest.raises(ConfigurationError):
        provider.verify_transaction("ref_1")


def test_initialize_transaction_sends_kobo_and_metadata():
    captured = {}

    def handler(request):
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={
            "status": True,
            "data": {"authorization_url": "https://checkout.paystack.com/xyz", "reference": "ref_9"},
        })

    url = _provider(handler).initialize_transaction(
        email="ada@example.com",
        amount=3_500_000,
        callback_url="http://localhost:3000/owner/subscriptions/verify",
        metadata={"user_id": "o1", "plan": "Monthly"},
    )
    assert url == "https://checkout.paystack.com/xyz"
    assert captured["amount"] == 3_500_000
    assert captured["metadata"] == {"user_id": "o1", "plan": "Monthly"}


def test_verify_signature():
    body = b'{"event":"charge.success"}'
    provider = _provider(lambda r: httpx.Response(500))
    good = compute_signature("whsec_x", body)
    assert provider.verify_signature(body, good) is True
    assert provider.verify_signature(body, good.upper()) is True
    assert provider.verify_signature(body + b" ", good) is False
    assert provider.verify_signature(body, None) is False
    assert provider.verify_signature(body, "") is False
    assert provider.verify_signature(body, "é" * 128) is False


def test_verify_signature_without_secret(monkeypatch):
    from orangerides.core.config import settings
    monkeypatch.setattr(settings, "PAYSTACK_WEBHOOK_SECRET", None)
    provider = PaystackProvider(secret_key="sk")
    with pytest.raises(ConfigurationError):
        provider.verify_signature(b"{}", "abc")
