"""Tests for the payout gateway adapter and account encryption."""

import json

import pytest
from cryptography.exceptions import InvalidTag

from shortlet.core.encryption import EncryptionService, mask_account_number
from shortlet.gateways import get_gateway
from shortlet.gateways.base import GatewayType, PayoutDestination
from shortlet.gateways.manual import ManualGateway, sign_payload

SECRET = "test-webhook-secret"


@pytest.fixture
def gateway() -> ManualGateway:
    return ManualGateway(webhook_secret=SECRET)


@pytest.fixture
def destination() -> PayoutDestination:
    return PayoutDestination(
        bank_code="058", bank_name="GTBank", account_name="Ada Host", account_number="0123456789"
    )


def test_get_gateway_defaults_to_manual():
    assert isinstance(get_gateway(), ManualGateway)
    assert get_gateway("manual").gateway_type == GatewayType.MANUAL


def test_get_gateway_rejects_unknown():
    with pytest.raises(ValueError):
        get_gateway("stripe")


async def test_transfer_is_accepted(gateway, destination):
    result = await gateway.initiate_transfer(
        amount=100_000,
        currency="NGN",
        reference="PAY-20240614-ABC123",
        destination=destination,
        narration="Payout PAY-20240614-ABC123",
    )
    assert result.success
    assert result.transaction_id == "manual_PAY-20240614-ABC123"
    assert "0123456789" not in json.dumps(result.raw_response)


async def test_zero_transfer_is_rejected(gateway, destination):
    result = await gateway.initiate_transfer(0, "NGN", "PAY-1", destination, "Payout")
    assert not result.success


class TestVerifyWebhook:
    def test_valid_signature(self, gateway):
        body = json.dumps({"reference": "PAY-1", "status": "COMPLETED"}).encode()
        assert gateway.verify_webhook(body, sign_payload(body, SECRET)) == {
            "reference": "PAY-1",
            "status": "COMPLETED",
        }

    def test_signature_with_other_secret(self, gateway):
        body = b'{"reference": "PAY-1"}'
        assert gateway.verify_webhook(body, sign_payload(body, "someone-else")) is None

    def test_tampered_body(self, gateway):
        body = b'{"reference": "PAY-1", "status": "FAILED"}'
        signature = sign_payload(body, SECRET)
        assert gateway.verify_webhook(body.replace(b"FAILED", b"COMPLETED"), signature) is None

    def test_missing_signature(self, gateway):
        assert gateway.verify_webhook(b"{}", "") is None

    @pytest.mark.parametrize("body", [b"not json", b"[1, 2]"])
    def test_body_must_be_json_object(self, gateway, body):
        assert gateway.verify_webhook(body, sign_payload(body, SECRET)) is None


class TestEncryption:
    def test_fresh_nonce_per_encryption(self):
        service = EncryptionService(b"k" * 32)
        first = service.encrypt("0123456789", b"host-a")
        second = service.encrypt("0123456789", b"host-a")
        assert first != second
        assert service.decrypt(first, b"host-a") == "0123456789"

    def test_associated_data_must_match(self):
        service = EncryptionService(b"k" * 32)
        sealed = service.encrypt("0123456789", b"host-a")
        with pytest.raises(InvalidTag):
            service.decrypt(sealed, b"host-b")

    def test_key_must_be_32_bytes(self):
        with pytest.raises(ValueError):
            EncryptionService(b"short")

    @pytest.mark.parametrize(
        ("number", "masked"),
        [("0123456789", "******6789"), ("1234", "1234")],
    )
    def test_mask(self, number, masked):
        assert mask_account_number(number) == masked
