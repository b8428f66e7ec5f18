"""Unit tests for the PromptPay payload encoder."""

import math

import pytest

from app.core.errors import ValidationError
from app.services import promptpay


def crc16_ccitt_false(data: bytes) -> int:
    """Bitwise reference CRC (poly 0x1021, init 0xFFFF)."""
    crc = 0xFFFF
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            crc = ((crc << 1) ^ 0x1021) if crc & 0x8000 else (crc << 1)
            crc &= 0xFFFF
    return crc


class TestEncode:
    """Tests for encode()."""

    def test_is_deterministic(self) -> None:
        """Identical inputs give byte-identical payloads."""
        first = promptpay.encode("0812345678", 1057)
        second = promptpay.encode("0812345678", 1057)

        assert first == second

    def test_phone_payload_layout(self) -> None:
        payload = promptpay.encode("0812345678", 1057)

        assert payload[:-4] == (
            "000201"
            "010212"
            "2937"
            "0016A000000677010111"
            "01130066812345678"
            "5802TH"
            "5303764"
            "54071057.00"
            "6304"
        )

    def test_checksum_covers_everything_before_it(self) -> None:
        payload = promptpay.encode("0812345678", 1057)

        expected = crc16_ccitt_false(payload[:-4].encode("ascii"))
        assert payload[-4:] == f"{expected:04X}"

    def test_checksum_matches_standard_check_value(self) -> None:
        assert promptpay._crc16("123456789") == "29B1"

    def test_separators_in_merchant_id_are_ignored(self) -> None:
        assert promptpay.encode("081-234-5678", 299) == promptpay.encode("0812345678", 299)

    def test_no_amount_gives_static_qr(self) -> None:
        payload = promptpay.encode("0812345678")

        assert payload.startswith("000201010211")
        assert "5407" not in payload

    def test_zero_amount_gives_static_qr(self) -> None:
        assert promptpay.encode("0812345678", 0) == promptpay.encode("0812345678")

    def test_amount_always_has_two_decimals(self) -> None:
        assert "540599.50" in promptpay.encode("0812345678", 99.5)
        assert "5406299.00" in promptpay.encode("0812345678", 299)

    def test_tax_id_target(self) -> None:
        payload = promptpay.encode("1234567890123", 100)

        assert "02131234567890123" in payload

    def test_ewallet_target(self) -> None:
        payload = promptpay.encode("123456789012345", 100)

        assert "0315123456789012345" in payload

    @pytest.mark.parametrize("amount", [-1, -0.01, math.nan, math.inf, -math.inf])
    def test_rejects_negative_and_non_finite_amounts(self, amount: float) -> None:
        with pytest.raises(ValidationError):
            promptpay.encode("0812345678", amount)

    def test_rejects_too_short_merchant_id(self) -> None:
        with pytest.raises(ValidationError):
            promptpay.encode("12345", 100)
