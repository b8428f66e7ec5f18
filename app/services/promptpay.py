# app/services/promptpay.py
"""
PromptPay QR payload generation (EMVCo merchant-presented mode).

Layout (tag, length, value):

    00 02 01                         payload format indicator
    01 02 11|12                      static (no amount) | dynamic (with amount)
    29 .. 00 16 A000000677010111     PromptPay merchant account, followed by
          01 13 0066XXXXXXXXX        phone (66 + number without leading 0)
          02 13 XXXXXXXXXXXXX        or national / tax id
          03 15 XXXXXXXXXXXXXXX      or e-wallet id
    58 02 TH                         country
    53 03 764                        currency (THB)
    54 .. 1057.00                    amount, always two decimals
    63 04 XXXX                       CRC-16/CCITT-FALSE over everything before it,
                                     including "6304"
"""
import binascii
import math
import re
from decimal import ROUND_HALF_UP, Decimal

from app.core.errors import ValidationError

ID_PAYLOAD_FORMAT = "00"
ID_POI_METHOD = "01"
ID_MERCHANT_INFORMATION_BOT = "29"
ID_TRANSACTION_CURRENCY = "53"
ID_TRANSACTION_AMOUNT = "54"
ID_COUNTRY_CODE = "58"
ID_CRC = "63"

PAYLOAD_FORMAT_EMV_QRCPS_MERCHANT_PRESENTED_MODE = "01"
POI_METHOD_STATIC = "11"
POI_METHOD_DYNAMIC = "12"

MERCHANT_INFORMATION_TEMPLATE_ID_GUID = "00"
BOT_ID_MERCHANT_PHONE_NUMBER = "01"
BOT_ID_MERCHANT_TAX_ID = "02"
BOT_ID_MERCHANT_EWALLET_ID = "03"
GUID_PROMPTPAY = "A000000677010111"

TRANSACTION_CURRENCY_THB = "764"
COUNTRY_CODE_TH = "TH"

_NON_DIGITS = re.compile(r"[^0-9]")


def _field(tag: str, value: str) -> str:
    return f"{tag}{len(value):02d}{value}"


def _crc16(data: str) -> str:
    return f"{binascii.crc_hqx(data.encode('ascii'), 0xFFFF):04X}"


def _target(merchant_id: str) -> tuple[str, str]:
    """
    Classify and format the merchant identifier.

    Returns (sub-tag, formatted value).
    """
    digits = _NON_DIGITS.sub("", merchant_id)
    if len(digits) >= 15:
        return BOT_ID_MERCHANT_EWALLET_ID, digits
    if len(digits) >= 13:
        return BOT_ID_MERCHANT_TAX_ID, digits
    if len(digits) < 9:
        raise ValidationError(f"Invalid PromptPay id: {merchant_id!r}")
    phone = re.sub(r"^0", "66", digits)
    return BOT_ID_MERCHANT_PHONE_NUMBER, phone.rjust(13, "0")


def format_amount(amount: int | float | Decimal) -> str:
    """
    Two-decimal amount string, e.g. 1057 -> "1057.00".

    Raises:
        ValidationError: negative, NaN or infinite amounts.
    """
    if isinstance(amount, bool):
        raise ValidationError("Amount must be a number")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise ValidationError("Amount must be finite")
    value = Decimal(str(amount))
    if not value.is_finite():
        raise ValidationError("Amount must be finite")
    if value < 0:
        raise ValidationError("Amount cannot be negative")
    return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def encode(merchant_id: str, amount: int | float | Decimal | None = None) -> str:
    """
    Build the PromptPay QR payload for a merchant id and amount.

    Deterministic: identical inputs always give identical payloads.
    An amount of None (or 0) produces a static QR where the payer types the
    amount.
    """
    formatted_amount = format_amount(amount) if amount is not None else None
    if formatted_amount is not None and Decimal(formatted_amount) == 0:
        formatted_amount = None

    target_type, target_value = _target(merchant_id)

    merchant_info = _field(
        MERCHANT_INFORMATION_TEMPLATE_ID_GUID, GUID_PROMPTPAY
    ) + _field(target_type, target_value)

    parts = [
        _field(ID_PAYLOAD_FORMAT, PAYLOAD_FORMAT_EMV_QRCPS_MERCHANT_PRESENTED_MODE),
        _field(
            ID_POI_METHOD,
            POI_METHOD_DYNAMIC if formatted_amount else POI_METHOD_STATIC,
        ),
        _field(ID_MERCHANT_INFORMATION_BOT, merchant_info),
        _field(ID_COUNTRY_CODE, COUNTRY_CODE_TH),
        _field(ID_TRANSACTION_CURRENCY, TRANSACTION_CURRENCY_THB),
    ]
    if formatted_amount:
        parts.append(_field(ID_TRANSACTION_AMOUNT, formatted_amount))

    data = "".join(parts) + ID_CRC + "04"
    return data + _crc16(data)
