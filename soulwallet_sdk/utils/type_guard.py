import re

from soulwallet_sdk.exceptions import ValidationError
from soulwallet_sdk.typing import Address

ADDRESS_PATTERN = "^0x[0-9a-fA-F]{40}$"
BYTES_PATTERN = "^0x([0-9a-fA-F]{2})*$"
HASH_PATTERN = "^0x[0-9a-fA-F]{64}$"
URL_PATTERN = "^https?://[^\\s/$.?#].[^\\s]*$"

MAX_UINT48 = 2**48 - 1
MAX_UINT192 = 2**192 - 1
MAX_UINT256 = 2**256 - 1


def is_address(value) -> bool:
    return isinstance(value, str) and re.match(ADDRESS_PATTERN, value) is not None


def is_bytes(value) -> bool:
    return isinstance(value, str) and re.match(BYTES_PATTERN, value) is not None


def is_user_operation_hash(value) -> bool:
    return isinstance(value, str) and re.match(HASH_PATTERN, value) is not None


def is_http_or_https(value) -> bool:
    return isinstance(value, str) and re.match(URL_PATTERN, value) is not None


def verify_and_get_address(field_name: str, value: str | None) -> Address:
    if is_address(value):
        return Address(value)
    raise ValidationError(
        field_name, f"Invalid address value : {value}")


def verify_and_get_bytes(field_name: str, value: str | bytes | None) -> bytes:
    if isinstance(value, bytes):
        return value
    if is_bytes(value):
        return bytes.fromhex(value[2:])
    raise ValidationError(
        field_name, f"Invalid bytes hex value : {value}")


def verify_and_get_uint(
    field_name: str,
    value: int | str | None,
    max_value: int = MAX_UINT256,
) -> int:
    """
    accepts python ints, 0x prefixed hex strings and decimal strings
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(
            field_name, f"Invalid uint value : {value}")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        try:
            if value == "0x":
                result = 0
            elif value[:2] in ("0x", "0X"):
                result = int(value, 16)
            else:
                result = int(value, 10)
        except ValueError:
            raise ValidationError(
                field_name, f"Invalid uint value : {value}")
    else:
        raise ValidationError(
            field_name, f"Invalid uint value : {value}")

    if result < 0 or result > max_value:
        raise ValidationError(
            field_name, f"uint value out of range : {value}")
    return result
