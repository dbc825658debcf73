import re


def padding_zero(value: int | str | bytes, length: int = 32) -> str:
    """
    left pad a number, a hex string or raw bytes with zeros to a fixed
    byte width, e.g: 1 -> 0x000...0001 (32 bytes)
    """
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Can't pad negative value {value}")
        hex_value = format(value, "x")
    elif isinstance(value, bytes):
        hex_value = value.hex()
    elif isinstance(value, str) and value[:2] in ("0x", "0X"):
        hex_value = value[2:]
        if re.match("^[0-9a-fA-F]*$", hex_value) is None:
            raise ValueError(f"Invalid hex value : {value}")
    else:
        raise ValueError(f"Invalid hex value : {value}")

    if len(hex_value) > length * 2:
        raise ValueError(f"Value {value} exceeds {length} bytes")
    return "0x" + hex_value.rjust(length * 2, "0").lower()


def padding_zero_bytes(value: int | str | bytes, length: int = 32) -> bytes:
    return bytes.fromhex(padding_zero(value, length)[2:])
