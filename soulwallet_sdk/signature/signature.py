"""
SoulWallet signature layout.

validationData is a single uint256 word:

    +------------------+------------------+----------------------+
    | validAfter (48)  | validUntil (48)  | reserved (160)       |
    +------------------+------------------+----------------------+
      bits 208..255      bits 160..207      bits 0..159

the packed signature blob is

    validationData (32 bytes) | signature | [guard hook section]

where the guard hook section is abi.encode(address[] guardHooks, bytes inputData)
and only present when hook input data is supplied.
"""
from dataclasses import dataclass, field

from eth_abi import encode
from eth_utils import keccak

from soulwallet_sdk.exceptions import ValidationError
from soulwallet_sdk.typing import Address
from soulwallet_sdk.utils.type_guard import (
    MAX_UINT48, is_user_operation_hash, verify_and_get_address,
    verify_and_get_bytes, verify_and_get_uint)

VALID_UNTIL_OFFSET = 160
VALID_AFTER_OFFSET = 160 + 48

DEFAULT_VALID_AFTER = 0
DEFAULT_VALID_UNTIL = MAX_UINT48

# uint8 private constant _GUARD_HOOK = 1 << 0;
GUARD_HOOK_TYPE = 1


@dataclass
class GuardHookInputData:
    sender: Address
    input_data: str | bytes = b""


@dataclass
class HookInputData:
    guard_hooks: list[Address] = field(default_factory=list)
    input_data: str | bytes = b""


@dataclass
class PackedUserOpHash:
    packed_user_op_hash: str
    validation_data: str


def pack_validation_data(
    valid_after: int | None = None, valid_until: int | None = None
) -> int:
    if valid_after is None:
        valid_after = DEFAULT_VALID_AFTER
    if valid_until is None:
        valid_until = DEFAULT_VALID_UNTIL
    valid_after = verify_and_get_uint("validAfter", valid_after, MAX_UINT48)
    valid_until = verify_and_get_uint("validUntil", valid_until, MAX_UINT48)
    return (
        (valid_until << VALID_UNTIL_OFFSET) |
        (valid_after << VALID_AFTER_OFFSET)
    )


def pack_user_op_hash(
    user_op_hash: str,
    valid_after: int | None = None,
    valid_until: int | None = None,
) -> PackedUserOpHash:
    if not is_user_operation_hash(user_op_hash):
        raise ValidationError(
            "userOpHash", f"Invalid userOpHash : {user_op_hash}")
    validation_data = pack_validation_data(valid_after, valid_until)
    packed_user_op_hash = keccak(
        bytes.fromhex(user_op_hash[2:]) +
        validation_data.to_bytes(32, "big")
    )
    return PackedUserOpHash(
        packed_user_op_hash="0x" + packed_user_op_hash.hex(),
        validation_data=hex(validation_data),
    )


def pack_signature(
    signature: str | bytes,
    validation_data: str | int,
    hook_input_data: HookInputData | None = None,
) -> bytes:
    raw_signature = verify_and_get_bytes("signature", signature)
    validation_data_int = verify_and_get_uint(
        "validationData", validation_data)

    packed = validation_data_int.to_bytes(32, "big") + raw_signature
    if hook_input_data is not None:
        guard_hooks = [
            verify_and_get_address("guardHooks", guard_hook).lower()
            for guard_hook in hook_input_data.guard_hooks
        ]
        input_data = verify_and_get_bytes(
            "inputData", hook_input_data.input_data)
        # guard hooks stay in plugin registration order
        packed += encode(
            ["address[]", "bytes"],
            [guard_hooks, input_data],
        )
    return packed
