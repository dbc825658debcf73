from dataclasses import dataclass, field

from soulwallet_sdk.exceptions import ValidationError
from soulwallet_sdk.typing import Address
from soulwallet_sdk.utils.type_guard import (
    verify_and_get_address, verify_and_get_bytes, verify_and_get_uint)


@dataclass(frozen=True)
class GasLimit:
    """
    callGasLimit ownership.

    on the wire an even callGasLimit means the sdk manages the value
    (estimation may overwrite it) and an odd one means the caller pinned it.
    """
    value: int = 0
    is_fixed: bool = False

    @classmethod
    def auto(cls, value: int = 0) -> "GasLimit":
        return cls(value, False)

    @classmethod
    def fixed(cls, value: int) -> "GasLimit":
        return cls(value, True)

    @classmethod
    def from_wire(cls, value: int) -> "GasLimit":
        return cls(value, value % 2 == 1)

    @property
    def is_auto(self) -> bool:
        return not self.is_fixed

    def to_wire(self) -> int:
        if self.is_fixed:
            return self.value | 1
        return self.value + (self.value % 2)


@dataclass
class UserOperation:
    sender_address: Address
    nonce: int = 0
    init_code: bytes = b""
    call_data: bytes = b""
    call_gas_limit: GasLimit = field(default_factory=GasLimit.auto)
    verification_gas_limit: int = 0
    pre_verification_gas: int = 0
    max_fee_per_gas: int = 0
    max_priority_fee_per_gas: int = 0
    paymaster_and_data: bytes = b""
    signature: bytes = b""

    @classmethod
    def from_json(cls, json_dict: dict[str, str]) -> "UserOperation":
        cls.verify_fields_exist(json_dict)
        return cls(
            sender_address=verify_and_get_address(
                "sender", json_dict["sender"]),
            nonce=verify_and_get_uint("nonce", json_dict["nonce"]),
            init_code=verify_and_get_bytes(
                "initCode", json_dict["initCode"]),
            call_data=verify_and_get_bytes(
                "callData", json_dict["callData"]),
            call_gas_limit=GasLimit.from_wire(
                verify_and_get_uint(
                    "callGasLimit", json_dict["callGasLimit"])),
            verification_gas_limit=verify_and_get_uint(
                "verificationGasLimit", json_dict["verificationGasLimit"]),
            pre_verification_gas=verify_and_get_uint(
                "preVerificationGas", json_dict["preVerificationGas"]),
            max_fee_per_gas=verify_and_get_uint(
                "maxFeePerGas", json_dict["maxFeePerGas"]),
            max_priority_fee_per_gas=verify_and_get_uint(
                "maxPriorityFeePerGas", json_dict["maxPriorityFeePerGas"]),
            paymaster_and_data=verify_and_get_bytes(
                "paymasterAndData", json_dict["paymasterAndData"]),
            signature=verify_and_get_bytes(
                "signature", json_dict["signature"]),
        )

    @staticmethod
    def verify_fields_exist(json_dict: dict[str, str]) -> None:
        field_list = [
            "sender",
            "nonce",
            "initCode",
            "callData",
            "callGasLimit",
            "verificationGasLimit",
            "preVerificationGas",
            "maxFeePerGas",
            "maxPriorityFeePerGas",
            "paymasterAndData",
            "signature",
        ]

        for field_name in field_list:
            if field_name not in json_dict:
                raise ValidationError(
                    field_name, f"UserOperation missing {field_name} field")

    def get_user_operation_json(self) -> dict[str, str]:
        return {
            "sender": self.sender_address,
            "nonce": hex(self.nonce),
            "initCode": "0x" + self.init_code.hex(),
            "callData": "0x" + self.call_data.hex(),
            "callGasLimit": hex(self.call_gas_limit.to_wire()),
            "verificationGasLimit": hex(self.verification_gas_limit),
            "preVerificationGas": hex(self.pre_verification_gas),
            "maxFeePerGas": hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": hex(self.max_priority_fee_per_gas),
            "paymasterAndData": "0x" + self.paymaster_and_data.hex(),
            "signature": "0x" + self.signature.hex(),
        }

    def to_list(self) -> list[Address | int | bytes]:
        return [
            self.sender_address,
            self.nonce,
            self.init_code,
            self.call_data,
            self.call_gas_limit.to_wire(),
            self.verification_gas_limit,
            self.pre_verification_gas,
            self.max_fee_per_gas,
            self.max_priority_fee_per_gas,
            self.paymaster_and_data,
            self.signature,
        ]
