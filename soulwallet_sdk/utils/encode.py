from functools import cache
from typing import Any

from eth_abi import encode
from eth_utils import keccak

from soulwallet_sdk.utils.hex import padding_zero_bytes


@cache
def function_selector(function_signature: str) -> bytes:
    return keccak(text=function_signature)[:4]


def encode_function_call(
    function_signature: str, argument_types: list[str], args: list[Any]
) -> bytes:
    return function_selector(function_signature) + encode(argument_types, args)


# SoulWallet calldata

def encode_execute_calldata(to: str, value: int, data: bytes) -> bytes:
    # function execute(address dest, uint256 value, bytes calldata func)
    return encode_function_call(
        "execute(address,uint256,bytes)",
        ["address", "uint256", "bytes"],
        [to, value, data],
    )


def encode_execute_batch_calldata(
    to_list: list[str], data_list: list[bytes]
) -> bytes:
    # function executeBatch(address[] calldata dest, bytes[] calldata func)
    return encode_function_call(
        "executeBatch(address[],bytes[])",
        ["address[]", "bytes[]"],
        [to_list, data_list],
    )


def encode_execute_batch_with_value_calldata(
    to_list: list[str], value_list: list[int], data_list: list[bytes]
) -> bytes:
    # function executeBatch(address[] calldata dest,
    #   uint256[] calldata value, bytes[] calldata func)
    return encode_function_call(
        "executeBatch(address[],uint256[],bytes[])",
        ["address[]", "uint256[]", "bytes[]"],
        [to_list, value_list, data_list],
    )


def encode_initialize_calldata(
    owner: bytes,
    default_callback_handler: str,
    modules: list[bytes],
    plugins: list[bytes],
) -> bytes:
    # function initialize(bytes32 anOwner, address defalutCallbackHandler,
    #   bytes[] calldata modules, bytes[] calldata plugins)
    return encode_function_call(
        "initialize(bytes32,address,bytes[],bytes[])",
        ["bytes32", "address", "bytes[]", "bytes[]"],
        [owner, default_callback_handler, modules, plugins],
    )


def encode_create_wallet_calldata(initializer: bytes, salt: bytes) -> bytes:
    # function createWallet(bytes memory _initializer, bytes32 _salt)
    return encode_function_call(
        "createWallet(bytes,bytes32)",
        ["bytes", "bytes32"],
        [initializer, salt],
    )


def encode_key_store_init_data(
    initial_key: bytes, initial_guardian_hash: bytes, guardian_safe_period: int
) -> bytes:
    # (bytes32 initialKey, bytes32 initialGuardianHash,
    #   uint64 guardianSafePeriod) = abi.decode(_data, (bytes32, bytes32, uint64))
    return encode(
        ["bytes32", "bytes32", "uint64"],
        [initial_key, initial_guardian_hash, guardian_safe_period],
    )


def encode_module_and_data(module_address: str, init_data: bytes) -> bytes:
    return padding_zero_bytes(module_address, 20) + init_data
