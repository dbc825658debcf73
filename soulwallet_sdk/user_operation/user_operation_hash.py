from eth_abi import encode
from eth_utils import keccak

from soulwallet_sdk.typing import Address, UserOperationHash
from soulwallet_sdk.user_operation.user_operation import UserOperation


def get_user_operation_hash(
    user_operation: UserOperation, entrypoint_addr: Address, chain_id: int
) -> UserOperationHash:
    packed_user_operation = keccak(
        pack_user_operation(user_operation.to_list())
    )

    encoded_user_operation_hash = encode(
        ["(bytes32,address,uint256)"],
        [[packed_user_operation, entrypoint_addr.lower(), chain_id]],
    )
    return UserOperationHash(
        "0x" + keccak(encoded_user_operation_hash).hex())


def pack_user_operation(user_operation_list: list) -> bytes:
    # dynamic fields are hashed and the signature is left out
    user_operation_list = list(user_operation_list)
    user_operation_list[0] = user_operation_list[0].lower()
    user_operation_list[2] = keccak(user_operation_list[2])
    user_operation_list[3] = keccak(user_operation_list[3])
    user_operation_list[9] = keccak(user_operation_list[9])
    user_operation_list_without_signature = user_operation_list[:-1]

    return encode(
        [
            "address",
            "uint256",
            "bytes32",
            "bytes32",
            "uint256",
            "uint256",
            "uint256",
            "uint256",
            "uint256",
            "bytes32",
        ],
        user_operation_list_without_signature,
    )
