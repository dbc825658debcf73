from dataclasses import dataclass

from soulwallet_sdk.chain.chain_reader import ChainReader
from soulwallet_sdk.exceptions import RpcError, ValidationError
from soulwallet_sdk.result import Err, Ok, Result
from soulwallet_sdk.typing import Address
from soulwallet_sdk.user_operation.user_operation import GasLimit, UserOperation
from soulwallet_sdk.utils.encode import (
    encode_create_wallet_calldata, encode_execute_batch_calldata,
    encode_execute_batch_with_value_calldata, encode_execute_calldata,
    encode_initialize_calldata, encode_key_store_init_data,
    encode_module_and_data)
from soulwallet_sdk.utils.hex import padding_zero_bytes
from soulwallet_sdk.utils.type_guard import (
    verify_and_get_address, verify_and_get_bytes, verify_and_get_uint)

DAY = 86400
DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD = 2 * DAY
DEFAULT_SECURITY_CONTROL_DELAY = 2 * DAY

PRE_VERIFICATION_GAS_DEPLOY = 10_000_000


@dataclass
class Transaction:
    to: Address
    value: int | str | None = None
    data: str | bytes | None = None
    gas_limit: int | str | None = None


@dataclass
class WalletModules:
    default_callback_handler: Address
    key_store_module: Address
    security_control_module: Address
    security_control_delay: int = DEFAULT_SECURITY_CONTROL_DELAY


def salt_from_index(index: int) -> bytes:
    # 1 -> 0x0000000000000000000000000000000000000000000000000000000000000001
    index = verify_and_get_uint("index", index)
    return padding_zero_bytes(index, 32)


def build_initialize_data(
    modules: WalletModules,
    initial_key: str,
    initial_guardian_hash: str,
    initial_guardian_safe_period: int = DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD,
) -> bytes:
    """
    calldata of
        function initialize(
            bytes32 anOwner,
            address defalutCallbackHandler,
            bytes[] calldata modules,
            bytes[] calldata plugins
        )
    with the security control module (init data: its delay) followed by
    the keystore module (init data: key, guardian hash, safe period)
    and no plugins
    """
    try:
        owner_key = padding_zero_bytes(initial_key, 32)
    except ValueError:
        raise ValidationError("initialKey", f"Invalid key {initial_key}")
    try:
        guardian_hash = padding_zero_bytes(initial_guardian_hash, 32)
    except ValueError:
        raise ValidationError(
            "initialGuardianHash", f"Invalid hash {initial_guardian_hash}")
    safe_period = verify_and_get_uint(
        "initialGuardianSafePeriod", initial_guardian_safe_period, 2**64 - 1)

    security_control_module_and_data = encode_module_and_data(
        modules.security_control_module,
        padding_zero_bytes(modules.security_control_delay, 32),
    )
    key_store_module_and_data = encode_module_and_data(
        modules.key_store_module,
        encode_key_store_init_data(owner_key, guardian_hash, safe_period),
    )
    return encode_initialize_calldata(
        owner_key,
        modules.default_callback_handler.lower(),
        [security_control_module_and_data, key_store_module_and_data],
        [],
    )


def build_init_code(
    factory_address: Address, initializer: bytes, index: int
) -> bytes:
    """
    the entrypoint splits initCode into the factory address and the call:
        address factory = address(bytes20(initCode[0 : 20]));
        bytes memory initCallData = initCode[20 :];
    """
    return padding_zero_bytes(factory_address, 20) + encode_create_wallet_calldata(
        initializer, salt_from_index(index))


async def get_wallet_address(
    chain_reader: ChainReader,
    factory_address: Address,
    initializer: bytes,
    index: int,
) -> Result[Address, RpcError]:
    # function getWalletAddress(bytes memory _initializer, bytes32 _salt)
    #   external view returns (address proxy)
    ret = await chain_reader.call(
        factory_address,
        "getWalletAddress(bytes,bytes32)",
        ["bytes", "bytes32"],
        [initializer, salt_from_index(index)],
        ["address"],
    )
    if isinstance(ret, Err):
        return ret
    return Ok(Address(ret.value[0]))


def build_deploy_user_operation(
    sender: Address, init_code: bytes, call_data: bytes
) -> UserOperation:
    # counterfactual deployment, the wallet has never sent an operation
    return UserOperation(
        sender_address=sender,
        nonce=0,
        init_code=init_code,
        call_data=call_data,
        call_gas_limit=GasLimit.auto(0),
        verification_gas_limit=0,
        pre_verification_gas=PRE_VERIFICATION_GAS_DEPLOY,
        max_fee_per_gas=0,
        max_priority_fee_per_gas=0,
        paymaster_and_data=b"",
        signature=b"",
    )


def sum_transactions_gas_limit(transactions: list[Transaction]) -> GasLimit:
    """
    a transaction without gasLimit leaves the whole callGasLimit to
    the bundler estimation
    """
    call_gas_limit = 0
    for transaction in transactions:
        if transaction.gas_limit is None:
            call_gas_limit = 0
            break
        call_gas_limit += verify_and_get_uint(
            "gasLimit", transaction.gas_limit)
    return GasLimit.auto(call_gas_limit)


def encode_transactions_calldata(transactions: list[Transaction]) -> bytes:
    if len(transactions) == 0:
        raise ValidationError("transactions", "txs.length === 0")

    to_list: list[str] = []
    value_list: list[int] = []
    data_list: list[bytes] = []
    has_value = False
    for transaction in transactions:
        to = verify_and_get_address("to", transaction.to)
        to_list.append(to.lower())

        value = 0
        if transaction.value is not None:
            value = verify_and_get_uint("value", transaction.value)
        if value != 0:
            has_value = True
        value_list.append(value)

        data = b""
        if transaction.data is not None:
            data = verify_and_get_bytes("data", transaction.data)
        data_list.append(data)

    if len(transactions) == 1:
        return encode_execute_calldata(to_list[0], value_list[0], data_list[0])
    if has_value:
        return encode_execute_batch_with_value_calldata(
            to_list, value_list, data_list)
    return encode_execute_batch_calldata(to_list, data_list)


def build_execute_user_operation(
    sender: Address,
    nonce: int,
    call_data: bytes,
    call_gas_limit: GasLimit,
    max_fee_per_gas: int,
    max_priority_fee_per_gas: int,
) -> UserOperation:
    return UserOperation(
        sender_address=sender,
        nonce=nonce,
        init_code=b"",
        call_data=call_data,
        call_gas_limit=call_gas_limit,
        verification_gas_limit=0,
        pre_verification_gas=0,
        max_fee_per_gas=max_fee_per_gas,
        max_priority_fee_per_gas=max_priority_fee_per_gas,
        paymaster_and_data=b"",
        signature=b"",
    )
