import pytest
from eth_abi import decode

from soulwallet_sdk.exceptions import ValidationError
from soulwallet_sdk.user_operation.builder import (
    PRE_VERIFICATION_GAS_DEPLOY, Transaction, WalletModules,
    build_deploy_user_operation, build_init_code, build_initialize_data,
    encode_transactions_calldata, salt_from_index, sum_transactions_gas_limit)
from soulwallet_sdk.utils.encode import function_selector

from conftest import (
    DEFAULT_CALLBACK_HANDLER, DEPLOYED_WALLET, FACTORY, INITIAL_GUARDIAN_HASH,
    INITIAL_KEY, KEY_STORE_MODULE, SECURITY_CONTROL_MODULE)

TO_A = "0x000000000000000000000000000000000000000a"
TO_B = "0x000000000000000000000000000000000000000b"

MODULES = WalletModules(
    default_callback_handler=DEFAULT_CALLBACK_HANDLER,
    key_store_module=KEY_STORE_MODULE,
    security_control_module=SECURITY_CONTROL_MODULE,
)


def test_sum_transactions_gas_limit():
    gas_limit = sum_transactions_gas_limit([
        Transaction(to=TO_A, gas_limit=3),
        Transaction(to=TO_B, gas_limit="0x4"),
    ])
    assert gas_limit.is_auto
    assert gas_limit.value == 7
    assert gas_limit.to_wire() == 8


def test_sum_transactions_gas_limit_missing_limit():
    gas_limit = sum_transactions_gas_limit([
        Transaction(to=TO_A, gas_limit=3),
        Transaction(to=TO_B),
    ])
    assert gas_limit.value == 0
    assert gas_limit.is_auto


def test_single_transaction_uses_execute():
    call_data = encode_transactions_calldata(
        [Transaction(to=TO_A, value=5, data="0x1234")])
    assert call_data[:4] == function_selector("execute(address,uint256,bytes)")
    to, value, data = decode(["address", "uint256", "bytes"], call_data[4:])
    assert to.lower() == TO_A
    assert value == 5
    assert data == b"\x12\x34"


def test_batch_without_value():
    call_data = encode_transactions_calldata([
        Transaction(to=TO_A, data="0x01"),
        Transaction(to=TO_B, value=0),
    ])
    assert call_data[:4] == function_selector("executeBatch(address[],bytes[])")
    to_list, data_list = decode(["address[]", "bytes[]"], call_data[4:])
    assert [to.lower() for to in to_list] == [TO_A, TO_B]
    assert list(data_list) == [b"\x01", b""]


def test_batch_with_value():
    call_data = encode_transactions_calldata([
        Transaction(to=TO_A),
        Transaction(to=TO_B, value="0x10"),
    ])
    assert call_data[:4] == function_selector(
        "executeBatch(address[],uint256[],bytes[])")
    _, value_list, _ = decode(
        ["address[]", "uint256[]", "bytes[]"], call_data[4:])
    assert list(value_list) == [0, 16]


def test_encode_transactions_rejects_empty():
    with pytest.raises(ValidationError):
        encode_transactions_calldata([])


@pytest.mark.parametrize(
    "transaction,field_name",
    [
        (Transaction(to="0x1234"), "to"),
        (Transaction(to=TO_A, data="0x123"), "data"),
        (Transaction(to=TO_A, value=-1), "value"),
    ],
)
def test_encode_transactions_rejects_invalid(transaction, field_name):
    with pytest.raises(ValidationError) as excinfo:
        encode_transactions_calldata([transaction])
    assert excinfo.value.field == field_name


def test_initialize_data_layout():
    initialize_data = build_initialize_data(
        MODULES, INITIAL_KEY, INITIAL_GUARDIAN_HASH, 3600)
    assert initialize_data[:4] == function_selector(
        "initialize(bytes32,address,bytes[],bytes[])")
    owner, callback_handler, modules, plugins = decode(
        ["bytes32", "address", "bytes[]", "bytes[]"], initialize_data[4:])

    assert owner.hex() == INITIAL_KEY[2:].lower()
    assert callback_handler.lower() == DEFAULT_CALLBACK_HANDLER
    assert plugins == ()
    assert len(modules) == 2
    assert "0x" + modules[0][:20].hex() == SECURITY_CONTROL_MODULE
    assert "0x" + modules[1][:20].hex() == KEY_STORE_MODULE
    assert decode(["uint256"], modules[0][20:]) == (MODULES.security_control_delay,)
    key, guardian_hash, safe_period = decode(
        ["bytes32", "bytes32", "uint64"], modules[1][20:])
    assert key == owner
    assert guardian_hash.hex() == INITIAL_GUARDIAN_HASH[2:]
    assert safe_period == 3600


def test_initialize_data_rejects_invalid_key():
    with pytest.raises(ValidationError) as excinfo:
        build_initialize_data(MODULES, "not a key", INITIAL_GUARDIAN_HASH)
    assert excinfo.value.field == "initialKey"


def test_init_code_starts_with_factory():
    init_code = build_init_code(FACTORY, b"\x01\x02", 1)
    assert "0x" + init_code[:20].hex() == FACTORY
    assert init_code[20:24] == function_selector("createWallet(bytes,bytes32)")
    initializer, salt = decode(["bytes", "bytes32"], init_code[24:])
    assert initializer == b"\x01\x02"
    assert salt == salt_from_index(1)
    assert salt[-1] == 1


def test_deploy_user_operation():
    user_operation = build_deploy_user_operation(
        DEPLOYED_WALLET, b"\x01", b"")
    assert user_operation.nonce == 0
    assert user_operation.pre_verification_gas == PRE_VERIFICATION_GAS_DEPLOY
    assert user_operation.call_gas_limit.is_auto
    assert user_operation.signature == b""
