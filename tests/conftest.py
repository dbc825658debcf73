import pytest
from eth_utils import keccak

from soulwallet_sdk.bundler.bundler import UserOperationGasEstimate
from soulwallet_sdk.exceptions import RpcError
from soulwallet_sdk.result import Err, Ok
from soulwallet_sdk.soul_wallet import SoulWallet
from soulwallet_sdk.user_operation.user_operation import UserOperation
from soulwallet_sdk.user_operation.user_operation_hash import \
    get_user_operation_hash
from soulwallet_sdk.utils.encode import encode_function_call

CHAIN_ID = 1337
FACTORY = "0x1111111111111111111111111111111111111111"
WALLET_LOGIC = "0x2222222222222222222222222222222222222222"
ENTRY_POINT = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"
DEFAULT_CALLBACK_HANDLER = "0x3333333333333333333333333333333333333333"
KEY_STORE_MODULE = "0x4444444444444444444444444444444444444444"
SECURITY_CONTROL_MODULE = "0x5555555555555555555555555555555555555555"
DEPLOYED_WALLET = "0x6666666666666666666666666666666666666666"
GUARD_HOOK_A = "0x7777777777777777777777777777777777777777"
GUARD_HOOK_B = "0x8888888888888888888888888888888888888888"

INITIAL_KEY = "0x000000000000000000000000Aa0000000000000000000000000000000000000a"
INITIAL_GUARDIAN_HASH = "0x" + "ab" * 32


class FakeChainReader:
    """
    in memory node answering the view calls the sdk issues
    """

    def __init__(self):
        self.chain_id = CHAIN_ID
        self.wallet_logic = WALLET_LOGIC
        self.entry_point = ENTRY_POINT
        self.deposit = 0
        self.nonce = 0
        self.guard_hooks = []
        self.codes = {DEPLOYED_WALLET: b"\x60\x80"}
        self.failing_functions = set()
        self.calls = []
        self.chain_id_requests = 0

    async def call(
        self, to, function_signature, argument_types, args, return_types
    ):
        # fails loudly on arguments eth_abi would reject
        encode_function_call(function_signature, argument_types, args)
        self.calls.append((to, function_signature, args))
        if function_signature in self.failing_functions:
            return Err(RpcError("eth_call", 3, "execution reverted"))

        if function_signature == "walletImpl()":
            return Ok((self.wallet_logic,))
        if function_signature == "entryPoint()":
            return Ok((self.entry_point,))
        if function_signature == "getWalletAddress(bytes,bytes32)":
            return Ok(("0x" + keccak(args[0] + args[1])[12:].hex(),))
        if function_signature == "balanceOf(address)":
            return Ok((self.deposit,))
        if function_signature == "getNonce(address,uint192)":
            return Ok((self.nonce,))
        if function_signature == "listPlugin(uint8)":
            return Ok((list(self.guard_hooks),))
        raise AssertionError(f"unexpected call {function_signature}")

    async def get_chain_id(self):
        self.chain_id_requests += 1
        return Ok(self.chain_id)

    async def get_code(self, address):
        return Ok(self.codes.get(address.lower(), b""))

    def count(self, function_signature):
        return len([
            call for call in self.calls if call[1] == function_signature])


class FakeBundler:
    def __init__(self):
        self.chain_id_value = CHAIN_ID
        self.entry_points = [ENTRY_POINT.lower()]
        self.estimate = UserOperationGasEstimate(
            pre_verification_gas=50_000,
            verification_gas_limit=400_000,
            call_gas_limit=100_001,
        )
        self.estimate_error = None
        self.estimate_exception = None
        self.returned_hash = None
        self.estimated_operations = []
        self.sent_operations = []
        self.chain_id_requests = 0
        self.supported_entry_points_requests = 0

    async def chain_id(self):
        self.chain_id_requests += 1
        return Ok(self.chain_id_value)

    async def supported_entry_points(self):
        self.supported_entry_points_requests += 1
        return Ok(list(self.entry_points))

    async def estimate_user_operation_gas(self, entry_point, user_operation_json):
        self.estimated_operations.append(dict(user_operation_json))
        if self.estimate_exception is not None:
            raise self.estimate_exception
        if self.estimate_error is not None:
            return Err(self.estimate_error)
        return Ok(self.estimate)

    async def send_user_operation(self, entry_point, user_operation_json):
        self.sent_operations.append(dict(user_operation_json))
        if self.returned_hash is not None:
            return Ok(self.returned_hash)
        user_operation = UserOperation.from_json(user_operation_json)
        return Ok(
            get_user_operation_hash(user_operation, entry_point, self.chain_id_value))


@pytest.fixture
def chain_reader():
    return FakeChainReader()


@pytest.fixture
def bundler():
    return FakeBundler()


@pytest.fixture
def soul_wallet(chain_reader, bundler):
    return SoulWallet(
        chain_reader,
        bundler,
        FACTORY,
        DEFAULT_CALLBACK_HANDLER,
        KEY_STORE_MODULE,
        SECURITY_CONTROL_MODULE,
    )


@pytest.fixture
def user_operation():
    return UserOperation(
        sender_address=DEPLOYED_WALLET,
        nonce=1,
        call_data=bytes.fromhex("b61d27f6"),
        max_fee_per_gas=3,
        max_priority_fee_per_gas=1,
    )
