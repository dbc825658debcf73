import logging

from soulwallet_sdk.bundler.bundler import Bundler
from soulwallet_sdk.chain.chain_reader import ChainReader
from soulwallet_sdk.config.on_chain_config import (
    OnChainConfig, OnChainConfigCache, OnChainConfigResolver, check_chain_id)
from soulwallet_sdk.exceptions import (
    ConfigResolutionError, ConsistencyFault, RpcError, UserOpError,
    UserOpErrorCode, ValidationError)
from soulwallet_sdk.gas.gas_overhead import GasOverhead
from soulwallet_sdk.gas.prefund import (
    PrefundInfo, calc_prefund_info, calc_required_prefund)
from soulwallet_sdk.metrics.metrics import USER_OPERATION_HASH_MISMATCH
from soulwallet_sdk.result import Err, Ok, Result
from soulwallet_sdk.signature.signature import (
    GUARD_HOOK_TYPE, GuardHookInputData, HookInputData, PackedUserOpHash,
    pack_signature, pack_user_op_hash)
from soulwallet_sdk.typing import Address, UserOperationHash
from soulwallet_sdk.user_operation.builder import (
    DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD, DEFAULT_SECURITY_CONTROL_DELAY,
    Transaction, WalletModules, build_deploy_user_operation,
    build_execute_user_operation, build_init_code, build_initialize_data,
    encode_transactions_calldata, get_wallet_address,
    sum_transactions_gas_limit)
from soulwallet_sdk.user_operation.user_operation import GasLimit, UserOperation
from soulwallet_sdk.user_operation.user_operation_hash import \
    get_user_operation_hash
from soulwallet_sdk.utils.type_guard import (
    MAX_UINT192, is_address, is_http_or_https, verify_and_get_address,
    verify_and_get_bytes, verify_and_get_uint)

# a maximal ecdsa signature and a validity window from 2020-09-13 until
# 2^36 - 1, so gas simulation pays for full signature verification
SEMI_VALID_SIGNATURE = "0x" + "ff" * 65
SEMI_VALID_VALIDATION_DATA = (68719476735 << 160) + (1599999999 << (160 + 48))


class SoulWallet:
    provider: ChainReader
    bundler: Bundler
    soul_wallet_factory_address: Address
    modules: WalletModules
    gas_overhead: GasOverhead
    on_chain_config_cache: OnChainConfigCache
    on_chain_config_resolver: OnChainConfigResolver

    def __init__(
        self,
        provider: str | ChainReader,
        bundler: str | Bundler,
        soul_wallet_factory_address: Address,
        default_callback_handler_address: Address,
        key_store_module_address: Address,
        security_control_module_address: Address,
        security_control_delay: int = DEFAULT_SECURITY_CONTROL_DELAY,
        gas_overhead: GasOverhead | None = None,
        on_chain_config_cache: OnChainConfigCache | None = None,
    ):
        if isinstance(provider, str):
            if not is_http_or_https(provider):
                raise ValueError("invalid provider")
            provider = ChainReader(provider)
        if isinstance(bundler, str):
            if not is_http_or_https(bundler):
                raise ValueError("invalid bundler")
            bundler = Bundler(bundler)
        for name, value in (
            ("soulWalletFactoryAddress", soul_wallet_factory_address),
            ("defalutCallbackHandlerAddress", default_callback_handler_address),
            ("keyStoreModuleAddress", key_store_module_address),
            ("securityControlModuleAddress", security_control_module_address),
        ):
            if not is_address(value):
                raise ValueError(f"invalid {name}")
        try:
            verify_and_get_uint("securityControlDelay", security_control_delay)
        except ValidationError:
            raise ValueError("invalid securityControlDelay")

        self.provider = provider
        self.bundler = bundler
        self.soul_wallet_factory_address = soul_wallet_factory_address
        self.modules = WalletModules(
            default_callback_handler=default_callback_handler_address,
            key_store_module=key_store_module_address,
            security_control_module=security_control_module_address,
            security_control_delay=security_control_delay,
        )
        self.gas_overhead = (
            gas_overhead if gas_overhead is not None else GasOverhead())
        self.on_chain_config_cache = (
            on_chain_config_cache
            if on_chain_config_cache is not None else OnChainConfigCache()
        )
        self.on_chain_config_resolver = OnChainConfigResolver(
            self.provider, self.bundler, self.on_chain_config_cache)
        self._on_chain_config: OnChainConfig | None = None
        self._deployed_wallets: set[tuple[str, int]] = set()

    async def get_on_chain_config(
        self,
    ) -> Result[OnChainConfig, ConfigResolutionError | RpcError]:
        if self._on_chain_config is not None:
            return Ok(self._on_chain_config)

        chain_id_ret = await self.provider.get_chain_id()
        if isinstance(chain_id_ret, Err):
            return chain_id_ret
        chain_id_check = check_chain_id(chain_id_ret.value, "provider")
        if isinstance(chain_id_check, Err):
            return chain_id_check

        config_ret = await self.on_chain_config_resolver.resolve(
            self.soul_wallet_factory_address, chain_id_check.value)
        if isinstance(config_ret, Err):
            logging.error(
                f"Failed to resolve onchain config: {config_ret.error!r}")
            return config_ret
        self._on_chain_config = config_ret.value
        return config_ret

    async def entry_point(
        self,
    ) -> Result[Address, ConfigResolutionError | RpcError]:
        config_ret = await self.get_on_chain_config()
        if isinstance(config_ret, Err):
            return config_ret
        return Ok(config_ret.value.entry_point)

    async def initialize_data(
        self,
        initial_key: str,
        initial_guardian_hash: str,
        initial_guardian_safe_period: int = DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD,
    ) -> Result[bytes, ValidationError | ConfigResolutionError | RpcError]:
        config_ret = await self.get_on_chain_config()
        if isinstance(config_ret, Err):
            return config_ret
        try:
            return Ok(
                build_initialize_data(
                    self.modules,
                    initial_key,
                    initial_guardian_hash,
                    initial_guardian_safe_period,
                )
            )
        except ValidationError as excp:
            return Err(excp)

    async def calc_wallet_address(
        self,
        index: int,
        initial_key: str,
        initial_guardian_hash: str,
        initial_guardian_safe_period: int | None = None,
    ) -> Result[Address, ValidationError | ConfigResolutionError | RpcError]:
        if initial_guardian_safe_period is None:
            initial_guardian_safe_period = DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD
        initialize_data_ret = await self.initialize_data(
            initial_key, initial_guardian_hash, initial_guardian_safe_period)
        if isinstance(initialize_data_ret, Err):
            return initialize_data_ret
        try:
            return await get_wallet_address(
                self.provider,
                self.soul_wallet_factory_address,
                initialize_data_ret.value,
                index,
            )
        except ValidationError as excp:
            return Err(excp)

    async def pre_fund(
        self, user_operation: UserOperation
    ) -> Result[PrefundInfo, ValidationError | ConfigResolutionError | RpcError]:
        try:
            sender = verify_and_get_address(
                "sender", user_operation.sender_address)
            calc_required_prefund(user_operation)
        except ValidationError as excp:
            return Err(excp)

        entry_point_ret = await self.entry_point()
        if isinstance(entry_point_ret, Err):
            return entry_point_ret

        # balanceOf(address account) returns (uint256)
        deposit_ret = await self.provider.call(
            entry_point_ret.value,
            "balanceOf(address)",
            ["address"],
            [sender.lower()],
            ["uint256"],
        )
        if isinstance(deposit_ret, Err):
            return deposit_ret
        return Ok(calc_prefund_info(user_operation, deposit_ret.value[0]))

    async def create_unsigned_deploy_wallet_user_op(
        self,
        index: int,
        initial_key: str,
        initial_guardian_hash: str,
        call_data: str = "0x",
        initial_guardian_safe_period: int | None = None,
    ) -> Result[UserOperation, ValidationError | ConfigResolutionError | RpcError]:
        if initial_guardian_safe_period is None:
            initial_guardian_safe_period = DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD
        try:
            call_data_bytes = verify_and_get_bytes("callData", call_data)
        except ValidationError as excp:
            return Err(excp)

        initialize_data_ret = await self.initialize_data(
            initial_key, initial_guardian_hash, initial_guardian_safe_period)
        if isinstance(initialize_data_ret, Err):
            return initialize_data_ret
        try:
            init_code = build_init_code(
                self.soul_wallet_factory_address,
                initialize_data_ret.value,
                index,
            )
        except ValidationError as excp:
            return Err(excp)

        sender_ret = await self.calc_wallet_address(
            index,
            initial_key,
            initial_guardian_hash,
            initial_guardian_safe_period,
        )
        if isinstance(sender_ret, Err):
            return sender_ret

        return Ok(
            build_deploy_user_operation(
                sender_ret.value, init_code, call_data_bytes)
        )

    async def user_op_hash(
        self, user_operation: UserOperation
    ) -> Result[UserOperationHash, ConfigResolutionError | RpcError]:
        config_ret = await self.get_on_chain_config()
        if isinstance(config_ret, Err):
            return config_ret
        return Ok(
            get_user_operation_hash(
                user_operation,
                config_ret.value.entry_point,
                config_ret.value.chain_id,
            )
        )

    async def pack_user_op_hash(
        self,
        user_operation: UserOperation,
        valid_after: int | None = None,
        valid_until: int | None = None,
    ) -> Result[PackedUserOpHash, ValidationError | ConfigResolutionError | RpcError]:
        user_op_hash_ret = await self.user_op_hash(user_operation)
        if isinstance(user_op_hash_ret, Err):
            return user_op_hash_ret
        try:
            return Ok(
                pack_user_op_hash(
                    user_op_hash_ret.value, valid_after, valid_until)
            )
        except ValidationError as excp:
            return Err(excp)

    async def _guard_hook_list(
        self, wallet_address: Address
    ) -> Result[list[Address], RpcError]:
        code_ret = await self.provider.get_code(wallet_address)
        if isinstance(code_ret, Err):
            return code_ret
        if len(code_ret.value) == 0:
            # not deployed yet, so no plugin has been registered
            return Ok([])

        # function listPlugin(uint8 hookType)
        #   external view returns (address[] memory plugins)
        ret = await self.provider.call(
            wallet_address,
            "listPlugin(uint8)",
            ["uint8"],
            [GUARD_HOOK_TYPE],
            ["address[]"],
        )
        if isinstance(ret, Err):
            return ret
        return Ok([Address(guard_hook) for guard_hook in ret.value[0]])

    async def pack_user_op_signature(
        self,
        signature: str,
        validation_data: str | int,
        guard_hook_input_data: GuardHookInputData | None = None,
    ) -> Result[bytes, ValidationError | RpcError]:
        hook_input_data = None
        if guard_hook_input_data is not None:
            if not is_address(guard_hook_input_data.sender):
                return Err(
                    ValidationError(
                        "sender",
                        f"invalid sender: {guard_hook_input_data.sender}",
                    )
                )
            guard_hooks_ret = await self._guard_hook_list(
                guard_hook_input_data.sender)
            if isinstance(guard_hooks_ret, Err):
                return guard_hooks_ret
            hook_input_data = HookInputData(
                guard_hooks=guard_hooks_ret.value,
                input_data=guard_hook_input_data.input_data,
            )
        try:
            return Ok(pack_signature(signature, validation_data, hook_input_data))
        except ValidationError as excp:
            return Err(excp)

    async def estimate_user_operation_gas(
        self,
        user_operation: UserOperation,
        semi_valid_guard_hook_input_data: GuardHookInputData | None = None,
    ) -> Result[bool, UserOpError]:
        if semi_valid_guard_hook_input_data is not None:
            if (
                semi_valid_guard_hook_input_data.sender.lower() !=
                user_operation.sender_address.lower()
            ):
                return Err(
                    UserOpError(
                        UserOpErrorCode.UnknownError,
                        "invalid sender: "
                        f"{semi_valid_guard_hook_input_data.sender}",
                    )
                )
            if len(user_operation.init_code) == 0:
                return Err(
                    UserOpError(
                        UserOpErrorCode.UnknownError,
                        "cannot set semiValidGuardHookInputData "
                        "when the contract wallet is not deployed",
                    )
                )

        semi_valid_signature = len(user_operation.signature) == 0
        config_ret = await self.get_on_chain_config()
        if isinstance(config_ret, Err):
            return Err(UserOpError.from_error(config_ret.error))
        config = config_ret.value

        try:
            if semi_valid_signature:
                signature_ret = await self.pack_user_op_signature(
                    SEMI_VALID_SIGNATURE,
                    SEMI_VALID_VALIDATION_DATA,
                    semi_valid_guard_hook_input_data,
                )
                if isinstance(signature_ret, Err):
                    return Err(UserOpError.from_error(signature_ret.error))
                user_operation.signature = signature_ret.value

            gas_ret = await self.bundler.estimate_user_operation_gas(
                config.entry_point,
                user_operation.get_user_operation_json(),
            )
            if isinstance(gas_ret, Err):
                return gas_ret
            gas = gas_ret.value

            user_operation.pre_verification_gas = gas.pre_verification_gas
            user_operation.verification_gas_limit = gas.verification_gas_limit
            if user_operation.call_gas_limit.is_auto:
                call_gas_limit = gas.call_gas_limit
                if call_gas_limit % 2 == 1:
                    call_gas_limit += 1
                user_operation.call_gas_limit = GasLimit.auto(call_gas_limit)

            self.gas_overhead.calc_gas_overhead(user_operation, config.chain_id)
            return Ok(True)
        finally:
            if semi_valid_signature:
                user_operation.signature = b""

    async def send_user_operation(
        self, user_operation: UserOperation
    ) -> Result[bool, UserOpError]:
        config_ret = await self.get_on_chain_config()
        if isinstance(config_ret, Err):
            return Err(UserOpError.from_error(config_ret.error))
        config = config_ret.value

        send_ret = await self.bundler.send_user_operation(
            config.entry_point, user_operation.get_user_operation_json())
        if isinstance(send_ret, Err):
            return send_ret

        local_user_op_hash = get_user_operation_hash(
            user_operation, config.entry_point, config.chain_id)
        if send_ret.value.lower() != local_user_op_hash.lower():
            USER_OPERATION_HASH_MISMATCH.inc()
            logging.critical(
                f"Bundler returned userOpHash {send_ret.value} but the "
                f"local userOpHash is {local_user_op_hash}"
            )
            raise ConsistencyFault(
                "userOpHash !== userOPHashLocal",
                local_user_op_hash,
                send_ret.value,
            )
        logging.info(
            f"UserOperation {local_user_op_hash} of "
            f"{user_operation.sender_address} sent"
        )
        return Ok(True)

    async def get_nonce(
        self, wallet_address: Address, key: int | str | None = None
    ) -> Result[int, ValidationError | ConfigResolutionError | RpcError]:
        nonce_key = 0
        try:
            wallet_address = verify_and_get_address(
                "walletAddr", wallet_address)
            if key is not None:
                nonce_key = verify_and_get_uint("key", key, MAX_UINT192)
        except ValidationError as excp:
            return Err(excp)

        entry_point_ret = await self.entry_point()
        if isinstance(entry_point_ret, Err):
            return entry_point_ret

        # function getNonce(address sender, uint192 key)
        #   external view returns (uint256 nonce)
        nonce_ret = await self.provider.call(
            entry_point_ret.value,
            "getNonce(address,uint192)",
            ["address", "uint192"],
            [wallet_address.lower(), nonce_key],
            ["uint256"],
        )
        if isinstance(nonce_ret, Err):
            return nonce_ret
        return Ok(nonce_ret.value[0])

    async def _wallet_deployed(
        self, wallet_address: Address
    ) -> Result[bool, ConfigResolutionError | RpcError]:
        config_ret = await self.get_on_chain_config()
        if isinstance(config_ret, Err):
            return config_ret
        key = (wallet_address.lower(), config_ret.value.chain_id)
        if key in self._deployed_wallets:
            return Ok(True)

        code_ret = await self.provider.get_code(wallet_address)
        if isinstance(code_ret, Err):
            return code_ret
        deployed = len(code_ret.value) > 0
        if deployed:
            self._deployed_wallets.add(key)
        return Ok(deployed)

    async def from_transaction(
        self,
        max_fee_per_gas: int | str,
        max_priority_fee_per_gas: int | str,
        sender: Address,
        transactions: list[Transaction],
        nonce_key: int | str | None = None,
    ) -> Result[UserOperation, ValidationError | ConfigResolutionError | RpcError]:
        if len(transactions) == 0:
            return Err(ValidationError("transactions", "txs.length === 0"))
        if not is_address(sender):
            return Err(ValidationError("from", f"invalid from: {sender}"))

        try:
            call_data = encode_transactions_calldata(transactions)
            call_gas_limit = sum_transactions_gas_limit(transactions)
            max_fee_per_gas_int = verify_and_get_uint(
                "maxFeePerGas", max_fee_per_gas)
            max_priority_fee_per_gas_int = verify_and_get_uint(
                "maxPriorityFeePerGas", max_priority_fee_per_gas)
        except ValidationError as excp:
            return Err(excp)

        wallet_deployed_ret = await self._wallet_deployed(sender)
        if isinstance(wallet_deployed_ret, Err):
            return wallet_deployed_ret
        if not wallet_deployed_ret.value:
            logging.warning(
                f"Wallet {sender} is not deployed, the operation "
                "will fail validation without initCode"
            )

        nonce_ret = await self.get_nonce(sender, nonce_key)
        if isinstance(nonce_ret, Err):
            return nonce_ret

        return Ok(
            build_execute_user_operation(
                sender,
                nonce_ret.value,
                call_data,
                call_gas_limit,
                max_fee_per_gas_int,
                max_priority_fee_per_gas_int,
            )
        )
