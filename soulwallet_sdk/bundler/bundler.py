from dataclasses import dataclass
from typing import Any

from soulwallet_sdk.chain.chain_reader import parse_chain_id
from soulwallet_sdk.exceptions import (
    RpcError, UserOpError, UserOpErrorCode, ValidationError)
from soulwallet_sdk.metrics.metrics import BUNDLER_REQUEST_TIME
from soulwallet_sdk.result import Err, Ok, Result
from soulwallet_sdk.typing import Address, UserOperationHash
from soulwallet_sdk.utils.eth_client_utils import rpc_request
from soulwallet_sdk.utils.type_guard import (
    is_address, is_user_operation_hash, verify_and_get_uint)


@dataclass
class UserOperationGasEstimate:
    pre_verification_gas: int
    verification_gas_limit: int
    call_gas_limit: int


class Bundler:
    """
    thin client for the ERC-4337 bundler json-rpc namespace
    """
    bundler_url: str

    def __init__(self, bundler_url: str):
        self.bundler_url = bundler_url

    async def _request(self, method: str, params: list) -> Result[Any, RpcError]:
        with BUNDLER_REQUEST_TIME.labels(method=method).time():
            return await rpc_request(self.bundler_url, method, params)

    async def chain_id(self) -> Result[int, RpcError]:
        ret = await self._request("eth_chainId", [])
        if isinstance(ret, Err):
            return ret
        return parse_chain_id("eth_chainId", ret.value)

    async def supported_entry_points(self) -> Result[list[Address], RpcError]:
        ret = await self._request("eth_supportedEntryPoints", [])
        if isinstance(ret, Err):
            return ret
        entry_points = ret.value
        if not isinstance(entry_points, list) or not all(
            is_address(entry_point) for entry_point in entry_points
        ):
            return Err(
                RpcError(
                    "eth_supportedEntryPoints",
                    None,
                    f"Invalid supported entrypoints {entry_points}",
                )
            )
        return Ok([Address(entry_point) for entry_point in entry_points])

    async def estimate_user_operation_gas(
        self,
        entry_point: Address,
        user_operation_json: dict[str, str],
    ) -> Result[UserOperationGasEstimate, UserOpError]:
        ret = await self._request(
            "eth_estimateUserOperationGas", [user_operation_json, entry_point])
        if isinstance(ret, Err):
            return Err(UserOpError.from_error(ret.error))

        gas = ret.value
        if not isinstance(gas, dict):
            return Err(
                UserOpError(
                    UserOpErrorCode.UnknownError,
                    f"Invalid eth_estimateUserOperationGas result {gas}",
                )
            )
        try:
            return Ok(
                UserOperationGasEstimate(
                    pre_verification_gas=verify_and_get_uint(
                        "preVerificationGas", gas.get("preVerificationGas")),
                    verification_gas_limit=verify_and_get_uint(
                        "verificationGasLimit", gas.get("verificationGasLimit")),
                    call_gas_limit=verify_and_get_uint(
                        "callGasLimit", gas.get("callGasLimit")),
                )
            )
        except ValidationError as excp:
            return Err(
                UserOpError(
                    UserOpErrorCode.UnknownError,
                    f"Invalid {excp.field} from bundler: {excp.message}",
                )
            )

    async def send_user_operation(
        self,
        entry_point: Address,
        user_operation_json: dict[str, str],
    ) -> Result[UserOperationHash, UserOpError]:
        ret = await self._request(
            "eth_sendUserOperation", [user_operation_json, entry_point])
        if isinstance(ret, Err):
            return Err(UserOpError.from_error(ret.error))
        if not is_user_operation_hash(ret.value):
            return Err(
                UserOpError(
                    UserOpErrorCode.UnknownError,
                    f"Invalid user operation hash {ret.value}",
                )
            )
        return Ok(UserOperationHash(ret.value))

    async def get_user_operation_by_hash(
        self, user_operation_hash: UserOperationHash
    ) -> Result[dict | None, RpcError]:
        return await self._request(
            "eth_getUserOperationByHash", [user_operation_hash])

    async def get_user_operation_receipt(
        self, user_operation_hash: UserOperationHash
    ) -> Result[dict | None, RpcError]:
        return await self._request(
            "eth_getUserOperationReceipt", [user_operation_hash])
