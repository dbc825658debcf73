import logging
from typing import Any

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from soulwallet_sdk.exceptions import RpcError
from soulwallet_sdk.result import Err, Ok, Result
from soulwallet_sdk.typing import Address
from soulwallet_sdk.utils.encode import encode_function_call
from soulwallet_sdk.utils.eth_client_utils import rpc_request


class ChainReader:
    """
    read only view of the chain state through a node json-rpc endpoint
    """
    ethereum_node_url: str

    def __init__(self, ethereum_node_url: str):
        self.ethereum_node_url = ethereum_node_url

    async def call(
        self,
        to: Address,
        function_signature: str,
        argument_types: list[str],
        args: list[Any],
        return_types: list[str],
    ) -> Result[tuple, RpcError]:
        call_data = "0x" + encode_function_call(
            function_signature, argument_types, args).hex()
        params = [
            {
                "to": to,
                "data": call_data,
            },
            "latest",
        ]
        ret = await rpc_request(self.ethereum_node_url, "eth_call", params)
        if isinstance(ret, Err):
            return ret

        raw_result = ret.value
        try:
            decoded = decode(return_types, bytes.fromhex(raw_result[2:]))
        except (DecodingError, ValueError, TypeError) as excp:
            logging.error(
                f"{function_signature} eth_call to {to} "
                f"returned undecodable data {raw_result}")
            return Err(
                RpcError(
                    "eth_call",
                    None,
                    f"Unable to decode {function_signature} result: {str(excp)}",
                    raw_result,
                )
            )
        return Ok(decoded)

    async def get_chain_id(self) -> Result[int, RpcError]:
        ret = await rpc_request(self.ethereum_node_url, "eth_chainId", [])
        if isinstance(ret, Err):
            return ret
        return parse_chain_id("eth_chainId", ret.value)

    async def get_code(self, address: Address) -> Result[bytes, RpcError]:
        ret = await rpc_request(
            self.ethereum_node_url, "eth_getCode", [address, "latest"])
        if isinstance(ret, Err):
            return ret
        try:
            return Ok(bytes.fromhex(ret.value[2:]))
        except (ValueError, TypeError):
            return Err(
                RpcError("eth_getCode", None, f"Invalid code {ret.value}"))


def parse_chain_id(method: str, chain_id_hex: Any) -> Result[int, RpcError]:
    if isinstance(chain_id_hex, int) and not isinstance(chain_id_hex, bool):
        return Ok(chain_id_hex)
    try:
        return Ok(int(chain_id_hex, 16))
    except (ValueError, TypeError):
        return Err(RpcError(method, None, f"Invalid chain id {chain_id_hex}"))
