import json
import logging
from typing import Any

from aiohttp import ClientError, ClientSession

from soulwallet_sdk.exceptions import RpcError
from soulwallet_sdk.result import Err, Ok, Result


async def send_rpc_request_to_eth_client(
    node_url: str,
    method: str,
    params=None,
) -> Any:
    json_request = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": method,
        "params": params if params is not None else [],
    }
    headers = {
        "content-type": "application/json",
        "connection": "keep-alive"
    }
    async with ClientSession() as session:
        async with session.post(
            node_url,
            json=json_request,
            headers=headers
        ) as response:
            resp = await response.read()
            try:
                return json.loads(resp)
            except json.decoder.JSONDecodeError:
                logging.error(
                    f"Invalid json response from {node_url} for {method}")
                raise ValueError(
                    f"Invalid json response from {node_url} for {method}")


async def rpc_request(
    node_url: str,
    method: str,
    params=None,
) -> Result[Any, RpcError]:
    """
    send a single json-rpc request and unwrap its "result",
    transport and json-rpc errors are returned as RpcError without retrying
    """
    try:
        json_result = await send_rpc_request_to_eth_client(
            node_url, method, params)
    except (ClientError, ValueError, OSError) as excp:
        logging.error(f"{method} request to {node_url} failed: {str(excp)}")
        return Err(RpcError(method, None, str(excp)))

    if not isinstance(json_result, dict):
        return Err(RpcError(method, None, f"Invalid response {json_result}"))

    if "error" in json_result:
        error = json_result["error"]
        if not isinstance(error, dict):
            error = {"message": str(error)}
        logging.error(
            f"{method} request to {node_url} failed"
            f" with error code: {error.get('code')}"
            f" and error message: {error.get('message')}"
        )
        return Err(
            RpcError(
                method,
                error.get("code"),
                error.get("message", ""),
                error.get("data"),
            )
        )

    if "result" not in json_result:
        return Err(RpcError(method, None, f"Missing result in {json_result}"))

    return Ok(json_result["result"])
