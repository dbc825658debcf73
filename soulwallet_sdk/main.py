import asyncio
import logging
import sys

import uvloop

from soulwallet_sdk.gas.gas_overhead import GasOverhead
from soulwallet_sdk.metrics.metrics import run_metrics_server
from soulwallet_sdk.result import Err
from soulwallet_sdk.soul_wallet import SoulWallet

from .cli_manager import InitData, parse_args


def build_soul_wallet(init_data: InitData) -> SoulWallet:
    return SoulWallet(
        init_data.provider_url,
        init_data.bundler_url,
        init_data.soul_wallet_factory_address,
        init_data.default_callback_handler_address,
        init_data.key_store_module_address,
        init_data.security_control_module_address,
        security_control_delay=init_data.security_control_delay,
        gas_overhead=GasOverhead(
            default_overhead=init_data.pre_verification_gas_overhead),
    )


async def main(cmd_args=sys.argv[1:]) -> int:
    init_data = parse_args(cmd_args)

    if init_data.is_metrics:
        run_metrics_server(
            host=init_data.metrics_host,
            port=init_data.metrics_port,
        )

    soul_wallet = build_soul_wallet(init_data)

    config_ret = await soul_wallet.get_on_chain_config()
    if isinstance(config_ret, Err):
        logging.error(f"{config_ret.error!r}")
        return 1
    config = config_ret.value
    print(f"chainId     : {config.chain_id}")
    print(f"entryPoint  : {config.entry_point}")
    print(f"walletLogic : {config.wallet_logic}")

    if init_data.initial_key is not None:
        wallet_address_ret = await soul_wallet.calc_wallet_address(
            init_data.index,
            init_data.initial_key,
            init_data.initial_guardian_hash,
            init_data.initial_guardian_safe_period,
        )
        if isinstance(wallet_address_ret, Err):
            logging.error(f"{wallet_address_ret.error!r}")
            return 1
        print(f"wallet      : {wallet_address_ret.value}")
    return 0


def run():
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
