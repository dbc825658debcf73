import logging
import os
import re
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from dataclasses import dataclass
from importlib.metadata import version

from .typing import Address
from .user_operation.builder import (
    DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD, DEFAULT_SECURITY_CONTROL_DELAY)
from .gas.gas_overhead import DEFAULT_PRE_VERIFICATION_GAS_OVERHEAD
from .utils.type_guard import is_http_or_https

__version__ = version("soulwallet-sdk")


@dataclass()
class InitData:
    provider_url: str
    bundler_url: str
    soul_wallet_factory_address: Address
    default_callback_handler_address: Address
    key_store_module_address: Address
    security_control_module_address: Address
    security_control_delay: int
    pre_verification_gas_overhead: int
    is_verbose: bool
    is_metrics: bool
    metrics_host: str
    metrics_port: int
    index: int
    initial_key: str | None
    initial_guardian_hash: str | None
    initial_guardian_safe_period: int


def address(ep: str):
    address_pattern = "^0x[0-9,a-f,A-F]{40}$"
    if not isinstance(ep, str) or re.match(address_pattern, ep) is None:
        raise ArgumentTypeError(f"Wrong address format : {ep}")
    return ep


def bytes32(value: str):
    bytes32_pattern = "^0x[0-9,a-f,A-F]{1,64}$"
    if not isinstance(value, str) or re.match(bytes32_pattern, value) is None:
        raise ArgumentTypeError(f"Wrong bytes32 format : {value}")
    return value


def url(ep: str):
    if not is_http_or_https(ep):
        raise ArgumentTypeError(f"Wrong url format : {ep}")
    return ep


def unsigned_int(value):
    ivalue = int(value)
    if ivalue < 0:
        raise ArgumentTypeError(
                "%s is an invalid unsigned int value" % value)
    return ivalue


def _get_env_or_default(env_var, default, value_type):
    """
    Helper function to get the value from an environment variable or return the default value.
    """
    value = os.getenv(env_var, None)
    if value is not None:
        return value_type(value)
    return default


def initialize_argument_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="SoulWallet",
        description="SoulWallet ERC-4337 UserOperation SDK",
    )

    parser.add_argument(
        "--provider_url",
        type=url,
        help="Eth Client JSON-RPC Url - defaults to http://127.0.0.1:8545",
        nargs="?",
        const="http://127.0.0.1:8545",
        default=_get_env_or_default(
            "SOULWALLET_PROVIDER_URL", "http://127.0.0.1:8545", str),
    )

    parser.add_argument(
        "--bundler_url",
        type=url,
        help="Bundler JSON-RPC Url - defaults to http://127.0.0.1:3000/rpc",
        nargs="?",
        const="http://127.0.0.1:3000/rpc",
        default=_get_env_or_default(
            "SOULWALLET_BUNDLER_URL", "http://127.0.0.1:3000/rpc", str),
    )

    parser.add_argument(
        "--soul_wallet_factory",
        type=address,
        help="SoulWalletFactory contract address",
        default=_get_env_or_default(
            "SOULWALLET_FACTORY_ADDRESS", None, str),
    )

    parser.add_argument(
        "--default_callback_handler",
        type=address,
        help="default callback handler contract address",
        default=_get_env_or_default(
            "SOULWALLET_DEFAULT_CALLBACK_HANDLER_ADDRESS", None, str),
    )

    parser.add_argument(
        "--key_store_module",
        type=address,
        help="keystore module contract address",
        default=_get_env_or_default(
            "SOULWALLET_KEY_STORE_MODULE_ADDRESS", None, str),
    )

    parser.add_argument(
        "--security_control_module",
        type=address,
        help="security control module contract address",
        default=_get_env_or_default(
            "SOULWALLET_SECURITY_CONTROL_MODULE_ADDRESS", None, str),
    )

    parser.add_argument(
        "--security_control_delay",
        type=unsigned_int,
        help="security control module delay in seconds - defaults to 2 days",
        nargs="?",
        const=DEFAULT_SECURITY_CONTROL_DELAY,
        default=_get_env_or_default(
            "SOULWALLET_SECURITY_CONTROL_DELAY",
            DEFAULT_SECURITY_CONTROL_DELAY,
            unsigned_int,
        ),
    )

    parser.add_argument(
        "--pre_verification_gas_overhead",
        type=unsigned_int,
        help=(
            "gas added to the bundler estimated preVerificationGas - "
            f"defaults to {DEFAULT_PRE_VERIFICATION_GAS_OVERHEAD}"
        ),
        nargs="?",
        const=DEFAULT_PRE_VERIFICATION_GAS_OVERHEAD,
        default=_get_env_or_default(
            "SOULWALLET_PRE_VERIFICATION_GAS_OVERHEAD",
            DEFAULT_PRE_VERIFICATION_GAS_OVERHEAD,
            unsigned_int,
        ),
    )

    parser.add_argument(
        "--index",
        type=unsigned_int,
        help="wallet index used as the deployment salt - defaults to 0",
        nargs="?",
        const=0,
        default=0,
    )

    parser.add_argument(
        "--initial_key",
        type=bytes32,
        help="initial owner key, prints the wallet address when set",
        default=None,
    )

    parser.add_argument(
        "--initial_guardian_hash",
        type=bytes32,
        help="initial guardian hash",
        default="0x" + "00" * 32,
    )

    parser.add_argument(
        "--initial_guardian_safe_period",
        type=unsigned_int,
        help="initial guardian safe period in seconds - defaults to 2 days",
        nargs="?",
        const=DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD,
        default=DEFAULT_INITIAL_GUARDIAN_SAFE_PERIOD,
    )

    parser.add_argument(
        "--verbose",
        help="show debug log",
        nargs="?",
        const=True,
        default=_get_env_or_default(
            "SOULWALLET_VERBOSE", False, lambda v: v.lower() == "true"),
    )

    parser.add_argument(
        "--metrics",
        type=bool,
        help="enable metrics collection",
        nargs="?",
        const=True,
        default=_get_env_or_default(
            "SOULWALLET_METRICS", False, lambda v: v.lower() == "true"),
    )

    parser.add_argument(
        "--metrics_host",
        type=str,
        help="metrics server host - defaults to localhost",
        nargs="?",
        const="localhost",
        default=_get_env_or_default(
            "SOULWALLET_METRICS_HOST", "localhost", str),
    )

    parser.add_argument(
        "--metrics_port",
        type=unsigned_int,
        help="metrics server port - defaults to 8000",
        nargs="?",
        const=8000,
        default=_get_env_or_default(
            "SOULWALLET_METRICS_PORT", 8000, unsigned_int),
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s " + "version " + __version__,
    )

    return parser


def parse_args(cmd_args: list[str]) -> InitData:
    argument_parser: ArgumentParser = initialize_argument_parser()
    args = argument_parser.parse_args(cmd_args)
    for name in (
        "soul_wallet_factory",
        "default_callback_handler",
        "key_store_module",
        "security_control_module",
    ):
        if getattr(args, name) is None:
            argument_parser.error(
                f"You must specify --{name} or set the "
                "matching SOULWALLET_ environment variable.")
    return get_init_data(args)


def init_logging(args: Namespace):
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s.%(msecs)03d %(levelname)s %(message)s",
        datefmt="%b %d %H:%M:%S",
    )

    logging.getLogger("SoulWallet")


def get_init_data(args: Namespace) -> InitData:
    init_logging(args)

    ret = InitData(
        args.provider_url,
        args.bundler_url,
        Address(args.soul_wallet_factory),
        Address(args.default_callback_handler),
        Address(args.key_store_module),
        Address(args.security_control_module),
        args.security_control_delay,
        args.pre_verification_gas_overhead,
        bool(args.verbose),
        bool(args.metrics),
        args.metrics_host,
        args.metrics_port,
        args.index,
        args.initial_key,
        args.initial_guardian_hash,
        args.initial_guardian_safe_period,
    )

    logging.info(f"Starting SoulWallet sdk version {__version__}")

    return ret
