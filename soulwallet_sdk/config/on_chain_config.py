import logging
from dataclasses import dataclass

from soulwallet_sdk.bundler.bundler import Bundler
from soulwallet_sdk.chain.chain_reader import ChainReader
from soulwallet_sdk.exceptions import (
    ConfigErrorCode, ConfigResolutionError, RpcError)
from soulwallet_sdk.result import Err, Ok, Result
from soulwallet_sdk.typing import Address

# largest integer a double can represent exactly
MAX_SAFE_CHAIN_ID = 2**53 - 1


@dataclass(frozen=True)
class OnChainConfig:
    chain_id: int
    entry_point: Address
    wallet_logic: Address


class OnChainConfigCache:
    """
    write once per (factory, chain id) key, lives as long as its owner.
    concurrent resolutions of the same key may both write, the values are
    equal so the last writer wins
    """
    _configs: dict[tuple[str, int], OnChainConfig]

    def __init__(self):
        self._configs = {}

    @staticmethod
    def key(factory_address: Address, chain_id: int) -> tuple[str, int]:
        return factory_address.lower(), chain_id

    def get(
        self, factory_address: Address, chain_id: int
    ) -> OnChainConfig | None:
        return self._configs.get(self.key(factory_address, chain_id))

    def set(
        self, factory_address: Address, chain_id: int, config: OnChainConfig
    ) -> None:
        self._configs[self.key(factory_address, chain_id)] = config

    def __len__(self) -> int:
        return len(self._configs)


def check_chain_id(
    chain_id, source: str
) -> Result[int, ConfigResolutionError]:
    if (
        not isinstance(chain_id, int) or isinstance(chain_id, bool) or
        chain_id <= 0 or chain_id > MAX_SAFE_CHAIN_ID
    ):
        return Err(
            ConfigResolutionError(
                ConfigErrorCode.InvalidChainId,
                f"Invalid {source} chainId {chain_id}",
            )
        )
    return Ok(chain_id)


class OnChainConfigResolver:
    chain_reader: ChainReader
    bundler: Bundler
    cache: OnChainConfigCache

    def __init__(
        self,
        chain_reader: ChainReader,
        bundler: Bundler,
        cache: OnChainConfigCache,
    ):
        self.chain_reader = chain_reader
        self.bundler = bundler
        self.cache = cache

    async def resolve(
        self, factory_address: Address, chain_id: int
    ) -> Result[OnChainConfig, ConfigResolutionError | RpcError]:
        chain_id_ret = check_chain_id(chain_id, "provider")
        if isinstance(chain_id_ret, Err):
            return chain_id_ret

        cached_config = self.cache.get(factory_address, chain_id)
        if cached_config is not None:
            logging.debug(
                f"onchain config cache hit for {factory_address} "
                f"on chain {chain_id}")
            return Ok(cached_config)

        wallet_logic_ret = await self.chain_reader.call(
            factory_address, "walletImpl()", [], [], ["address"])
        if isinstance(wallet_logic_ret, Err):
            return wallet_logic_ret
        wallet_logic = Address(wallet_logic_ret.value[0])

        entry_point_ret = await self.chain_reader.call(
            wallet_logic, "entryPoint()", [], [], ["address"])
        if isinstance(entry_point_ret, Err):
            return entry_point_ret
        entry_point = Address(entry_point_ret.value[0])

        bundler_chain_id_ret = await self.bundler.chain_id()
        if isinstance(bundler_chain_id_ret, Err):
            return bundler_chain_id_ret
        bundler_chain_id_check = check_chain_id(
            bundler_chain_id_ret.value, "bundler")
        if isinstance(bundler_chain_id_check, Err):
            return bundler_chain_id_check
        if bundler_chain_id_check.value != chain_id:
            return Err(
                ConfigResolutionError(
                    ConfigErrorCode.BundlerChainMismatch,
                    f"chainId {chain_id} !== bundler chainId "
                    f"{bundler_chain_id_check.value}",
                )
            )

        supported_entry_points_ret = await self.bundler.supported_entry_points()
        if isinstance(supported_entry_points_ret, Err):
            return supported_entry_points_ret
        supported_entry_points = [
            supported_entry_point.lower()
            for supported_entry_point in supported_entry_points_ret.value
        ]
        if entry_point.lower() not in supported_entry_points:
            return Err(
                ConfigResolutionError(
                    ConfigErrorCode.UnsupportedEntryPoint,
                    f"Bundler network doesn't support entryPoint {entry_point}",
                )
            )

        config = OnChainConfig(
            chain_id=chain_id,
            entry_point=entry_point,
            wallet_logic=wallet_logic,
        )
        self.cache.set(factory_address, chain_id, config)
        logging.info(
            f"Resolved onchain config for factory {factory_address}: "
            f"chainId {chain_id}, entryPoint {entry_point}, "
            f"wallet logic {wallet_logic}"
        )
        return Ok(config)
