import logging

from soulwallet_sdk.user_operation.user_operation import UserOperation

DEFAULT_PRE_VERIFICATION_GAS_OVERHEAD = 5_000


class GasOverhead:
    """
    fixed preVerificationGas top-up applied after bundler estimation,
    looked up per chain id with a default for unlisted chains
    """
    default_overhead: int
    pre_verification_gas_overhead: dict[int, int]

    def __init__(
        self,
        pre_verification_gas_overhead: dict[int, int] | None = None,
        default_overhead: int = DEFAULT_PRE_VERIFICATION_GAS_OVERHEAD,
    ):
        self.pre_verification_gas_overhead = (
            dict(pre_verification_gas_overhead)
            if pre_verification_gas_overhead is not None else {}
        )
        self.default_overhead = default_overhead

    def get_overhead(self, chain_id: int) -> int:
        return self.pre_verification_gas_overhead.get(
            chain_id, self.default_overhead)

    def calc_gas_overhead(
        self, user_operation: UserOperation, chain_id: int
    ) -> None:
        overhead = self.get_overhead(chain_id)
        user_operation.pre_verification_gas += overhead
        logging.debug(
            f"preVerificationGas of {user_operation.sender_address} "
            f"topped up by {overhead} to {user_operation.pre_verification_gas}"
        )
