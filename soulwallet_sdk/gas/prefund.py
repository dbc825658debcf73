from dataclasses import dataclass

from soulwallet_sdk.exceptions import ValidationError
from soulwallet_sdk.user_operation.user_operation import UserOperation


@dataclass
class PrefundInfo:
    deposit: str
    prefund: str
    missing_fund: str


def calc_required_prefund(user_operation: UserOperation) -> int:
    """
    mirrors EntryPoint._getRequiredPrefund:

        uint256 mul = mUserOp.paymaster != address(0) ? 3 : 1;
        uint256 requiredGas = mUserOp.callGasLimit +
            mUserOp.verificationGasLimit * mul + mUserOp.preVerificationGas;
        requiredPrefund = requiredGas * mUserOp.maxFeePerGas;

    when a paymaster is used verificationGasLimit also bounds postOp,
    which may be called twice
    """
    for field_name, value in (
        ("maxFeePerGas", user_operation.max_fee_per_gas),
        ("preVerificationGas", user_operation.pre_verification_gas),
        ("verificationGasLimit", user_operation.verification_gas_limit),
    ):
        if value == 0:
            raise ValidationError(
                field_name,
                "maxFeePerGas, preVerificationGas, verificationGasLimit must > 0",
            )

    mul = 3 if len(user_operation.paymaster_and_data) > 0 else 1
    required_gas = (
        user_operation.call_gas_limit.to_wire() +
        user_operation.verification_gas_limit * mul +
        user_operation.pre_verification_gas
    )
    return required_gas * user_operation.max_fee_per_gas


def calc_prefund_info(user_operation: UserOperation, deposit: int) -> PrefundInfo:
    required_prefund = calc_required_prefund(user_operation)
    missing_fund = max(required_prefund - deposit, 0)
    return PrefundInfo(
        deposit=hex(deposit),
        prefund=hex(required_prefund),
        missing_fund=hex(missing_fund),
    )
