from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass
class ValidationError(Exception):
    field: str
    message: str


class ConfigErrorCode(Enum):
    InvalidChainId = "InvalidChainId"
    BundlerChainMismatch = "BundlerChainMismatch"
    UnsupportedEntryPoint = "UnsupportedEntryPoint"


@dataclass
class ConfigResolutionError(Exception):
    code: ConfigErrorCode
    message: str


@dataclass
class RpcError(Exception):
    method: str
    code: int | None
    message: str
    data: Any = None


class UserOpErrorCode(Enum):
    InvalidFields = -32602
    SimulateValidation = -32500
    SimulatePaymasterValidation = -32501
    OpcodeValidation = -32502
    ExpiresShortly = -32503
    Reputation = -32504
    InsufficientStake = -32505
    UnsupportedSignatureAggregator = -32506
    InvalidSignature = -32507
    PaymasterDepositTooLow = -32508
    UserOperationReverted = -32521
    InternalError = -32603
    UnknownError = -1

    @classmethod
    def from_rpc_code(cls, code: int | None) -> "UserOpErrorCode":
        for member in cls:
            if member.value == code:
                return member
        return cls.UnknownError


@dataclass
class UserOpError(Exception):
    code: UserOpErrorCode
    message: str
    data: Any = None

    @classmethod
    def from_error(cls, error: Exception) -> "UserOpError":
        if isinstance(error, UserOpError):
            return error
        if isinstance(error, RpcError):
            return cls(
                UserOpErrorCode.from_rpc_code(error.code),
                error.message,
                error.data,
            )
        if isinstance(error, ValidationError):
            return cls(
                UserOpErrorCode.InvalidFields,
                f"{error.message} in field {error.field}",
            )
        return cls(UserOpErrorCode.UnknownError, str(getattr(error, "message", error)))


@dataclass
class ConsistencyFault(Exception):
    message: str
    local_hash: str
    bundler_hash: str
