from .provision_dto import (
    Channel,
    CheckoutResult,
    CompensationFailure,
    CreateUserResult,
    ErrorKind,
    ProvisionInput,
    ProvisionResult,
    SagaState,
)

__all__ = [
    "Channel",
    "CheckoutResult",
    "CompensationFailure",
    "CreateUserResult",
    "ErrorKind",
    "ProvisionInput",
    "ProvisionResult",
    "SagaState",
]
