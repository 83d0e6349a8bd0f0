"""Operations: contract, registry and the built-in catalog."""

from sweeper.operations.base import AcceptedType, Context, FilterResult, Operation
from sweeper.operations.registry import (
    OperationDescriptor,
    OperationHooks,
    descriptors,
    get_descriptor,
    operation_from_config,
    register_operation,
    validate_operation_config,
)
from sweeper.operations import catalog  # noqa: F401,E402

__all__ = [
    "AcceptedType",
    "Context",
    "FilterResult",
    "Operation",
    "OperationDescriptor",
    "OperationHooks",
    "descriptors",
    "get_descriptor",
    "operation_from_config",
    "register_operation",
    "validate_operation_config",
]
