"""Operation registry: descriptors by name.

Catalog modules register their descriptor at import time; the catalog
package is imported once by ``sweeper.operations``.
"""

import argparse
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List

from sweeper.errors import ConfigError, OperationError, UnknownOperation
from sweeper.operations.base import Operation

if TYPE_CHECKING:
    from sweeper.actions import OperationConfig

LOG = logging.getLogger("sweeper.operations.registry")


@dataclass(frozen=True)
class OperationHooks:
    """Callbacks an operation may need from its host process.

    ``refresh_repository(full_name)`` reloads a repository's configuration;
    only the daemon provides it.
    """

    refresh_repository: Callable[[str], None] | None = None


class OperationDescriptor(ABC):
    """Builds one kind of operation from CLI arguments or configuration settings."""

    name: str = ""
    description: str = ""
    args_usage: str = ""
    #: False for operations that only make sense inside the daemon
    cli_available: bool = True

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add operation-specific CLI arguments (none by default)."""
        return None

    @abstractmethod
    def from_cli(self, args: argparse.Namespace) -> Operation:
        ...

    @abstractmethod
    def from_config(self, settings: Dict[str, Any], hooks: OperationHooks) -> Operation:
        ...


_REGISTRY: Dict[str, OperationDescriptor] = {}


def register_operation(descriptor: OperationDescriptor) -> OperationDescriptor:
    """Register a descriptor under its name; a name can be registered once."""
    if not descriptor.name:
        raise ValueError(f"descriptor {descriptor!r} has no name")
    if descriptor.name in _REGISTRY:
        raise ValueError(f"operation {descriptor.name!r} is already registered")
    _REGISTRY[descriptor.name] = descriptor
    return descriptor


def get_descriptor(name: str) -> OperationDescriptor:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise UnknownOperation(f"unknown operation {name!r}") from None


def descriptors() -> List[OperationDescriptor]:
    """All registered descriptors sorted by name."""
    return [_REGISTRY[name] for name in sorted(_REGISTRY)]


def operation_from_config(op_config: "OperationConfig", hooks: OperationHooks | None = None) -> Operation:
    """Build the operation an OperationConfig names.

    Raises UnknownOperation for an unregistered type and ConfigError for
    invalid settings.
    """
    descriptor = get_descriptor(op_config.type)
    try:
        return descriptor.from_config(dict(op_config.settings or {}), hooks or OperationHooks())
    except (ValueError, OperationError) as err:
        raise ConfigError(f"invalid settings for operation {op_config.type!r}: {err}") from err


def validate_operation_config(op_config: "OperationConfig") -> None:
    """Raise ConfigError if the operation cannot be built; nothing is contacted."""
    operation_from_config(op_config)
