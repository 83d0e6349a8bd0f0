"""Exception hierarchy shared by the engine, the CLI and the daemon."""


class SweeperError(Exception):
    """Base class for all sweeper errors."""

    pass


class ConfigError(SweeperError):
    """Invalid configuration: detected before any GitHub call is made."""

    pass


class UnknownFilterType(ConfigError):
    """Filter type is not one of the known filter types."""

    pass


class InvalidFilterValue(ConfigError):
    """Filter value cannot be parsed for its filter type."""

    pass


class UnknownOperation(ConfigError):
    """Operation type does not resolve against the operation registry."""

    pass


class OperationError(SweeperError):
    """Operation cannot be created or applied."""

    pass


class UnsupportedBatchOperation(OperationError):
    """Operation refuses to be listed for an item kind (no list options)."""

    pass
