"""Built-in operations; importing a module registers its descriptors."""

from sweeper.operations.catalog import (  # noqa: F401
    assign,
    ci_label,
    config_updater,
    dco_check,
    label,
    prune,
    rebuild,
    version,
)
