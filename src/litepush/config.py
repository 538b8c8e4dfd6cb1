"""
Push configuration.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PushOptions:
    """
    Options for a schema push.

    Attributes:
        creation_mode: Create every table from scratch without attaching
            single-column foreign keys. Only valid on an empty database,
            typically a local test database.
        prefix: Only consider tables whose name starts with this prefix,
            on both the database and the model side
        dry_run: Compute and report the plan without executing it
    """

    creation_mode: bool = False
    prefix: str | None = None
    dry_run: bool = False


__all__ = ["PushOptions"]
