"""
Error kinds raised by the store client, sampler and configuration loader.

StoreError subclasses map to the failure classes an operator needs to tell
apart under load:

    NotFoundError    zero rows where one was expected (empty table, or a
                     sample that came back empty)
    ConstraintError  the backend rejected a row (foreign key, not null, check,
                     duplicate key)
    BackendError     connection, timeout, pool exhaustion or protocol failure
"""


class StoreError(Exception):
    """Base class for datastore failures."""

    kind = "internal"


class NotFoundError(StoreError):
    """Query expected one row and got none."""

    kind = "not_found"


class ConstraintError(StoreError):
    """Backend rejected a write because it violates a constraint."""

    kind = "constraint"


class BackendError(StoreError):
    """Connection, timeout or protocol failure talking to the backend."""

    kind = "backend"


class ConfigMissingError(Exception):
    """Required configuration is absent at startup."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            "missing required environment variable(s): " + ", ".join(self.missing)
        )
