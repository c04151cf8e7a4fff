"""Error taxonomy for the aggregation and categorization engine.

Only ``InvalidRangeError`` is meant to reach an API caller. The others are
raised for a single record and caught by the batch operation that owns it.
"""

from typing import Optional


class FinsightError(Exception):
    """Base class for every error raised by finsight services."""


class InvalidRangeError(FinsightError, ValueError):
    """A date window is malformed or ends before it starts."""


class InsufficientHistoryError(FinsightError, ValueError):
    """The forecaster was handed an empty history series."""


class UnresolvedAccountError(FinsightError, LookupError):
    """A provider record points at an account the ledger does not know."""

    def __init__(self, external_account_id: Optional[str]):
        self.external_account_id = external_account_id
        super().__init__(f"no ledger account for external account {external_account_id!r}")


class RuleWriteFailure(FinsightError):
    """Inserting a categorization rule failed; the rule was not stored."""
