"""
Domain exceptions for the ledger engine.
"""


class TripledgerError(Exception):
    """Base class for all ledger errors."""


class ValidationError(TripledgerError, ValueError):
    """Caller-supplied amount or split data is invalid."""


class HierarchyError(TripledgerError, ValueError):
    """A participant parent link or removal would break the hierarchy."""


class NotFoundError(TripledgerError, LookupError):
    """A trip, participant or expense does not exist."""


class RepositoryError(TripledgerError):
    """Reading or writing persisted expenses failed."""


class ReconciliationFatal(TripledgerError):
    """
    Fetching a trip's expenses failed before any split was rewritten.

    Safe to retry: nothing has been mutated.
    """

    def __init__(self, trip_id: str, message: str):
        self.trip_id = trip_id
        super().__init__(f"Reconciliation aborted for trip {trip_id}: {message}")
