"""Error taxonomy shared by the billing services.

Services raise these; the endpoint layer maps them to HTTP status codes.
``ValidationError`` and ``NotFoundError`` also derive from ``ValueError`` so
callers that only know the generic contract can still catch them.
"""

from __future__ import annotations


class BillingError(Exception):
    """Base class for every error raised by the billing core."""


class ValidationError(BillingError, ValueError):
    """Operator input rejected before anything was written."""


class NotFoundError(BillingError, ValueError):
    """A referenced bill, order, customer or catalog entry does not exist."""


class PersistenceError(BillingError):
    """The database rejected or failed a write; the transaction was rolled back."""
