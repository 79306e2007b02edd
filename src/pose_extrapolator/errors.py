"""Exceptions raised by the pose extrapolator.

Two kinds of failure are distinguished:

- PreconditionError: the caller broke a contract (out-of-order timestamps,
  extrapolating into the past, an integration cursor that does not bracket
  its start time). These are pipeline bugs and are never retried.
- NotReadyError: the extrapolator does not have enough data yet to answer
  (no pose, no orientation tracker). Callers should check readiness first.
"""

from __future__ import annotations


class PoseExtrapolatorError(Exception):
    """Base class for all pose extrapolator errors."""


class PreconditionError(PoseExtrapolatorError, ValueError):
    """A call violated the time-ordering or bracketing contract."""


class NotReadyError(PoseExtrapolatorError, RuntimeError):
    """The extrapolator cannot answer a query with the data received so far."""
