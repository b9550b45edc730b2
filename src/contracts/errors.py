"""Error types raised by the contracts and the analytics core."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """A precondition on an input value was violated.

    Raised for negative consumption, malformed tariff schedules, alert
    configurations without a threshold/comparison pair and similar
    contract breaches.  Values are never coerced silently.
    """
