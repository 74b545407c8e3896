"""Exceptions raised by the finance engine."""

from __future__ import annotations


class InputContractError(ValueError):
    """Raised when callers pass data that breaks the engine's input contract.

    Examples are an unknown recurrence, a non-positive amount or a date that
    cannot be parsed. These are programming errors in the caller and are
    never recovered from inside the engine.
    """
