"""Exceptions raised by the terrain and flight core."""


class InvalidArgumentError(ValueError):
    """An argument violates a precondition of a core operation."""
