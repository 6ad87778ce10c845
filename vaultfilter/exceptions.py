"""
Exceptions raised by the vault filter grammar.

`try_parse()` never lets these escape: a grammar violation is reported as a
`ParseFailure`. They surface only from helpers that validate caller-supplied
data, such as `BasicFilter.from_dict()`.
"""

from __future__ import annotations


class VaultFilterError(ValueError):
    """Base class for vault filter errors."""


class FilterSyntaxError(VaultFilterError):
    """A raw filter string violates the basic filter grammar."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)
        self.position = position
