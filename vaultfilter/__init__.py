"""
Basic vault filter handling.

Converts between facet selections and the canonical raw search filter:

    from vaultfilter import BasicFilter, to_filter, try_parse

    to_filter(BasicFilter(types=["Login", "Card"]))
    # '(type:"Login" OR type:"Card")'
"""

from __future__ import annotations

from .exceptions import FilterSyntaxError, VaultFilterError
from .filters import (
    CATEGORY_RULES,
    Atom,
    BasicFilter,
    BasicVaultFilterHandler,
    Category,
    CategoryRule,
    Operator,
    ParseFailure,
    ParseResult,
    ParseSuccess,
    recognize_atom,
    split_top_level,
    to_filter,
    try_parse,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Atom",
    "BasicFilter",
    "BasicVaultFilterHandler",
    "CATEGORY_RULES",
    "Category",
    "CategoryRule",
    "FilterSyntaxError",
    "Operator",
    "ParseFailure",
    "ParseResult",
    "ParseSuccess",
    "VaultFilterError",
    "recognize_atom",
    "split_top_level",
    "to_filter",
    "try_parse",
]
