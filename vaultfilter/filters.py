"""
Basic vault filter handler.

Translates between a facet selection (`BasicFilter`) and the canonical raw
filter string evaluated by the vault search engine. Only a restricted subset of
the raw grammar maps onto facets: at most one group per category, every group
joined with its category's canonical operator.

Example:
    from vaultfilter import BasicFilter, to_filter, try_parse

    raw = to_filter(BasicFilter(vaults=[None, "org_one"], types=["Login"]))
    # '(in:my_vault OR in:org:"org_one") AND (type:"Login")'

    result = try_parse(raw)
    if result.success:
        selection = result.filter
    else:
        # Not representable as facets; keep editing the raw text.
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Literal

from .exceptions import FilterSyntaxError, VaultFilterError

MY_VAULT_ATOM = "in:my_vault"

# Any token starting with one of these must be a recognized facet atom.
KEYWORD_PREFIXES = ("in:", "type:", "has:")

_WHITESPACE = " \t\n\r"


class Operator(Enum):
    """Boolean operators allowed between atoms."""

    AND = "AND"
    OR = "OR"

    @property
    def separator(self) -> str:
        return f" {self.value} "


class Category(Enum):
    """Facet dimensions of a basic filter."""

    VAULT = "vault"
    FOLDER = "folder"
    COLLECTION = "collection"
    TYPE = "type"
    FIELD = "field"


@dataclass(frozen=True, slots=True)
class CategoryRule:
    """How one category is written in a raw filter."""

    prefix: str  # atom is prefix + quoted name
    operator: Operator
    attribute: str  # BasicFilter field holding the values


# Iteration order is the serialization order.
CATEGORY_RULES: dict[Category, CategoryRule] = {
    Category.VAULT: CategoryRule("in:org:", Operator.OR, "vaults"),
    Category.FOLDER: CategoryRule("in:folder:", Operator.OR, "folders"),
    Category.COLLECTION: CategoryRule("in:collection:", Operator.AND, "collections"),
    Category.TYPE: CategoryRule("type:", Operator.OR, "types"),
    Category.FIELD: CategoryRule("has:field:", Operator.AND, "fields"),
}

_FIELD_NAMES = ("terms", "vaults", "folders", "collections", "types", "fields")


# =============================================================================
# Data model
# =============================================================================


@dataclass(frozen=True, slots=True)
class BasicFilter:
    """
    A facet selection.

    Every field is an ordered tuple; lists passed to the constructor are
    converted. `None` in `vaults` is the personal vault, any other entry is an
    organization identifier.
    """

    terms: tuple[str, ...] = ()
    vaults: tuple[str | None, ...] = ()
    folders: tuple[str, ...] = ()
    collections: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    fields: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in _FIELD_NAMES:
            value = getattr(self, name)
            if isinstance(value, str):
                raise TypeError(f"BasicFilter.{name} must be a sequence of names, not a string")
            items = tuple(value)
            for item in items:
                if item is None and name == "vaults":
                    continue
                if not isinstance(item, str):
                    raise TypeError(f"BasicFilter.{name} contains a non-string value: {item!r}")
            object.__setattr__(self, name, items)

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in _FIELD_NAMES)

    def to_dict(self) -> dict[str, list[Any]]:
        """Plain JSON-compatible representation (`None` vault becomes `null`)."""
        return {name: list(getattr(self, name)) for name in _FIELD_NAMES}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BasicFilter:
        """
        Build a filter from the `to_dict()` shape.

        Missing keys default to empty lists.

        Raises:
            VaultFilterError: If keys are unknown or values are not lists of names.
        """
        if not isinstance(data, Mapping):
            raise VaultFilterError("Basic filter must be an object")
        unknown = sorted(set(data) - set(_FIELD_NAMES))
        if unknown:
            raise VaultFilterError(f"Unknown basic filter keys: {', '.join(unknown)}")

        values: dict[str, list[Any]] = {}
        for name in _FIELD_NAMES:
            raw = data.get(name, [])
            if not isinstance(raw, list):
                raise VaultFilterError(f"'{name}' must be a list")
            for item in raw:
                if item is None and name == "vaults":
                    continue
                if not isinstance(item, str):
                    raise VaultFilterError(f"'{name}' contains a non-string value: {item!r}")
            values[name] = raw
        return cls(**values)


@dataclass(frozen=True, slots=True)
class ParseSuccess:
    """The raw filter maps exactly onto a basic filter."""

    filter: BasicFilter
    success: ClassVar[Literal[True]] = True


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """The raw filter cannot be expressed as a basic filter."""

    success: ClassVar[Literal[False]] = False


ParseResult = ParseSuccess | ParseFailure


# =============================================================================
# Tokenizer
# =============================================================================


def _escape_string(value: str) -> str:
    """Escape a name for use inside a quoted literal."""
    # Order matters: escape backslashes first
    result = value.replace("\\", "\\\\")
    result = result.replace('"', '\\"')
    result = result.replace("\n", "\\n")
    result = result.replace("\t", "\\t")
    result = result.replace("\r", "\\r")
    return result


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


def _read_quoted(text: str, pos: int, offset: int) -> tuple[str, int]:
    """
    Read the quoted literal starting at `text[pos]`.

    Returns the decoded value and the index just past the closing quote.
    `offset` is where `text` starts in the full input.
    """
    assert text[pos] == '"'
    start_pos = pos
    pos += 1  # Skip opening quote
    result: list[str] = []

    while pos < len(text):
        ch = text[pos]
        if ch == '"':
            return "".join(result), pos + 1
        if ch == "\\":
            pos += 1
            if pos >= len(text):
                break
            escaped = text[pos]
            result.append(_ESCAPES.get(escaped, escaped))
        else:
            result.append(ch)
        pos += 1

    raise FilterSyntaxError("Unterminated quoted string", position=offset + start_pos)


@dataclass(frozen=True, slots=True)
class _Piece:
    """A stripped slice of the input and where it starts."""

    text: str
    pos: int


def _make_piece(text: str, start: int, end: int, offset: int) -> _Piece:
    chunk = text[start:end]
    stripped = chunk.lstrip(_WHITESPACE)
    pos = offset + start + (len(chunk) - len(stripped))
    stripped = stripped.rstrip(_WHITESPACE)
    if not stripped:
        raise FilterSyntaxError("Empty expression", position=pos)
    return _Piece(stripped, pos)


def _operator_at(text: str, pos: int, operators: tuple[Operator, ...]) -> Operator | None:
    for op in operators:
        if text.startswith(op.separator, pos):
            return op
    return None


def _split(
    text: str, operators: tuple[Operator, ...], offset: int = 0
) -> tuple[list[_Piece], list[Operator]]:
    """
    Split `text` on the given operators at parenthesis depth 0.

    Quoted literals are skipped whole. Returns the pieces and the operators
    found between them, so `len(pieces) == len(found) + 1`.
    """
    pieces: list[_Piece] = []
    found: list[Operator] = []
    depth = 0
    open_pos = 0
    start = 0
    pos = 0

    while pos < len(text):
        ch = text[pos]
        if ch == '"':
            _, pos = _read_quoted(text, pos, offset)
            continue
        if ch == "(":
            if depth == 0:
                open_pos = pos
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise FilterSyntaxError("Unbalanced ')'", position=offset + pos)
        elif depth == 0 and ch == " ":
            op = _operator_at(text, pos, operators)
            if op is not None:
                pieces.append(_make_piece(text, start, pos, offset))
                found.append(op)
                pos += len(op.separator)
                start = pos
                continue
        pos += 1

    if depth > 0:
        raise FilterSyntaxError("Unclosed '('", position=offset + open_pos)

    pieces.append(_make_piece(text, start, len(text), offset))
    return pieces, found


def _split_words(piece: _Piece) -> list[_Piece]:
    """Split a free-text segment on whitespace outside quoted literals."""
    text = piece.text
    words: list[_Piece] = []
    start: int | None = None
    pos = 0

    while pos < len(text):
        ch = text[pos]
        if ch in _WHITESPACE:
            if start is not None:
                words.append(_Piece(text[start:pos], piece.pos + start))
                start = None
            pos += 1
            continue
        if start is None:
            start = pos
        if ch == '"':
            _, pos = _read_quoted(text, pos, piece.pos)
            continue
        if ch in "()":
            raise FilterSyntaxError(f"Unexpected '{ch}' in free text", position=piece.pos + pos)
        pos += 1

    if start is not None:
        words.append(_Piece(text[start:], piece.pos + start))
    return words


def split_top_level(raw: str) -> list[str]:
    """
    Split a raw filter into its top-level ` AND ` segments.

    Segments are returned stripped; parenthesized segments keep their
    parentheses.

    Raises:
        FilterSyntaxError: On unbalanced parentheses, unterminated quotes or
            empty segments.
    """
    stripped = raw.strip(_WHITESPACE)
    if not stripped:
        return []
    offset = len(raw) - len(raw.lstrip(_WHITESPACE))
    pieces, _ = _split(stripped, (Operator.AND,), offset)
    return [piece.text for piece in pieces]


# =============================================================================
# Atom recognizer
# =============================================================================


@dataclass(frozen=True, slots=True)
class Atom:
    """
    One recognized predicate.

    `category` is None for a free-text token, whose text is then in `value`.
    """

    category: Category | None
    value: str | None

    @property
    def is_term(self) -> bool:
        return self.category is None


def _read_atom_name(token: str, prefix: str, position: int) -> str:
    if not token.startswith('"', len(prefix)):
        raise FilterSyntaxError(f"Expected a quoted name after '{prefix}'", position=position)
    name, end = _read_quoted(token, len(prefix), position)
    if end != len(token):
        raise FilterSyntaxError(
            f"Unexpected text after quoted name: '{token[end:]}'", position=position + end
        )
    return name


def recognize_atom(token: str, *, position: int = 0) -> Atom:
    """
    Classify a single predicate.

    Raises:
        FilterSyntaxError: If the token uses a filter keyword prefix but is not
            one of the recognized forms.
    """
    if token == MY_VAULT_ATOM:
        return Atom(Category.VAULT, None)
    for category, rule in CATEGORY_RULES.items():
        if token.startswith(rule.prefix):
            return Atom(category, _read_atom_name(token, rule.prefix, position))
    if token.startswith(KEYWORD_PREFIXES):
        raise FilterSyntaxError(f"Unrecognized filter keyword '{token}'", position=position)
    return Atom(None, token)


# =============================================================================
# Group validator
# =============================================================================


@dataclass(frozen=True, slots=True)
class _Group:
    category: Category | None  # None for free-text segments
    values: tuple[str | None, ...]


def _closing_paren(piece: _Piece) -> int:
    """Index of the parenthesis closing the one at `piece.text[0]`."""
    text = piece.text
    depth = 0
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if ch == '"':
            _, pos = _read_quoted(text, pos, piece.pos)
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    raise FilterSyntaxError("Unclosed '('", position=piece.pos)


def _validate_parenthesized(piece: _Piece) -> _Group:
    close = _closing_paren(piece)
    if close != len(piece.text) - 1:
        raise FilterSyntaxError(
            "Expected ' AND ' after parenthesized group", position=piece.pos + close + 1
        )

    pieces, operators = _split(piece.text[1:-1], (Operator.AND, Operator.OR), piece.pos + 1)
    if len(set(operators)) > 1:
        raise FilterSyntaxError("Group mixes AND and OR", position=piece.pos)

    atoms: list[Atom] = []
    for inner in pieces:
        atom = recognize_atom(inner.text, position=inner.pos)
        if atom.is_term:
            raise FilterSyntaxError(
                f"Expected a filter keyword inside group, got '{inner.text}'", position=inner.pos
            )
        atoms.append(atom)

    category = atoms[0].category
    assert category is not None
    if any(atom.category is not category for atom in atoms):
        raise FilterSyntaxError("Group mixes filter categories", position=piece.pos)

    rule = CATEGORY_RULES[category]
    if operators and operators[0] is not rule.operator:
        raise FilterSyntaxError(
            f"{category.value} groups must be joined with {rule.operator.value}",
            position=piece.pos,
        )
    return _Group(category, tuple(atom.value for atom in atoms))


def _validate_free_text(piece: _Piece) -> _Group:
    terms: list[str] = []
    for word in _split_words(piece):
        if word.text in (Operator.AND.value, Operator.OR.value):
            raise FilterSyntaxError(f"Unexpected '{word.text}'", position=word.pos)
        if word.text.startswith(KEYWORD_PREFIXES):
            raise FilterSyntaxError(
                f"Filter keyword '{word.text}' must be its own AND segment", position=word.pos
            )
        if word.text.startswith('"'):
            value, end = _read_quoted(word.text, 0, word.pos)
            if end != len(word.text):
                raise FilterSyntaxError(
                    "Unexpected text after quoted term", position=word.pos + end
                )
            terms.append(value)
        else:
            terms.append(word.text)
    return _Group(None, tuple(terms))


def _validate_group(piece: _Piece) -> _Group:
    """Reduce one top-level segment to a single-category group or free-text terms."""
    if piece.text.startswith("("):
        return _validate_parenthesized(piece)
    atom = recognize_atom(piece.text, position=piece.pos)
    if atom.is_term:
        return _validate_free_text(piece)
    return _Group(atom.category, (atom.value,))


# =============================================================================
# Assembler and serializer
# =============================================================================


def _assemble(raw: str) -> BasicFilter:
    stripped = raw.strip(_WHITESPACE)
    if not stripped:
        return BasicFilter()
    offset = len(raw) - len(raw.lstrip(_WHITESPACE))
    segments, _ = _split(stripped, (Operator.AND,), offset)

    terms: list[str] = []
    values: dict[str, tuple[str | None, ...]] = {}
    for segment in segments:
        group = _validate_group(segment)
        if group.category is None:
            terms.extend(v for v in group.values if v is not None)
            continue
        attribute = CATEGORY_RULES[group.category].attribute
        if attribute in values:
            raise FilterSyntaxError(
                f"{group.category.value} appears in more than one group", position=segment.pos
            )
        values[attribute] = group.values

    return BasicFilter(terms=tuple(terms), **values)


def _format_atom(category: Category, value: str | None) -> str:
    if value is None:
        return MY_VAULT_ATOM
    return f'{CATEGORY_RULES[category].prefix}"{_escape_string(value)}"'


class BasicVaultFilterHandler:
    """
    Converts between raw filter strings and `BasicFilter` facet selections.

    Stateless apart from the logger; one instance can be shared freely.

    Args:
        logger: Receives a DEBUG record for every rejected raw filter.
            Defaults to this module's logger.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def try_parse(self, raw: str) -> ParseResult:
        """
        Reduce a raw filter to a basic filter.

        Returns `ParseFailure` whenever any part of `raw` falls outside the
        basic grammar; partial selections are never returned.
        """
        try:
            basic_filter = _assemble(raw)
        except FilterSyntaxError as exc:
            self._logger.debug(f"Filter {raw!r} is not representable as a basic filter: {exc}")
            return ParseFailure()
        return ParseSuccess(basic_filter)

    def to_filter(self, basic_filter: BasicFilter) -> str:
        """
        Render the canonical raw filter for a selection.

        Groups appear in vault, folder, collection, type, field order and are
        always parenthesized. Free-text `terms` are not rendered.
        """
        groups: list[str] = []
        for category, rule in CATEGORY_RULES.items():
            values = getattr(basic_filter, rule.attribute)
            if not values:
                continue
            joined = rule.operator.separator.join(_format_atom(category, v) for v in values)
            groups.append(f"({joined})")
        return Operator.AND.separator.join(groups)


_default_handler = BasicVaultFilterHandler()


def try_parse(raw: str) -> ParseResult:
    """
    Parse a raw filter into a basic filter.

    Examples:
        >>> try_parse('(in:my_vault OR in:org:"org_one")').filter.vaults
        (None, 'org_one')

        >>> try_parse('(type:"Login" AND type:"Card")').success
        False
    """
    return _default_handler.try_parse(raw)


def to_filter(basic_filter: BasicFilter) -> str:
    """
    Serialize a basic filter into its canonical raw filter.

    Examples:
        >>> to_filter(BasicFilter(collections=["collection_one", "Collection two"]))
        '(in:collection:"collection_one" AND in:collection:"Collection two")'
    """
    return _default_handler.to_filter(basic_filter)
