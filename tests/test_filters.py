"""Tests for try_parse() / to_filter() and the grammar helpers behind them."""

from __future__ import annotations

import logging

import pytest

from vaultfilter import (
    Atom,
    BasicFilter,
    BasicVaultFilterHandler,
    Category,
    FilterSyntaxError,
    ParseFailure,
    ParseSuccess,
    recognize_atom,
    split_top_level,
    to_filter,
    try_parse,
)

# Filters the facet picker itself produces, with their canonical raw form.
CANONICAL_CASES = [
    (
        BasicFilter(
            vaults=[None, "org_vault"],
            folders=["folder_one", "folder_two"],
            collections=["collection_one", "collection_two"],
            types=["Login", "Card"],
            fields=["field_one", "field_two"],
        ),
        '(in:my_vault OR in:org:"org_vault") AND '
        '(in:folder:"folder_one" OR in:folder:"folder_two") AND '
        '(in:collection:"collection_one" AND in:collection:"collection_two") AND '
        '(type:"Login" OR type:"Card") AND '
        '(has:field:"field_one" AND has:field:"field_two")',
    ),
    (BasicFilter(vaults=[None, "org_one"]), '(in:my_vault OR in:org:"org_one")'),
    (
        BasicFilter(collections=["collection_one", "Collection two"]),
        '(in:collection:"collection_one" AND in:collection:"Collection two")',
    ),
    (BasicFilter(types=["Card", "Login"]), '(type:"Card" OR type:"Login")'),
    (
        BasicFilter(folders=["folder_one", "Folder two"]),
        '(in:folder:"folder_one" OR in:folder:"Folder two")',
    ),
    (
        BasicFilter(types=["Card", "Login"], folders=["folder_one", "Folder two"]),
        '(in:folder:"folder_one" OR in:folder:"Folder two") AND (type:"Card" OR type:"Login")',
    ),
    (
        BasicFilter(fields=["field_one", "Field two"]),
        '(has:field:"field_one" AND has:field:"Field two")',
    ),
    (BasicFilter(vaults=[None]), "(in:my_vault)"),
]


# =============================================================================
# try_parse - accepted input
# =============================================================================


@pytest.mark.parametrize(("basic_filter", "raw"), CANONICAL_CASES)
def test_parse_canonical_filter(basic_filter: BasicFilter, raw: str) -> None:
    """Canonical raw filters parse back to their facet selection."""
    result = try_parse(raw)
    assert isinstance(result, ParseSuccess)
    assert result.filter == basic_filter


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("in:my_vault", BasicFilter(vaults=[None])),
        ('in:collection:"my_collection"', BasicFilter(collections=["my_collection"])),
        ('type:"Login"', BasicFilter(types=["Login"])),
        ('in:folder:"my_folder"', BasicFilter(folders=["my_folder"])),
        ('has:field:"Recovery code"', BasicFilter(fields=["Recovery code"])),
        ('in:org:"org_one"', BasicFilter(vaults=["org_one"])),
    ],
)
def test_parse_bare_atom(raw: str, expected: BasicFilter) -> None:
    """A bare atom is accepted as a one-element group."""
    result = try_parse(raw)
    assert isinstance(result, ParseSuccess)
    assert result.filter == expected


def test_parse_empty_string() -> None:
    """Empty input is the empty selection."""
    result = try_parse("")
    assert result == ParseSuccess(BasicFilter())
    assert result.filter.is_empty


def test_parse_whitespace_only() -> None:
    """Whitespace-only input is the empty selection."""
    assert try_parse("   ") == ParseSuccess(BasicFilter())


def test_parse_mixes_bare_atoms_and_groups() -> None:
    """Bare atoms and groups can be combined at the top level."""
    result = try_parse('in:my_vault AND (type:"Login" OR type:"Card")')
    assert isinstance(result, ParseSuccess)
    assert result.filter == BasicFilter(vaults=[None], types=["Login", "Card"])


def test_parse_categories_in_any_order() -> None:
    """Groups are accepted in any order; values keep their source order."""
    result = try_parse('(type:"Card" OR type:"Login") AND (in:org:"b" OR in:org:"a")')
    assert isinstance(result, ParseSuccess)
    assert result.filter.types == ("Card", "Login")
    assert result.filter.vaults == ("b", "a")


def test_parse_keywords_inside_quotes_are_opaque() -> None:
    """AND, OR and parentheses inside quoted names do not split anything."""
    result = try_parse('(in:folder:"Work AND Play" OR in:folder:"Home (old) OR new")')
    assert isinstance(result, ParseSuccess)
    assert result.filter.folders == ("Work AND Play", "Home (old) OR new")


def test_parse_escaped_quotes_and_backslashes() -> None:
    """Escapes inside quoted names are decoded."""
    result = try_parse('type:"Say \\"hi\\" \\\\ bye"')
    assert isinstance(result, ParseSuccess)
    assert result.filter.types == ('Say "hi" \\ bye',)


def test_parse_tolerates_padding_inside_group() -> None:
    """Spaces just inside the parentheses are ignored."""
    result = try_parse('( type:"Login" OR type:"Card" )')
    assert isinstance(result, ParseSuccess)
    assert result.filter.types == ("Login", "Card")


def test_parse_keeps_duplicate_values() -> None:
    """Repeated values in one group are kept as written."""
    result = try_parse('(type:"Login" OR type:"Login")')
    assert isinstance(result, ParseSuccess)
    assert result.filter.types == ("Login", "Login")


# =============================================================================
# try_parse - free-text terms
# =============================================================================


def test_parse_free_text_terms() -> None:
    """Unrecognized top-level words are collected as terms."""
    result = try_parse('github AND (type:"Login")')
    assert isinstance(result, ParseSuccess)
    assert result.filter == BasicFilter(terms=["github"], types=["Login"])


def test_parse_free_text_words_in_order() -> None:
    """Each word of a free-text segment becomes a term, in order."""
    result = try_parse('work email AND in:my_vault AND "two words"')
    assert isinstance(result, ParseSuccess)
    assert result.filter.terms == ("work", "email", "two words")
    assert result.filter.vaults == (None,)


@pytest.mark.parametrize(
    "raw",
    [
        "cats OR dogs",
        'github type:"Login"',
        "foo(bar)",
        '"unterminated',
        '"quoted"suffix',
    ],
)
def test_parse_rejects_unsupported_free_text(raw: str) -> None:
    """Free text cannot carry operators, keywords or parentheses."""
    assert try_parse(raw) == ParseFailure()


# =============================================================================
# try_parse - rejected input
# =============================================================================


@pytest.mark.parametrize(
    "raw",
    [
        # Folders are OR-ed
        '(in:folder:"folder_one" AND in:folder:"Folder two")',
        # Vaults are OR-ed
        '(in:my_vault AND in:org:"Org one")',
        # Collections are AND-ed
        '(in:collection:"Collection one" OR in:collection:"Collection two")',
        # Types are OR-ed
        '(type:"Login" AND type:"Card")',
        # Fields are AND-ed
        '(has:field:"a" OR has:field:"b")',
    ],
)
def test_parse_rejects_operator_mismatch(raw: str) -> None:
    """A group joined with the wrong operator is not a basic filter."""
    result = try_parse(raw)
    assert result.success is False


@pytest.mark.parametrize(
    "raw",
    [
        '(type:"Login") AND (type:"Card")',
        'type:"Login" AND type:"Card"',
        'in:my_vault AND (in:org:"org_one")',
    ],
)
def test_parse_rejects_duplicate_category(raw: str) -> None:
    """A category may only be expressed by one group."""
    assert try_parse(raw).success is False


@pytest.mark.parametrize(
    "raw",
    [
        '(type:"Login" OR type:"Card" AND type:"Note")',
        '(type:"Login" OR in:folder:"x")',
        'in:my_vault OR in:org:"x"',
        '(type:"Login") OR (type:"Card")',
        '((type:"Login"))',
        "()",
        '(type:"Login" OR github)',
    ],
)
def test_parse_rejects_structure(raw: str) -> None:
    """Mixed operators, mixed categories and nesting are rejected."""
    assert try_parse(raw).success is False


@pytest.mark.parametrize(
    "raw",
    [
        "in:trash",
        "has:attachment",
        "type:Login",
        'in:org:"Acme" extra',
        'in:favorites AND in:folder:"x"',
        'type:"Login',
        '(type:"Login"',
        'type:"Login")',
        'type:"Login" AND',
        'type:"Login" AND  AND in:my_vault',
    ],
)
def test_parse_rejects_malformed(raw: str) -> None:
    """Unknown keyword forms and broken syntax fail the whole parse."""
    assert try_parse(raw) == ParseFailure()


def test_parse_failure_has_no_payload() -> None:
    """A failure carries no partial filter."""
    result = try_parse('(type:"Login") AND (in:folder:"x" AND in:folder:"y")')
    assert isinstance(result, ParseFailure)
    assert result.success is False
    assert not hasattr(result, "filter")


# =============================================================================
# to_filter
# =============================================================================


@pytest.mark.parametrize(("basic_filter", "raw"), CANONICAL_CASES)
def test_to_filter_canonical(basic_filter: BasicFilter, raw: str) -> None:
    """Facet selections render to their canonical raw filter."""
    assert to_filter(basic_filter) == raw


def test_to_filter_empty() -> None:
    """The empty selection renders to an empty string."""
    assert to_filter(BasicFilter()) == ""


def test_to_filter_fixed_category_order() -> None:
    """Groups always come out as vault, folder, collection, type, field."""
    basic_filter = BasicFilter(fields=["f"], types=["t"], vaults=["v"])
    assert to_filter(basic_filter) == '(in:org:"v") AND (type:"t") AND (has:field:"f")'


def test_to_filter_keeps_value_order() -> None:
    """Values keep their order, including the personal vault."""
    assert to_filter(BasicFilter(vaults=["org_one", None])) == '(in:org:"org_one" OR in:my_vault)'


def test_to_filter_escapes_names() -> None:
    """Quotes and backslashes in names are escaped."""
    raw = to_filter(BasicFilter(folders=['Say "hi"', "C:\\temp"]))
    assert raw == '(in:folder:"Say \\"hi\\"" OR in:folder:"C:\\\\temp")'


def test_to_filter_omits_terms() -> None:
    """Free-text terms are not rendered."""
    assert to_filter(BasicFilter(terms=["github"], types=["Login"])) == '(type:"Login")'


# =============================================================================
# Round trip
# =============================================================================

ROUND_TRIP_FILTERS = [
    BasicFilter(),
    BasicFilter(vaults=[None]),
    BasicFilter(vaults=["org_one", None, "org_two"]),
    BasicFilter(folders=["Work AND Play", "a OR b", "(parens)"]),
    BasicFilter(collections=['Quote "inside"', "back\\slash", "trailing\\"]),
    BasicFilter(types=["Login", "Card", "Identity", "Secure Note"]),
    BasicFilter(fields=["line\nbreak", "tab\there", ""]),
    BasicFilter(folders=["Fotos ñ 写真"], fields=["in:org:\"x\""]),
    BasicFilter(
        vaults=[None, "org"],
        folders=["f"],
        collections=["c1", "c2"],
        types=["Login"],
        fields=["x", "y", "z"],
    ),
]


@pytest.mark.parametrize("basic_filter", ROUND_TRIP_FILTERS)
def test_round_trip(basic_filter: BasicFilter) -> None:
    """Serializing then parsing gives back the same selection."""
    result = try_parse(to_filter(basic_filter))
    assert isinstance(result, ParseSuccess)
    assert result.filter == basic_filter


@pytest.mark.parametrize("basic_filter", ROUND_TRIP_FILTERS)
def test_canonicalization_is_idempotent(basic_filter: BasicFilter) -> None:
    """Re-serializing a parsed canonical filter yields the same string."""
    raw = to_filter(basic_filter)
    result = try_parse(raw)
    assert isinstance(result, ParseSuccess)
    assert to_filter(result.filter) == raw


def test_bare_atoms_canonicalize_to_groups() -> None:
    """Lenient input is rewritten with parentheses."""
    result = try_parse('type:"Login" AND in:my_vault')
    assert isinstance(result, ParseSuccess)
    assert to_filter(result.filter) == '(in:my_vault) AND (type:"Login")'


# =============================================================================
# Tokenizer and atom recognizer
# =============================================================================


def test_split_top_level() -> None:
    """Only depth-0, unquoted AND separators split."""
    segments = split_top_level('(a OR b AND c) AND github AND "x AND y"')
    assert segments == ["(a OR b AND c)", "github", '"x AND y"']


def test_split_top_level_empty() -> None:
    """Empty input has no segments."""
    assert split_top_level("  ") == []


def test_split_top_level_unbalanced() -> None:
    """Unbalanced parentheses raise."""
    with pytest.raises(FilterSyntaxError, match=r"[Uu]nclosed"):
        split_top_level('(type:"Login"')
    with pytest.raises(FilterSyntaxError, match=r"[Uu]nbalanced"):
        split_top_level('type:"Login")')


def test_split_top_level_unterminated_quote() -> None:
    """An unterminated quoted literal raises with its position."""
    with pytest.raises(FilterSyntaxError, match=r"Unterminated") as exc:
        split_top_level('in:my_vault AND type:"Login')
    assert exc.value.position == 21


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("in:my_vault", Atom(Category.VAULT, None)),
        ('in:org:"Acme"', Atom(Category.VAULT, "Acme")),
        ('in:folder:"My folder"', Atom(Category.FOLDER, "My folder")),
        ('in:collection:"Ops"', Atom(Category.COLLECTION, "Ops")),
        ('type:"Login"', Atom(Category.TYPE, "Login")),
        ('has:field:"PIN"', Atom(Category.FIELD, "PIN")),
        ("github", Atom(None, "github")),
    ],
)
def test_recognize_atom(token: str, expected: Atom) -> None:
    """Each recognized form maps to its category and value."""
    assert recognize_atom(token) == expected


def test_recognize_atom_free_text() -> None:
    """Tokens without a keyword prefix are free text."""
    assert recognize_atom("github").is_term
    assert not recognize_atom("in:my_vault").is_term


@pytest.mark.parametrize("token", ["in:org:Acme", "in:my_vaults", "has:", 'type:"A"x', "in:"])
def test_recognize_atom_rejects_keyword_misuse(token: str) -> None:
    """Keyword prefixes must use an exact recognized form."""
    with pytest.raises(FilterSyntaxError):
        recognize_atom(token)


def test_recognize_atom_reports_position() -> None:
    """Error positions are relative to the full input."""
    with pytest.raises(FilterSyntaxError) as exc:
        recognize_atom('type:"A"x', position=10)
    assert exc.value.position == 18
    assert "at position 18" in str(exc.value)


# =============================================================================
# Handler logging
# =============================================================================


def test_handler_logs_rejection(caplog: pytest.LogCaptureFixture) -> None:
    """Rejected filters are logged at DEBUG with the reason."""
    handler = BasicVaultFilterHandler(logging.getLogger("tests.vaultfilter"))
    with caplog.at_level(logging.DEBUG, logger="tests.vaultfilter"):
        result = handler.try_parse('(type:"Login" AND type:"Card")')
    assert result.success is False
    assert "type groups must be joined with OR" in caplog.text
    assert all(record.levelno == logging.DEBUG for record in caplog.records)


def test_handler_does_not_log_success(caplog: pytest.LogCaptureFixture) -> None:
    """Successful parses are silent."""
    handler = BasicVaultFilterHandler(logging.getLogger("tests.vaultfilter"))
    with caplog.at_level(logging.DEBUG, logger="tests.vaultfilter"):
        handler.try_parse('(type:"Login" OR type:"Card")')
    assert caplog.records == []


def test_handler_matches_module_functions() -> None:
    """A handler instance behaves like the module-level helpers."""
    handler = BasicVaultFilterHandler()
    basic_filter = BasicFilter(vaults=[None], fields=["PIN"])
    assert handler.to_filter(basic_filter) == to_filter(basic_filter)
    assert handler.try_parse(to_filter(basic_filter)) == try_parse(to_filter(basic_filter))
