from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import pytest

from fluid.lexer_rd import LexError, tokenize
from fluid.token_types import TT


@dataclass(frozen=True)
class Case:
    """Unified lexer case payload."""

    name: str
    source: str
    expected: Optional[Tuple[Tuple[TT, object], ...]] = None
    expected_types: Optional[Tuple[TT, ...]] = None
    exc: Optional[type[Exception]] = None
    msg: Optional[str] = None
    err_line: Optional[int] = None
    err_col: Optional[int] = None


BASIC_TOKEN_CASES: List[Case] = [
    Case("number-int", "123", expected=((TT.NUMBER, "123"),)),
    Case("number-suffixed", "5i32", expected=((TT.NUMBER, "5i32"),)),
    Case("number-float-suffixed", "1.5f64", expected=((TT.NUMBER, "1.5f64"),)),
    Case("number-underscores", "1_000_000u64", expected=((TT.NUMBER, "1_000_000u64"),)),
    Case("number-hex", "0xff_u8", expected=((TT.NUMBER, "0xff_u8"),)),
    Case("number-exponent", "2.5e-3", expected=((TT.NUMBER, "2.5e-3"),)),
    Case("ident-snake", "unwrap_or_default", expected=((TT.IDENT, "unwrap_or_default"),)),
    Case("ident-raw", "r#match", expected=((TT.IDENT, "r#match"),)),
    Case("string-double", '"hello"', expected=((TT.STRING, '"hello"'),)),
    Case("string-escape", r'"a\"b"', expected=((TT.STRING, r'"a\"b"'),)),
    Case("string-byte", 'b"raw"', expected=((TT.STRING, 'b"raw"'),)),
    Case("raw-string", 'r"C:\\dir"', expected=((TT.RAW_STRING, 'r"C:\\dir"'),)),
    Case("raw-hash-string", 'r#"say "hi""#', expected=((TT.RAW_STRING, 'r#"say "hi""#'),)),
    Case("char", "'x'", expected=((TT.CHAR, "'x'"),)),
    Case("char-escape", r"'\n'", expected=((TT.CHAR, r"'\n'"),)),
    Case("char-quote-escape", r"'\''", expected=((TT.CHAR, r"'\''"),)),
    Case("byte-char", "b'a'", expected=((TT.CHAR, "b'a'"),)),
    Case("lifetime", "'static", expected=((TT.LIFETIME, "'static"),)),
    Case("keyword-as", "as", expected=((TT.AS, "as"),)),
    Case("keyword-move", "move", expected=((TT.KEYWORD, "move"),)),
    Case("self-is-ident", "self", expected=((TT.IDENT, "self"),)),
]

OPERATOR_CASES: List[Case] = [
    Case("pathsep", "::", expected_types=(TT.PATHSEP,)),
    Case("arrow", "->", expected_types=(TT.ARROW,)),
    Case("fatarrow", "=>", expected_types=(TT.FATARROW,)),
    Case("eq", "==", expected_types=(TT.EQ,)),
    Case("neq", "!=", expected_types=(TT.NEQ,)),
    Case("lte", "<=", expected_types=(TT.LTE,)),
    Case("shl-assign", "<<=", expected_types=(TT.OPASSIGN,)),
    Case("shr", ">>", expected_types=(TT.SHR,)),
    Case("and", "&&", expected_types=(TT.AND,)),
    Case("or", "||", expected_types=(TT.OR,)),
    Case("range", "..", expected_types=(TT.DOTDOT,)),
    Case("range-inclusive", "..=", expected_types=(TT.DOTDOTEQ,)),
    Case("plus-assign", "+=", expected_types=(TT.OPASSIGN,)),
    Case("pipe", "|", expected_types=(TT.PIPE,)),
    Case("qmark", "?", expected_types=(TT.QMARK,)),
    Case("not", "!", expected_types=(TT.NOT,)),
]

SEQUENCE_CASES: List[Case] = [
    Case(
        "step-call",
        "clamp(5, 100);",
        expected_types=(TT.IDENT, TT.LPAR, TT.NUMBER, TT.COMMA, TT.NUMBER, TT.RPAR, TT.SEMI),
    ),
    Case(
        "operator-step",
        "[as u8];",
        expected_types=(TT.LSQB, TT.AS, TT.IDENT, TT.RSQB, TT.SEMI),
    ),
    Case(
        "method-on-int",
        "5.to_string()",
        expected_types=(TT.NUMBER, TT.DOT, TT.IDENT, TT.LPAR, TT.RPAR),
    ),
    Case(
        "range-of-ints",
        "1..2",
        expected_types=(TT.NUMBER, TT.DOTDOT, TT.NUMBER),
    ),
    Case(
        "tuple-field",
        "x.0",
        expected_types=(TT.IDENT, TT.DOT, TT.NUMBER),
    ),
    Case(
        "closure",
        "|b| b + 1",
        expected_types=(TT.PIPE, TT.IDENT, TT.PIPE, TT.IDENT, TT.PLUS, TT.NUMBER),
    ),
    Case(
        "line-comment-skipped",
        "a // trailing ( unbalanced\nb",
        expected_types=(TT.IDENT, TT.IDENT),
    ),
    Case(
        "nested-block-comment-skipped",
        "a /* outer /* inner */ still */ b",
        expected_types=(TT.IDENT, TT.IDENT),
    ),
    Case(
        "lifetime-in-generic",
        "Foo<'a>",
        expected_types=(TT.IDENT, TT.LT, TT.LIFETIME, TT.GT),
    ),
]

ERROR_CASES: List[Case] = [
    Case("unterminated-string", '"abc', exc=LexError, msg="Unterminated string", err_line=1, err_col=1),
    Case("unterminated-raw", 'x r#"abc"', exc=LexError, msg="Unterminated raw string", err_line=1, err_col=3),
    Case("unterminated-comment", "a\n/* open", exc=LexError, msg="Unterminated block comment", err_line=2, err_col=1),
    Case("unterminated-char", "'\\n", exc=LexError, msg="Unterminated char literal", err_line=1, err_col=1),
    Case("unexpected-char", "a\n  `b`", exc=LexError, msg="Unexpected character", err_line=2, err_col=3),
]


def _significant(source: str):
    return [tok for tok in tokenize(source) if tok.type != TT.EOF]


@pytest.mark.parametrize("case", [pytest.param(c, id=c.name) for c in BASIC_TOKEN_CASES])
def test_basic_tokens(case: Case) -> None:
    tokens = _significant(case.source)
    assert tuple((tok.type, tok.value) for tok in tokens) == case.expected


@pytest.mark.parametrize(
    "case", [pytest.param(c, id=c.name) for c in OPERATOR_CASES + SEQUENCE_CASES]
)
def test_token_types(case: Case) -> None:
    tokens = _significant(case.source)
    assert tuple(tok.type for tok in tokens) == case.expected_types


@pytest.mark.parametrize("case", [pytest.param(c, id=c.name) for c in ERROR_CASES])
def test_lex_errors(case: Case) -> None:
    assert case.exc is not None
    with pytest.raises(case.exc) as exc_info:
        tokenize(case.source)

    err = exc_info.value
    assert case.msg is not None and case.msg in str(err)
    assert err.line == case.err_line
    assert err.column == case.err_col


def test_offsets_slice_source_exactly() -> None:
    source = 'clamp( 5 ,\n  "x y" )'
    for tok in _significant(source):
        assert source[tok.start:tok.end] == tok.value


def test_positions_track_lines() -> None:
    tokens = _significant("a\n  b\n\tc")
    assert [(tok.value, tok.line, tok.column) for tok in tokens] == [
        ("a", 1, 1),
        ("b", 2, 3),
        ("c", 3, 2),
    ]


def test_eof_is_last() -> None:
    tokens = tokenize("")
    assert len(tokens) == 1
    assert tokens[0].type == TT.EOF
