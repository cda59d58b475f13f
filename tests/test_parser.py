from __future__ import annotations

from textwrap import dedent

import pytest
from lark import Tree

from fluid.parser_rd import parse_steps
from fluid.steps import BlockCall, Expression, OperatorForm, PlainCall
from tests.support.harness import ParseError, classify, parse_invocation


def test_invocation_tree_shape() -> None:
    tree = parse_invocation("Some(123), { unwrap_or_default(); clamp(5, 100); }")

    assert tree.data == "invocation"
    seed, steps = tree.children
    assert isinstance(seed, Tree) and seed.data == "expr"
    assert str(seed.children[0]) == "Some(123)"
    assert [step.data for step in steps.children] == ["plain_call", "plain_call"]


def test_classifies_every_variant() -> None:
    invocation = classify(
        dedent(
            """\
            Example(0), {
                add(15);
                modify() {
                    clamp(20, 50);
                }
                [+ 5];
                [as u8];
            }
            """
        )
    )

    assert invocation.seed == Expression("Example(0)")
    assert invocation.steps == (
        PlainCall("add", (Expression("15"),)),
        BlockCall("modify", (), (PlainCall("clamp", (Expression("20"), Expression("50"))),)),
        OperatorForm(Expression("+ 5")),
        OperatorForm(Expression("as u8")),
    )


def test_empty_block_has_no_steps() -> None:
    assert classify("x, {}").steps == ()


def test_trailing_comma_after_block() -> None:
    assert classify("x, { f(); },").steps == (PlainCall("f"),)


def test_block_call_keeps_leading_args() -> None:
    (step,) = classify("v, { fold(0) { add(1); } }").steps
    assert isinstance(step, BlockCall)
    assert step.leading_args == (Expression("0"),)
    assert step.body == (PlainCall("add", (Expression("1"),)),)


ARG_SLICE_CASES = [
    pytest.param("f(a + b, c);", ("a + b", "c"), id="binary-arg"),
    pytest.param("f(g(1, 2), [3, 4]);", ("g(1, 2)", "[3, 4]"), id="nested-brackets"),
    pytest.param("f(|a, b| a + b);", ("|a, b| a + b",), id="closure-params"),
    pytest.param("f(move |x, y| x, 2);", ("move |x, y| x", "2"), id="move-closure"),
    pytest.param("f(a | b, c);", ("a | b", "c"), id="bitor-not-closure"),
    pytest.param("f(x.await | y, z);", ("x.await | y", "z"), id="bitor-after-await"),
    pytest.param("f(x as Foo<u8> | y, z);", ("x as Foo<u8> | y", "z"), id="bitor-after-cast-generic"),
    pytest.param(
        "f(|x| -> Result<u8,E> { Ok(x) });",
        ("|x| -> Result<u8,E> { Ok(x) }",),
        id="closure-return-type-generic",
    ),
    pytest.param("f(v as Vec<Vec<u8>>, 1);", ("v as Vec<Vec<u8>>", "1"), id="cast-generic-shr"),
    pytest.param("f(x as (u8, u16), 1);", ("x as (u8, u16)", "1"), id="cast-tuple-type"),
    pytest.param("f((a as u8) < b, c);", ("(a as u8) < b", "c"), id="comparison-after-cast-group"),
    pytest.param("f(HashMap::<K, V>::new());", ("HashMap::<K, V>::new()",), id="turbofish-in-arg"),
    pytest.param("f(Vec::<Vec<u8>>::new(), 1);", ("Vec::<Vec<u8>>::new()", "1"), id="shr-closes-generics"),
    pytest.param('f("a, b", \'x\');', ('"a, b"', "'x'"), id="literals-with-commas"),
    pytest.param("f(  spaced  ,\n  lines );", ("spaced", "lines"), id="whitespace-trimmed"),
    pytest.param("f(a /* , */ + b);", ("a /* , */ + b",), id="comment-kept-verbatim"),
    pytest.param("f();", (), id="no-args"),
]


@pytest.mark.parametrize("step_source, expected_args", ARG_SLICE_CASES)
def test_argument_slices(step_source: str, expected_args) -> None:
    (step,) = classify(f"x, {{ {step_source} }}").steps
    assert isinstance(step, PlainCall)
    assert tuple(arg.text for arg in step.args) == expected_args


def test_seed_may_contain_commas_inside_brackets() -> None:
    invocation = classify("foo(1, 2).bar([3, 4]), { baz(); }")
    assert invocation.seed.text == "foo(1, 2).bar([3, 4])"


def test_seed_closure_params_do_not_split() -> None:
    invocation = classify("|a, b| a + b, { call(); }")
    assert invocation.seed.text == "|a, b| a + b"


def test_expression_positions_recorded() -> None:
    invocation = classify("seed,\n{\n    step(arg);\n}")
    (step,) = invocation.steps
    assert isinstance(step, PlainCall)
    assert (step.args[0].line, step.args[0].column) == (3, 10)


def test_parse_steps_bare_block() -> None:
    steps = parse_steps("{ a(); [- 1]; }")
    assert [step.data for step in steps.children] == ["plain_call", "operator_form"]


ERROR_CASES = [
    pytest.param("x", "Expected ',' between the seed", id="missing-block"),
    pytest.param(", { f(); }", "Expected seed expression", id="missing-seed"),
    pytest.param("x, f();", "Expected '{' to open the step block", id="block-not-braced"),
    pytest.param("x, { f() }", "Expected ';' after call to 'f'", id="missing-separator"),
    pytest.param("x, { [+ 1] }", "Expected ';' after operator step", id="operator-missing-separator"),
    pytest.param("x, { f(); ", "Unclosed '{'", id="unclosed-block"),
    pytest.param("x, { f(1; }", "Unmatched '}'", id="unclosed-args"),
    pytest.param("x, { f(1,); }", "Expected argument after ','", id="trailing-arg-comma"),
    pytest.param("x, { f(1,,2); }", "Expected argument", id="empty-arg"),
    pytest.param("x, { parse::<i32>(); }", "turbofish", id="turbofish-rejected"),
    pytest.param("x, { g() {} }", "must contain at least one step", id="empty-nested-block"),
    pytest.param("x, { g() { h(); }; }", "Expected a step, got ';'", id="semi-after-block"),
    pytest.param("x, { []; }", "must not be empty", id="empty-operator"),
    pytest.param("x, { 42; }", "Expected a step, got '42'", id="literal-step"),
    pytest.param("x, { f; }", "Expected '(' after step name 'f'", id="name-without-call"),
    pytest.param("x, { f(a]); }", "Unmatched ']'", id="unmatched-bracket"),
    pytest.param("x, { f((a]); }", "Mismatched ']' for '('", id="mismatched-bracket"),
    pytest.param("x, { f(); } extra", "Unexpected 'extra' after the step block", id="trailing-garbage"),
]


@pytest.mark.parametrize("source, message", ERROR_CASES)
def test_parse_errors(source: str, message: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        classify(source)
    assert message in str(exc_info.value)


def test_parse_error_points_at_offending_token() -> None:
    source = "x, {\n    a();\n    b()\n}"
    with pytest.raises(ParseError) as exc_info:
        parse_invocation(source)

    err = exc_info.value
    assert (err.line, err.column) == (4, 1)
    rendered = err.format_error(source)
    assert rendered.splitlines()[-2:] == ["4 | }", "    ^"]
