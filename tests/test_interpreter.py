"""Tests for the tree-walking backend."""

from __future__ import annotations

import math

import pytest

from kaleido.ast_nodes import Binary, Function, Number, Prototype, Unary, Variable
from kaleido.config import KaleidoConfig
from kaleido.errors import CompileError
from kaleido.interpreter import Interpreter
from tests.helpers import run, run_fails, run_ok


def anon(body) -> Function:
    return Function(Prototype("__anon_expr", []), body)


class TestArithmetic:
    def test_number(self):
        assert run_ok("4") == [4.0]

    def test_precedence(self):
        assert run_ok("1 + 2 * 3") == [7.0]

    def test_left_associative_subtraction(self):
        assert run_ok("10 - 4 - 3") == [3.0]

    def test_division(self):
        assert run_ok("7 / 2") == [3.5]

    def test_division_by_zero(self):
        assert run_ok("1 / 0; 0 - 1 / 0") == [math.inf, -math.inf]

    def test_zero_by_zero_is_nan(self):
        assert math.isnan(run_ok("0 / 0")[0])

    @pytest.mark.parametrize("source, expected", [
        ("1 < 2", 1.0),
        ("2 < 1", 0.0),
        ("2 > 1", 1.0),
        ("1 > 2", 0.0),
        ("1 < 1", 0.0),
    ])
    def test_comparisons(self, source, expected):
        assert run_ok(source) == [expected]

    def test_unordered_comparisons(self):
        interp = Interpreter()
        nan = Binary("/", Number(0.0), Number(0.0))
        assert interp.evaluate(anon(Binary("<", nan, Number(1.0)))) == 1.0
        assert interp.evaluate(anon(Binary(">", nan, Number(1.0)))) == 0.0


class TestFunctions:
    def test_define_and_call(self):
        assert run_ok("def double(x) x * 2; double(21)") == [42.0]

    def test_recursion(self):
        source = """
        def fib(n) if n < 3 then 1 else fib(n - 1) + fib(n - 2);
        fib(10)
        """
        assert run_ok(source) == [55.0]

    def test_forward_reference_needs_extern(self):
        source = "extern g(x); def f(x) g(x) + 1; def g(x) x * 10; f(2)"
        assert run_ok(source) == [21.0]

    def test_undeclared_callee_rejects_definition(self):
        result = run_fails("def f(x) g(x); def g(x) x; f(1)", "E301")
        assert [o.ok for o in result.outcomes] == [False, True, False]

    def test_rejected_redefinition_keeps_previous(self):
        source = "def f(x) x; def f(x) nope; f(7)"
        result = run_fails(source, "E300")
        assert result.values == [7.0]

    def test_rejected_definition_leaves_registry(self):
        interp = Interpreter()
        with pytest.raises(CompileError) as exc:
            interp.define(Function(Prototype("k", ["a"]), Variable("b")))
        assert exc.value.diagnostics[0].code == "E300"
        assert "k" not in interp.registry
        assert "k" not in interp.functions

    def test_body_checked_for_arity(self):
        run_fails("def g(a b) a; def f(x) g(x)", "E302")

    def test_for_variable_bound_in_body_only(self):
        assert run_ok("def f(n) for i = 0, i < n in i; f(2)") == [0.0]
        run_fails("def h(n) (for i = 0, i < n in i) + i", "E300")

    def test_unreached_branch_is_still_checked(self):
        run_fails("if 0 then nope() else 1", "E301")

    def test_redefinition_replaces(self):
        assert run_ok("def f() 1; def f() 2; f()") == [2.0]

    def test_parameters_do_not_leak(self):
        run_fails("def f(x) x; f(1); x", "E300")

    def test_unknown_variable(self):
        run_fails("y + 1", "E300")

    def test_unknown_function(self):
        run_fails("nope(1)", "E301")

    def test_wrong_arity(self):
        run_fails("def f(a b) a; f(1)", "E302")

    def test_recursion_limit(self):
        run_fails("def loop(x) loop(x); loop(1)", "E304")

    def test_registry_records_definitions(self):
        interp = Interpreter()
        interp.define(Function(Prototype("k", []), Number(3.0)))
        assert interp.registry.lookup("k") == Prototype("k", [])


class TestExterns:
    def test_native_math(self):
        assert run_ok("extern sqrt(x); sqrt(16)") == [4.0]

    def test_native_two_args(self):
        assert run_ok("extern pow(x y); pow(2, 10)") == [1024.0]

    def test_native_requires_extern(self):
        run_fails("sin(0)", "E301")

    def test_extern_without_definition(self):
        run_fails("extern mystery(x); mystery(1)", "E301")

    def test_extern_arity_checked_at_call(self):
        run_fails("extern sin(x); sin(1, 2)", "E302")

    def test_extern_arity_must_match_native(self):
        run_fails("extern sin(a b); sin(1, 2)", "E302")

    def test_extern_then_define(self):
        assert run_ok("extern f(x); def f(x) x + 1; f(1)") == [2.0]

    def test_log_of_zero(self):
        assert run_ok("extern log(x); log(0)") == [-math.inf]

    def test_domain_error_is_nan(self):
        assert math.isnan(run_ok("extern sqrt(x); sqrt(0 - 1)")[0])

    def test_printd_output(self):
        _, out = run("extern printd(x); printd(1.5)")
        assert out == "1.500000\n"

    def test_putchard_output(self):
        _, out = run("extern putchard(c); putchard(72); putchard(105)")
        assert out == "Hi"


class TestControlFlow:
    def test_if_true(self):
        assert run_ok("if 1 then 10 else 20") == [10.0]

    def test_if_false(self):
        assert run_ok("if 0 then 10 else 20") == [20.0]

    def test_if_nan_is_false(self):
        assert run_ok("if 0 / 0 then 10 else 20") == [20.0]

    def test_for_returns_zero(self):
        assert run_ok("for i = 1, i < 3 in i") == [0.0]

    def test_for_runs_body_then_tests_end(self):
        # The end condition sees the value before the step is added.
        _, out = run("extern printd(x); for i = 1, i < 3 in printd(i)")
        assert out == "1.000000\n2.000000\n3.000000\n"

    def test_for_body_runs_at_least_once(self):
        _, out = run("extern putchard(c); for i = 0, 0 in putchard(65)")
        assert out == "A"

    def test_for_with_step(self):
        _, out = run("extern printd(x); for i = 0, i < 4, 2 in printd(i)")
        assert out == "0.000000\n2.000000\n4.000000\n"

    def test_for_restores_shadowed_variable(self):
        source = """
        extern printd(x);
        def f(i) (for i = 10, i < 11 in printd(i)) + i;
        f(5)
        """
        result, out = run(source)
        assert result.values == [5.0]
        assert out == "10.000000\n11.000000\n"

    def test_for_variable_out_of_scope_after_loop(self):
        run_fails("(for j = 0, 0 in j) + j", "E300")


class TestUserOperators:
    def test_binary_operator(self):
        source = """
        def binary| 5 (LHS RHS) if LHS then 1 else if RHS then 1 else 0;
        0 | 1;
        0 | 0
        """
        assert run_ok(source) == [1.0, 0.0]

    def test_binary_operator_precedence(self):
        source = "def binary^ 50 (a b) a * 10 + b; 1 + 2 ^ 3"
        assert run_ok(source) == [24.0]

    def test_unary_operator(self):
        source = "def unary!(v) if v then 0 else 1; !0; !5"
        assert run_ok(source) == [1.0, 0.0]

    def test_unary_minus(self):
        assert run_ok("def unary-(v) 0 - v; -3 * 2") == [-6.0]

    def test_builtin_operator_cannot_be_replaced(self):
        # The precedence changes but '+' keeps its meaning.
        assert run_ok("def binary+ 60 (a b) a * b; 2 * 3 + 4") == [14.0]

    def test_undeclared_unary_fails_at_evaluation(self):
        run_fails("~1", "E303")

    def test_binary_operator_without_function(self):
        config = KaleidoConfig(operators={"%": 40})
        result, _ = run("5 % 3", config)
        assert [d.code for d in result.diagnostics] == ["E303"]

    def test_operator_function_callable_by_name(self):
        interp = Interpreter()
        interp.define(Function(
            Prototype("unary~", ["x"]),
            Binary("*", Number(2.0), Number(3.0)),
        ))
        assert interp.evaluate(anon(Unary("~", Number(0.0)))) == 6.0

    def test_resolution_error_carries_span(self):
        result = run_fails("1 +\n  missing", "E300")
        span = result.diagnostics[0].span
        assert (span.start_line, span.start_col) == (2, 3)


class TestEvaluateDirect:
    def test_errors_raise_compile_error(self):
        with pytest.raises(CompileError) as exc:
            Interpreter().evaluate(anon(Unary("?", Number(1.0))))
        assert exc.value.diagnostics[0].code == "E303"
