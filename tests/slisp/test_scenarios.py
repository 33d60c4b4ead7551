"""End-to-end tests: source text in, value and heap out."""

import pytest

from slisp import Slisp, SlispCompileError, SlispNumber, SlispBoolean, SlispReference, SlispFunction, SlispNil, SlispCons


class TestNumbers:
    """Test number literals."""

    @pytest.mark.parametrize("source,expected", [
        ("5", 5),
        ("-5", -5),
        ("0", 0),
        ("+7", 7),
    ])
    def test_number_literal(self, slisp, source, expected):
        result = slisp.run(source)
        assert result.value == SlispNumber(expected)


class TestArithmetic:
    """Test + and - including variadic, left-associative chains."""

    @pytest.mark.parametrize("source,expected", [
        ("(+ 5 6)", 11),
        ("(- 10 6)", 4),
        ("(+ (+ 3 2) 6)", 11),
        ("(+ 5 6 7)", 18),
        ("(- 10 2 1)", 7),
        ("(- 1 10)", -9),
        ("(+ -3 -4)", -7),
    ])
    def test_arithmetic(self, slisp, source, expected):
        assert slisp.run(source).value == SlispNumber(expected)

    def test_deeply_nested_addition(self, slisp, helpers):
        expression = helpers.build_nested_expression("+", 50)
        helpers.assert_python_result(slisp, expression, 51)

    def test_less_than(self, slisp):
        assert slisp.run("(< 1 2)").value == SlispBoolean(True)
        assert slisp.run("(< 2 1)").value == SlispBoolean(False)
        assert slisp.run("(< 2 2)").value == SlispBoolean(False)


class TestLet:
    """Test let bindings."""

    def test_two_bindings(self, slisp):
        assert slisp.run("(let ((x 5) (y 6)) in (+ x y))").value == SlispNumber(11)

    def test_sequential_binding_sees_earlier_declarations(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(let ((x 5) (y (+ x 1))) in (+ x y))", 11)

    def test_shadowing(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(let ((x 1)) in (let ((x 2)) in x))", 2)

    def test_outer_binding_visible_after_inner_let(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(let ((x 1)) in (+ (let ((x 10)) in x) x))", 11)

    def test_sibling_lets(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(+ (let ((a 1)) in a) (let ((b 2)) in b))", 3)

    def test_let_inside_if_branch_then_later_binding(self, slisp, helpers):
        source = "(let ((a (if false (let ((x 1)) in x) 5))) in (let ((b 7)) in (+ a b)))"
        helpers.assert_python_result(slisp, source, 12)

    def test_let_inside_then_branch_taken(self, slisp, helpers):
        source = "(let ((a (if true (let ((x 1)) in x) 5))) in (let ((b 7)) in (+ a b)))"
        helpers.assert_python_result(slisp, source, 8)


class TestIf:
    """Test conditionals."""

    def test_if_false(self, slisp):
        assert slisp.run("(if false (- 10 3) (+ 2 3))").value == SlispNumber(5)

    def test_if_true(self, slisp):
        assert slisp.run("(if true (- 10 3) (+ 2 3))").value == SlispNumber(7)

    def test_if_with_comparison(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(if (< 1 2) 100 200)", 100)

    def test_nested_if(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(if false 1 (if true 2 3))", 2)

    def test_boolean_results(self, slisp, helpers):
        helpers.assert_evaluates_to(slisp, "true", "true")
        helpers.assert_evaluates_to(slisp, "(if true false true)", "false")


class TestCons:
    """Test list construction and the heap."""

    def test_cons_onto_nil(self, slisp):
        result = slisp.run("(cons 5 ())")
        assert result.heap == [SlispNil(), SlispCons(SlispNumber(5), SlispReference(0))]
        assert result.value == SlispReference(1)

    def test_empty_list_is_nil_reference(self, slisp):
        result = slisp.run("()")
        assert result.value == SlispReference(0)
        assert result.heap == [SlispNil()]

    def test_list_of_two(self, slisp, helpers):
        result = slisp.run("(cons 1 (cons 2 ()))")
        assert result.heap == [
            SlispNil(),
            SlispCons(SlispNumber(2), SlispReference(0)),
            SlispCons(SlispNumber(1), SlispReference(1)),
        ]
        helpers.assert_evaluates_to(slisp, "(cons 1 (cons 2 ()))", "(1 2)")
        helpers.assert_python_result(slisp, "(cons 1 (cons 2 ()))", [1, 2])

    def test_dotted_pair(self, slisp, helpers):
        helpers.assert_evaluates_to(slisp, "(cons 1 2)", "(1 . 2)")
        helpers.assert_python_result(slisp, "(cons 1 2)", (1, 2))

    def test_nested_list(self, slisp, helpers):
        helpers.assert_evaluates_to(slisp, "(cons (cons 1 ()) (cons true ()))", "((1) true)")

    def test_long_list_converts_to_python(self, slisp):
        source = "(let build (n) (if (< n 1) () (cons n (build (- n 1)))) in (build 990))"
        assert slisp.evaluate(source) == list(range(990, 0, -1))

    def test_long_list_formats(self, slisp):
        source = "(let build (n) (if (< n 1) () (cons n (build (- n 1)))) in (build 990))"
        formatted = slisp.evaluate_and_format(source)
        assert formatted.startswith("(990 989 988 ")
        assert formatted.endswith(" 2 1)")

    def test_empty_list_formats(self, slisp, helpers):
        helpers.assert_evaluates_to(slisp, "()", "()")
        helpers.assert_python_result(slisp, "()", [])


class TestFunctions:
    """Test function definitions and calls."""

    def test_two_argument_function(self, slisp):
        assert slisp.run("(let add (x y) (+ x y) in (add 40 2))").value == SlispNumber(42)

    def test_fibonacci(self, slisp):
        source = "(let fib (n) (if (< n 2) n (+ (fib (- n 1)) (fib (- n 2)))) in (fib 8))"
        assert slisp.run(source).value == SlispNumber(21)

    def test_argument_order(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(let sub (a b) (- a b) in (sub 10 3))", 7)

    def test_zero_argument_function(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(let five () 5 in (five))", 5)

    def test_function_called_twice(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(let inc (x) (+ x 1) in (+ (inc 1) (inc 10)))", 13)

    def test_function_with_local_bindings(self, slisp, helpers):
        source = "(let f (x) (let ((y (+ x 1)) (z (+ x 2))) in (+ y z)) in (f 10))"
        helpers.assert_python_result(slisp, source, 23)

    def test_nested_function_definition(self, slisp, helpers):
        source = "(let outer (n) (let inner (m) (+ m 1) in (inner n)) in (outer 41))"
        helpers.assert_python_result(slisp, source, 42)

    def test_function_building_list(self, slisp, helpers):
        source = "(let range (n) (if (< n 1) () (cons n (range (- n 1)))) in (range 3))"
        helpers.assert_evaluates_to(slisp, source, "(3 2 1)")

    def test_recursive_sum_of_list(self, slisp, helpers):
        source = (
            "(let count (n acc) (if (< n 1) acc (count (- n 1) (+ acc n))) in "
            "(count 100 0))"
        )
        helpers.assert_python_result(slisp, source, 5050)

    def test_function_value_result(self, slisp):
        result = slisp.evaluate("(let f (x) x in f)")
        assert isinstance(result, SlispFunction)
        assert result.entry == 4

    def test_function_passed_as_argument(self, slisp, helpers):
        source = (
            "(let apply (g v) (g v) in "
            "(let double (x) (+ x x) in (apply double 21)))"
        )
        helpers.assert_python_result(slisp, source, 42)

    def test_locals_after_exact_argument_count(self, slisp, helpers):
        helpers.assert_python_result(slisp, "(let f (x) (let ((z 5)) in (+ x z)) in (f 1))", 6)

    @pytest.mark.parametrize("source", [
        "(let f (x) (let ((z 5)) in z) in (f 1 2 3))",
        "(let add (x y) (+ x y) in (add 1))",
        "(let five () 5 in (five 1))",
        "(let fib (n) (if (< n 2) n (fib (- n 1) 0)) in (fib 3))",
    ])
    def test_wrong_argument_count_is_rejected(self, slisp, source):
        with pytest.raises(SlispCompileError, match="called with"):
            slisp.evaluate(source)

    def test_comments_are_ignored(self, slisp, helpers):
        source = """
        ; add two numbers
        (let add (x y) (+ x y)   ; body
         in (add 1 2))
        """
        helpers.assert_python_result(slisp, source, 3)


class TestProperties:
    """Determinism and call/return accounting."""

    def test_runs_are_deterministic(self):
        source = "(let build (n) (if (< n 1) () (cons n (build (- n 1)))) in (build 4))"
        first = Slisp().run(source)
        second = Slisp().run(source)
        assert first == second
        assert len(first.heap) == 5

    def test_same_instance_is_deterministic(self, slisp):
        source = "(cons 1 (cons 2 ()))"
        assert slisp.run(source) == slisp.run(source)

    def test_returns_never_exceed_calls(self, slisp):
        from slisp import SlispVM

        program = slisp.compile("(let fib (n) (if (< n 2) n (+ (fib (- n 1)) (fib (- n 2)))) in (fib 8))")
        vm = SlispVM()
        result = vm.execute(program)
        assert result.value == SlispNumber(21)
        assert vm.call_count > 0
        assert vm.return_count <= vm.call_count + 1
        assert vm.return_count == vm.call_count
        assert len(vm.frames) == 1
