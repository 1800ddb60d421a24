"""
Evaluator tests for SLANG
"""

import pytest
from error_handling import SlangRuntimeError
from stdlib import make_value, make_unit
from context import create_global_context


def num(n):
  return make_value(n, "Number")


def text(s):
  return make_value(s, "String")


def boolean(b):
  return make_value(b, "Boolean")


def number_list(*items):
  return make_value([num(n) for n in items], "List")


class TestArithmetic:
  """Operators on numbers, strings and lists"""

  def test_definition_and_use(self, run):
    assert run("let x = 5; x + 2") == num(7)

  def test_left_associative_subtraction(self, run):
    assert run("10 - 3 - 2") == num(5)

  def test_precedence(self, run):
    assert run("2 * 3 + 4 * 5") == num(26)

  def test_division_and_modulo(self, run):
    assert run("7 / 2") == num(3.5)
    assert run("7 % 3") == num(1)

  def test_unary(self, run):
    assert run("-(3) + +2") == num(-1)
    assert run("not true") == boolean(False)

  def test_concatenation(self, run):
    assert run("\"ab\" + \"cd\"") == text("abcd")
    assert run("[1] + [2, 3]") == number_list(1, 2, 3)

  def test_comparison_and_logic(self, run):
    assert run("1 < 2 and 2 <= 2 and not (3 > 4)") == boolean(True)
    assert run("\"a\" < \"b\" or false") == boolean(True)

  def test_equality_across_types(self, run):
    assert run("1 == \"1\"") == boolean(False)
    assert run("[1, 2] == [1, 2]") == boolean(True)
    assert run("{a: 1} != {a: 2}") == boolean(True)

  def test_type_mismatch(self, run):
    with pytest.raises(SlangRuntimeError, match="Cannot add Number and String"):
      run("1 + \"a\"")

  def test_logic_needs_booleans(self, run):
    with pytest.raises(SlangRuntimeError, match="Cannot and Number and Boolean"):
      run("1 and true")

  def test_division_by_zero(self, run):
    with pytest.raises(SlangRuntimeError, match="Division by zero"):
      run("1 / 0")


class TestScoping:
  """Layered contexts for blocks"""

  def test_block_writes_outer_variable(self, run):
    assert run("let x = 1; { x = 2; }; x") == num(2)

  def test_block_locals_are_dropped(self, run):
    with pytest.raises(SlangRuntimeError, match="Variable 'y' is not defined"):
      run("{ let y = 2; }; y")

  def test_shadowing(self, run):
    assert run("let x = 1; { let x = 5; x = 6; }; x") == num(1)

  def test_redefinition(self, run):
    with pytest.raises(SlangRuntimeError, match="Variable 'x' is already defined"):
      run("let x = 1; let x = 2;")

  def test_redefinition_in_inner_block_is_allowed(self, run):
    assert run("let x = 1; { let x = 2; x }") == num(2)

  def test_undefined_variable(self, run):
    with pytest.raises(SlangRuntimeError, match="Variable 'nope' is not defined"):
      run("nope + 1")

  def test_assignment_needs_definition(self, run):
    with pytest.raises(SlangRuntimeError, match="Variable 'x' is not defined"):
      run("x = 1;")

  def test_values_are_copied(self, run):
    assert run("let a = [1]; let b = a; b[0] = 2; a") == number_list(1)


class TestBlockValues:
  """Implicit return and the trailing semicolon"""

  def test_implicit_return(self, run):
    assert run("{ 1; 2 }") == num(2)

  def test_trailing_semicolon_gives_unit(self, run):
    assert run("{ 2; }") == make_unit()

  def test_program_value(self, run):
    assert run("let x = 3;") == make_unit()

  def test_top_level_return(self, run, capsys):
    assert run("return 3; print(1);") == num(3)
    assert capsys.readouterr().out == ""


class TestFunctions:
  """Closures, calls and recursion"""

  def test_call(self, run):
    assert run("let add = |a, b| a + b; add(2, 3)") == num(5)

  def test_immediate_call(self, run):
    assert run("(|a| a * 2)(4)") == num(8)

  def test_parameters_are_local(self, run):
    assert run("let f = |a| { a = a + 1; a }; f(5)") == num(6)
    assert run("let g = |a| { a = a + 1; a }; let a = 5; g(a); a") == num(5)

  def test_globals_are_visible(self, run):
    assert run("let k = 10; let f = |x| x + k; f(1)") == num(11)

  def test_globals_are_not_written_back(self, run):
    assert run("let k = 1; let f = || { k = 2; }; f(); k") == num(1)

  def test_nested_global_writes_stay_local(self, run):
    assert run("let xs = [1, 2]; let f = || { xs[0] = 9; xs[0] }; f() + xs[0]") == num(10)

  def test_block_write_to_global_inside_call(self, run):
    code = "let xs = [1]; let f = || { { xs[0] = 5; }; xs[0] += 1; xs[0] }; f() * 10 + xs[0]"
    assert run(code) == num(61)

  def test_call_context_shares_globals_until_written(self):
    outer = create_global_context()
    outer.define_var("xs", number_list(1, 2))
    inner = outer.create_fn_context()
    assert inner.try_get_var("xs") is outer.try_get_var("xs")
    bindings, name = inner.get_slot("xs", for_write=True)
    bindings[name]["value"][0] = num(9)
    assert outer.get_var("xs") == number_list(1, 2)
    assert inner.get_var("xs") == make_value([num(9), num(2)], "List")

  def test_no_lexical_capture(self, run):
    with pytest.raises(SlangRuntimeError, match="Variable 'y' is not defined"):
      run("let make = || { let y = 1; |x| x + y }; let g = make(); g(1)")

  def test_recursion(self, run):
    assert run("let fact = |n| if n <= 1 { 1 } else { n * fact(n - 1) }; fact(5)") == num(120)

  def test_recursion_in_block(self, run):
    code = "{ let fib = |n| if n < 2 { n } else { fib(n - 1) + fib(n - 2) }; fib(10) }"
    assert run(code) == num(55)

  def test_return(self, run):
    assert run("let f = |x| { if x > 0 { return 1; }; 2 }; f(5) + f(-1)") == num(3)

  def test_missing_function(self, run):
    with pytest.raises(SlangRuntimeError, match="Function 'nope' does not exist"):
      run("nope(1)")

  def test_not_a_function(self, run):
    with pytest.raises(SlangRuntimeError, match="'x' is not a function"):
      run("let x = 1; x()")

  def test_arity(self, run):
    with pytest.raises(SlangRuntimeError, match="expects 1 arguments, got 2"):
      run("let f = |a| a; f(1, 2)")


class TestLoops:
  """while, for, break and continue"""

  def test_while(self, run):
    assert run("let i = 0; let s = 0; while i < 5 { i += 1; s += i; }; s") == num(15)

  def test_break_value(self, run):
    assert run("let i = 0; while true { i += 1; if i == 3 { break i * 10; }; }") == num(30)

  def test_loop_without_break_is_unit(self, run):
    assert run("let i = 0; while i < 2 { i += 1; }") == make_unit()

  def test_continue(self, run):
    code = "let s = 0; for x in [1, 2, 3, 4] { if x % 2 == 0 { continue; }; s += x; }; s"
    assert run(code) == num(4)

  def test_for_variable_is_local(self, run):
    with pytest.raises(SlangRuntimeError, match="Variable 'x' is not defined"):
      run("for x in [1] {}; x")

  def test_for_iterates_over_a_copy(self, run):
    assert run("let xs = [1, 2]; for x in xs { x = 5; xs[0] = 9; }; xs") == number_list(9, 2)

  def test_for_needs_a_list(self, run):
    with pytest.raises(SlangRuntimeError, match="for loop expects a List, got Number"):
      run("for x in 5 {}")

  def test_condition_must_be_boolean(self, run):
    with pytest.raises(SlangRuntimeError, match="condition is not a boolean"):
      run("if 1 { 2 }")
    with pytest.raises(SlangRuntimeError, match="condition is not a boolean"):
      run("while 1 {}")

  def test_else_if(self, run):
    code = "let x = 5; if x < 3 { \"small\" } else if x < 10 { \"medium\" } else { \"large\" }"
    assert run(code) == text("medium")

  def test_if_without_else_is_unit(self, run):
    assert run("if false { 1 }") == make_unit()

  def test_break_outside_loop(self, run):
    with pytest.raises(SlangRuntimeError, match="'break' outside of a loop"):
      run("break;")

  def test_break_does_not_cross_calls(self, run):
    with pytest.raises(SlangRuntimeError, match="'break' outside of a loop"):
      run("let f = || { break; }; for x in [1] { f(); }")

  def test_continue_outside_loop(self, run):
    with pytest.raises(SlangRuntimeError, match="'continue' outside of a loop"):
      run("continue;")


class TestContainers:
  """Lists, objects and references"""

  def test_index(self, run):
    assert run("let xs = [1, 2, 3]; xs[1]") == num(2)

  def test_index_assignment(self, run):
    assert run("let xs = [1, 2, 3]; xs[1] = 20; xs") == number_list(1, 20, 3)

  def test_compound_index_assignment(self, run):
    assert run("let xs = [1]; xs[0] += 4; xs[0]") == num(5)

  def test_out_of_bounds(self, run):
    with pytest.raises(SlangRuntimeError, match="out of bounds"):
      run("let xs = [1, 2, 3]; xs[3]")

  def test_negative_index(self, run):
    with pytest.raises(SlangRuntimeError, match="non-negative integer"):
      run("let xs = [1]; xs[-1]")

  def test_infinite_index(self, run):
    with pytest.raises(SlangRuntimeError, match="non-negative integer"):
      run("let b = 1.0; let i = 0; while i < 400 { b *= 10; i += 1; }; [1][b]")

  def test_nan_index(self, run):
    with pytest.raises(SlangRuntimeError, match="non-negative integer"):
      run("let b = 1.0; let i = 0; while i < 400 { b *= 10; i += 1; }; [1][b - b]")

  def test_index_into_non_list(self, run):
    with pytest.raises(SlangRuntimeError, match="Cannot index into Number"):
      run("let n = 1; n[0]")

  def test_nested_assignment(self, run):
    assert run("let o = {a: [1, {b: 2}]}; o.a[1].b = 5; o.a[1].b") == num(5)

  def test_missing_field(self, run):
    with pytest.raises(SlangRuntimeError, match="Object has no field 'b'"):
      run("let o = {a: 1}; o.b")

  def test_assignment_to_missing_field(self, run):
    with pytest.raises(SlangRuntimeError, match="Object has no field 'b'"):
      run("let o = {a: 1}; o.b = 2;")

  def test_read_through_literal(self, run):
    assert run("[1, 2, 3][1]") == num(2)
    assert run("{a: 1}.a") == num(1)

  def test_write_through_literal(self, run):
    with pytest.raises(SlangRuntimeError, match="Can only assign through"):
      run("[1, 2][0] = 3;")


class TestPrint:
  """The built-in print function"""

  def test_print_values(self, run, capsys):
    assert run("print(1, \"a\", [1, \"b\"], true, {k: 2.5});") == make_unit()
    assert capsys.readouterr().out == "1 a [1, \"b\"] true {k: 2.5}\n"

  def test_print_nothing(self, run, capsys):
    run("print();")
    assert capsys.readouterr().out == "\n"

  def test_print_function_and_unit(self, run, capsys):
    run("print(|a, b| a, ());")
    assert capsys.readouterr().out == "<function |a, b|> ()\n"

  def test_integral_float(self, run, capsys):
    run("print(1.5 + 1.5);")
    assert capsys.readouterr().out == "3\n"

  def test_print_in_loop(self, run, capsys):
    run("for x in [1, 2] { print(\"x =\", x); };")
    assert capsys.readouterr().out == "x = 1\nx = 2\n"


class TestInterpreterSession:
  """The interpreter keeps its context between runs"""

  def test_persistent_context(self, parser, interpreter):
    interpreter.run(parser.parse_string("let x = 1;"))
    assert interpreter.run(parser.parse_string("x + 1")) == num(2)
    assert set(interpreter.bindings()) == {"x"}

  def test_evaluate_expression(self, parser, interpreter):
    assert interpreter.evaluate(parser.parse_expression("[1, 2][0]")) == num(1)

  def test_reset(self, parser, interpreter):
    interpreter.run(parser.parse_string("let x = 1;"))
    interpreter.reset()
    assert interpreter.bindings() == {}
