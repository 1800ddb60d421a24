"""
SLANG Interpreter
Tree-walking evaluator over the parsed statements
Every eval_* function takes the active Context and mutates it in place;
blocks and calls work on child contexts that are reconciled on exit
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from error_handling import SlangRuntimeError
from utilities import expect_type, to_index, arity_error
from context import Context, create_global_context
from stdlib import (
    make_value,
    make_unit,
    is_unit,
    copy_value,
    slang_print,
    apply_binary_operator,
    apply_unary_operator,
)
from ast_nodes import (
    Statement, Expression, VariableDefinition, VariableAssignment,
    ExpressionStatement, Return, Break, Continue, ImplicitReturn,
    Value, ListLiteral, ObjectLiteral, Reference, BinaryOperator,
    UnaryOperator, Block, FunctionCall, IfElse, ForLoop, WhileLoop,
    VariableRef, IndexRef, FieldRef, ReferenceExpr,
    format_statement, format_expression,
)

logger = logging.getLogger(__name__)

PRINT = "print"


# ============================================================================
# CONTROL FLOW SIGNALS
# ============================================================================

class ReturnSignal(Exception):
  """Unwinds to the enclosing function call, or ends the program"""

  def __init__(self, value: Dict):
    super().__init__("return")
    self.value = value


class BreakSignal(Exception):
  """Unwinds to the nearest enclosing loop, which takes its value"""

  def __init__(self, value: Dict):
    super().__init__("break")
    self.value = value


class ContinueSignal(Exception):
  def __init__(self):
    super().__init__("continue")


# ============================================================================
# STATEMENTS
# ============================================================================

def execute_statements(context: Context, statements: List[Statement]) -> Dict:
  """
  Run statements in order. The first statement that yields a non-Unit
  value ends the sequence and that value is the result.
  """
  for statement in statements:
    result = execute_statement(context, statement)
    if not is_unit(result):
      return result
  return make_unit()


def execute_statement(context: Context, statement: Statement) -> Dict:
  if logger.isEnabledFor(logging.DEBUG):
    logger.debug("execute: %s", format_statement(statement))

  if isinstance(statement, VariableDefinition):
    context.define_var(statement.name, eval_expression(context, statement.expr))
  elif isinstance(statement, VariableAssignment):
    value = eval_expression(context, statement.expr)
    container, key = resolve_slot(context, statement.target, for_write=True)
    container[key] = value
  elif isinstance(statement, ExpressionStatement):
    eval_expression(context, statement.expr)
  elif isinstance(statement, Return):
    raise ReturnSignal(eval_expression(context, statement.expr))
  elif isinstance(statement, Break):
    raise BreakSignal(eval_expression(context, statement.expr))
  elif isinstance(statement, Continue):
    raise ContinueSignal()
  elif isinstance(statement, ImplicitReturn):
    return eval_expression(context, statement.expr)
  else:
    raise SlangRuntimeError(f"Unknown statement: {statement!r}")

  return make_unit()


# ============================================================================
# EXPRESSIONS
# ============================================================================

def eval_expression(context: Context, expr: Expression) -> Dict:
  """Evaluate an expression node to a fresh runtime value"""
  if isinstance(expr, Value):
    return copy_value(expr.value)
  elif isinstance(expr, ListLiteral):
    return eval_list(context, expr)
  elif isinstance(expr, ObjectLiteral):
    return eval_object(context, expr)
  elif isinstance(expr, Reference):
    return eval_reference(context, expr.ref)
  elif isinstance(expr, BinaryOperator):
    left = eval_expression(context, expr.left)
    right = eval_expression(context, expr.right)
    return apply_binary_operator(expr.op, left, right)
  elif isinstance(expr, UnaryOperator):
    return apply_unary_operator(expr.op, eval_expression(context, expr.operand))
  elif isinstance(expr, Block):
    return eval_block(context, expr)
  elif isinstance(expr, FunctionCall):
    return eval_function_call(context, expr)
  elif isinstance(expr, IfElse):
    return eval_if_else(context, expr)
  elif isinstance(expr, WhileLoop):
    return eval_while_loop(context, expr)
  elif isinstance(expr, ForLoop):
    return eval_for_loop(context, expr)
  else:
    raise SlangRuntimeError(f"Unknown expression: {expr!r}")


def eval_list(context: Context, expr: ListLiteral) -> Dict:
  return make_value([eval_expression(context, item) for item in expr.items], "List")


def eval_object(context: Context, expr: ObjectLiteral) -> Dict:
  fields = {name: eval_expression(context, value) for name, value in expr.fields.items()}
  return make_value(fields, "Object")


def eval_block(context: Context, block: Block) -> Dict:
  """Run a block in a child context, writing outer names back even when a signal unwinds"""
  inner = context.create_block_context()
  try:
    return execute_statements(inner, list(block.statements))
  finally:
    context.apply_block_context(inner)


# ============================================================================
# REFERENCES
# ============================================================================

def resolve_slot(context: Context, ref: ReferenceExpr, for_write: bool = False) -> Tuple[Any, Any]:
  """
  Locate the storage behind a reference as (container, key), so that
  container[key] is the stored value.

  Reads may index into any expression's value. Writes must go through a
  chain of references ending in a variable.
  """
  if isinstance(ref, VariableRef):
    return context.get_slot(ref.name, for_write)

  container = _resolve_container(context, ref.container, for_write)

  if isinstance(ref, IndexRef):
    index_value = eval_expression(context, ref.index)
    items = expect_type(container, "List", f"Cannot index into {container['type']}, expected a List")
    index = to_index(index_value)
    if index >= len(items):
      raise SlangRuntimeError(f"Index {index} is out of bounds for list of length {len(items)}")
    return items, index

  if isinstance(ref, FieldRef):
    fields = expect_type(
      container, "Object", f"Cannot access field '{ref.field}' of {container['type']}, expected an Object"
    )
    if ref.field not in fields:
      raise SlangRuntimeError(f"Object has no field '{ref.field}'")
    return fields, ref.field

  raise SlangRuntimeError(f"Unknown reference: {ref!r}")


def _resolve_container(context: Context, expr: Expression, for_write: bool) -> Dict:
  if isinstance(expr, Reference):
    container, key = resolve_slot(context, expr.ref, for_write)
    return container[key]
  if for_write:
    raise SlangRuntimeError(
      f"Can only assign through a variable, index or field reference, got '{format_expression(expr)}'"
    )
  return eval_expression(context, expr)


def eval_reference(context: Context, ref: ReferenceExpr) -> Dict:
  """Read through a reference, returning a copy of the stored value"""
  if isinstance(ref, VariableRef):
    return context.get_var(ref.name)
  container, key = resolve_slot(context, ref)
  return copy_value(container[key])


# ============================================================================
# FUNCTION CALLS
# ============================================================================

def _callee_name(callee: Expression) -> Optional[str]:
  if isinstance(callee, Reference) and isinstance(callee.ref, VariableRef):
    return callee.ref.name
  return None


def eval_function_call(context: Context, expr: FunctionCall) -> Dict:
  """
  Call a function value.

  The call runs in a fresh context made of a copy of the global layer, the
  callee's own binding and a layer holding the parameters. Only the
  callee's binding is reconciled back afterwards.
  """
  function_name = _callee_name(expr.callee)

  if function_name == PRINT:
    return slang_print([eval_expression(context, arg) for arg in expr.args])

  if function_name is not None:
    function = context.try_get_var(function_name)
    if function is None:
      raise SlangRuntimeError(f"Function '{function_name}' does not exist")
  else:
    function = eval_expression(context, expr.callee)

  label = function_name or format_expression(expr.callee)
  if function['type'] != "Function":
    raise SlangRuntimeError(f"'{label}' is not a function, got {function['type']}")

  args = [eval_expression(context, arg) for arg in expr.args]
  params = function['value']['params']
  if len(args) != len(params):
    raise arity_error(label, len(params), len(args))

  inner = context.create_fn_context(function_name)
  for param, arg in zip(params, args):
    inner.define_var(param, arg)

  logger.debug("call %s with %d argument(s)", label, len(args))
  try:
    result = eval_expression(inner, function['value']['body'])
  except ReturnSignal as signal:
    result = signal.value
  except BreakSignal:
    raise SlangRuntimeError(f"'break' outside of a loop in function '{label}'")
  except ContinueSignal:
    raise SlangRuntimeError(f"'continue' outside of a loop in function '{label}'")
  finally:
    context.apply_fn_context(function_name, inner)

  return result


# ============================================================================
# CONTROL FLOW
# ============================================================================

def _condition(context: Context, expr: Expression) -> bool:
  value = eval_expression(context, expr)
  return expect_type(value, "Boolean", f"condition is not a boolean, got {value['type']}")


def eval_if_else(context: Context, expr: IfElse) -> Dict:
  if _condition(context, expr.condition):
    return eval_expression(context, expr.then_branch)
  if expr.else_branch is not None:
    return eval_expression(context, expr.else_branch)
  return make_unit()


def eval_while_loop(context: Context, expr: WhileLoop) -> Dict:
  """Loop while the condition is true; a break supplies the loop's value"""
  while _condition(context, expr.condition):
    try:
      eval_expression(context, expr.body)
    except BreakSignal as signal:
      return signal.value
    except ContinueSignal:
      continue
  return make_unit()


def eval_for_loop(context: Context, expr: ForLoop) -> Dict:
  """Iterate over a copy of a list, binding each element in its own layer"""
  iterable = eval_expression(context, expr.iterable)
  items = expect_type(iterable, "List", f"for loop expects a List, got {iterable['type']}")

  for item in items:
    inner = context.create_block_context()
    inner.define_var(expr.var_name, item)
    try:
      eval_expression(inner, expr.body)
    except BreakSignal as signal:
      return signal.value
    except ContinueSignal:
      continue
    finally:
      context.apply_block_context(inner)
  return make_unit()


# ============================================================================
# PROGRAM
# ============================================================================

def run_program(statements: List[Statement], context: Optional[Context] = None) -> Dict:
  """Execute a parsed program and return its value"""
  if context is None:
    context = create_global_context()

  try:
    return execute_statements(context, statements)
  except ReturnSignal as signal:
    return signal.value
  except BreakSignal:
    raise SlangRuntimeError("'break' outside of a loop")
  except ContinueSignal:
    raise SlangRuntimeError("'continue' outside of a loop")
  except RecursionError:
    raise SlangRuntimeError("Maximum recursion depth exceeded")


class SlangInterpreter:
  """Runs programs against a context that persists between calls"""

  def __init__(self, context: Optional[Context] = None):
    self.context = context if context is not None else create_global_context()

  def run(self, statements: List[Statement]) -> Dict:
    return run_program(statements, self.context)

  def evaluate(self, expr: Expression) -> Dict:
    return run_program([ImplicitReturn(expr)], self.context)

  def bindings(self) -> Dict[str, Dict]:
    return self.context.user_bindings()

  def reset(self) -> None:
    self.context = create_global_context()


def create_interpreter() -> SlangInterpreter:
  """Factory function returning an interpreter with an empty global scope"""
  return SlangInterpreter()
