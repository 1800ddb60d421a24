"""
Utilities module for the SLANG interpreter
Value checks, error builders and the operator factories used by stdlib
"""

from typing import Any, Callable, Dict, Optional, Sequence
import math

from error_handling import SlangRuntimeError


# ==================== VALUE CHECKS ====================

def is_value_dict(val: Any) -> bool:
  """True for a runtime value, a dict carrying 'type' and 'value'"""
  return isinstance(val, dict) and 'type' in val and 'value' in val


def get_value_type(val: Any) -> str:
  return val['type'] if is_value_dict(val) else 'Unknown'


def expect_type(val: Dict, expected: str, message: str) -> Any:
  """
  Payload of `val`, or a runtime error with `message` when its type is not `expected`

  Examples:
    expect_type(make_value(True, "Boolean"), "Boolean", "condition is not a boolean") -> True
  """
  if get_value_type(val) != expected:
    raise SlangRuntimeError(message)
  return val['value']


def to_index(val: Dict) -> int:
  """
  List index held by a Number value

  Raises:
    SlangRuntimeError unless the value is a non-negative integral Number
  """
  if get_value_type(val) != "Number":
    raise SlangRuntimeError(f"Index must be a Number, got {get_value_type(val)}")
  number = val['value']
  if not math.isfinite(number) or number < 0 or int(number) != number:
    raise SlangRuntimeError(f"Index must be a non-negative integer, got {number}")
  return int(number)


# ==================== ERRORS ====================

def arity_error(func_name: str, expected: int, got: int) -> SlangRuntimeError:
  return SlangRuntimeError(f"Function '{func_name}' expects {expected} arguments, got {got}")


def operation_error(verb: str, *operand_types: str) -> SlangRuntimeError:
  """
  Type mismatch for an operator, naming every operand type

  Examples:
    operation_error("add", "Number", "String") -> "Cannot add Number and String"
    operation_error("negate", "String") -> "Cannot negate String"
  """
  return SlangRuntimeError(f"Cannot {verb} {' and '.join(operand_types)}")


# ==================== OPERATOR FACTORIES ====================

def binary_op(
  op: Callable[[Any, Any], Any],
  verb: str,
  allowed_types: Sequence[str] = ("Number",),
  result_type: Optional[str] = None
) -> Callable[[Dict, Dict, Callable], Dict]:
  """
  Build a binary operation over two values of the same allowed type.

  The result keeps the operand type unless `result_type` is given, as for
  comparisons that always produce a Boolean. `make_value` is passed in at
  call time so this module does not depend on the value model.
  """

  def apply(x: Dict, y: Dict, make_value: Callable) -> Dict:
    if x['type'] != y['type'] or x['type'] not in allowed_types:
      raise operation_error(verb, x['type'], y['type'])
    return make_value(op(x['value'], y['value']), result_type or x['type'])

  return apply


def unary_op(
  op: Callable[[Any], Any],
  verb: str,
  allowed_type: str
) -> Callable[[Dict, Callable], Dict]:
  """Build a unary operation on a single operand type"""

  def apply(x: Dict, make_value: Callable) -> Dict:
    if x['type'] != allowed_type:
      raise operation_error(verb, x['type'])
    return make_value(op(x['value']), allowed_type)

  return apply
