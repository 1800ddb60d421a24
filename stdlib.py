"""
SLANG Standard Library
Runtime values, operators and the built-in print function
Values are plain dictionaries: {'type': <type name>, 'value': <payload>}
"""

from enum import Enum
from typing import Dict, Callable, Any, List
import math
import operator

from error_handling import SlangRuntimeError
from utilities import binary_op, unary_op, operation_error, is_value_dict


# ============================================================================
# OPERATORS
# ============================================================================

class Operator(Enum):
  """Operator kinds with their precedence (lower binds looser)"""
  OR = ("or", 1)
  AND = ("and", 2)
  NOT = ("not", 3)
  EQUAL = ("==", 4)
  NOT_EQUAL = ("!=", 4)
  LESS_THAN = ("<", 5)
  LESS_THAN_OR_EQUAL = ("<=", 5)
  GREATER_THAN = (">", 5)
  GREATER_THAN_OR_EQUAL = (">=", 5)
  ADD = ("+", 6)
  SUBTRACT = ("-", 6)
  MULTIPLY = ("*", 7)
  DIVIDE = ("/", 7)
  MODULO = ("%", 7)
  # Unary forms, only produced by the expression parser
  NEGATE = ("-", 8)
  UNARY_PLUS = ("+", 8)

  def __init__(self, symbol: str, precedence: int):
    self.symbol = symbol
    self.precedence = precedence

  def __str__(self) -> str:
    return self.symbol


# Tokenizer lookup tables. Unary forms are resolved by the parser.
SYMBOL_OPERATORS = {
  op.symbol: op for op in Operator
  if op not in (Operator.NEGATE, Operator.UNARY_PLUS)
}

UNARY_FORMS = {
  Operator.ADD: Operator.UNARY_PLUS,
  Operator.SUBTRACT: Operator.NEGATE,
  Operator.NOT: Operator.NOT,
}


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def make_value(value: Any, type_name: str = "Unit") -> Dict:
  """Create a runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_unit() -> Dict:
  return make_value(None, "Unit")


def make_function_value(params: List[str], body: Any) -> Dict:
  """Create a function value from its parameter names and body expression"""
  return make_value({'params': list(params), 'body': body}, "Function")


def is_unit(value: Dict) -> bool:
  return value['type'] == "Unit"


def copy_value(value: Dict) -> Dict:
  """Structural copy of a value; function bodies are immutable and shared"""
  value_type = value['type']
  if value_type == "List":
    return make_value([copy_value(v) for v in value['value']], "List")
  if value_type == "Object":
    return make_value({k: copy_value(v) for k, v in value['value'].items()}, "Object")
  return make_value(value['value'], value_type)


# ============================================================================
# DISPLAY
# ============================================================================

def format_number(number: Any) -> str:
  """Integral floats print without a fractional part"""
  if isinstance(number, float) and math.isfinite(number) and number.is_integer():
    return str(int(number))
  return str(number)


def quote_string(text: str) -> str:
  escaped = (text.replace('\\', '\\\\').replace('"', '\\"')
             .replace('\n', '\\n').replace('\t', '\\t').replace('\r', '\\r'))
  return f'"{escaped}"'


def show_value(value: Dict, nested: bool = False) -> str:
  """Display form of a value, as written by print"""
  if not is_value_dict(value):
    raise SlangRuntimeError(f"Cannot display {value!r}")

  value_type = value['type']
  payload = value['value']
  if value_type == "Unit":
    return "()"
  elif value_type == "Number":
    return format_number(payload)
  elif value_type == "Boolean":
    return "true" if payload else "false"
  elif value_type == "String":
    return quote_string(payload) if nested else payload
  elif value_type == "List":
    return "[" + ", ".join(show_value(v, nested=True) for v in payload) + "]"
  elif value_type == "Object":
    fields = ", ".join(f"{k}: {show_value(v, nested=True)}" for k, v in payload.items())
    return "{" + fields + "}"
  elif value_type == "Function":
    return f"<function |{', '.join(payload['params'])}|>"
  else:
    return f"<{value_type}>"


# ============================================================================
# PRINT FUNCTION
# ============================================================================

def slang_print(args: List[Dict]) -> Dict:
  """Print values space separated followed by a newline"""
  print(" ".join(show_value(arg) for arg in args))
  return make_unit()


# ============================================================================
# ARITHMETIC FUNCTIONS
# ============================================================================

ORDERED_TYPES = ("Number", "String")

_number_sub = binary_op(operator.sub, "subtract")
_number_mul = binary_op(operator.mul, "multiply")
_compare_lt = binary_op(operator.lt, "compare", ORDERED_TYPES, "Boolean")
_compare_le = binary_op(operator.le, "compare", ORDERED_TYPES, "Boolean")
_compare_gt = binary_op(operator.gt, "compare", ORDERED_TYPES, "Boolean")
_compare_ge = binary_op(operator.ge, "compare", ORDERED_TYPES, "Boolean")
_logic_and = binary_op(lambda a, b: a and b, "and", ("Boolean",))
_logic_or = binary_op(lambda a, b: a or b, "or", ("Boolean",))
_negate = unary_op(operator.neg, "negate", "Number")
_unary_plus = unary_op(operator.pos, "apply unary plus to", "Number")
_logic_not = unary_op(operator.not_, "apply not to", "Boolean")


def slang_add(x: Dict, y: Dict) -> Dict:
  """Add numbers, concatenate strings or lists"""
  if x['type'] != y['type'] or x['type'] not in ("Number", "String", "List"):
    raise operation_error("add", x['type'], y['type'])
  if x['type'] == "List":
    return make_value([copy_value(v) for v in x['value'] + y['value']], "List")
  return make_value(x['value'] + y['value'], x['type'])


def slang_sub(x: Dict, y: Dict) -> Dict:
  return _number_sub(x, y, make_value)


def slang_mul(x: Dict, y: Dict) -> Dict:
  return _number_mul(x, y, make_value)


def slang_div(x: Dict, y: Dict) -> Dict:
  """Divide two numbers"""
  if x['type'] != "Number" or y['type'] != "Number":
    raise operation_error("divide", x['type'], y['type'])
  if y['value'] == 0:
    raise SlangRuntimeError("Division by zero")
  return make_value(x['value'] / y['value'], "Number")


def slang_mod(x: Dict, y: Dict) -> Dict:
  """Remainder of two numbers"""
  if x['type'] != "Number" or y['type'] != "Number":
    raise operation_error("take the remainder of", x['type'], y['type'])
  if y['value'] == 0:
    raise SlangRuntimeError("Modulo by zero")
  return make_value(x['value'] % y['value'], "Number")


# ============================================================================
# COMPARISON FUNCTIONS
# ============================================================================

def slang_eq(x: Dict, y: Dict) -> Dict:
  """Equality comparison, values of different types are never equal"""
  return make_value(x['type'] == y['type'] and x['value'] == y['value'], "Boolean")


def slang_ne(x: Dict, y: Dict) -> Dict:
  return make_value(not slang_eq(x, y)['value'], "Boolean")


def slang_lt(x: Dict, y: Dict) -> Dict:
  return _compare_lt(x, y, make_value)


def slang_le(x: Dict, y: Dict) -> Dict:
  return _compare_le(x, y, make_value)


def slang_gt(x: Dict, y: Dict) -> Dict:
  return _compare_gt(x, y, make_value)


def slang_ge(x: Dict, y: Dict) -> Dict:
  return _compare_ge(x, y, make_value)


# ============================================================================
# LOGIC FUNCTIONS
# ============================================================================

def slang_and(x: Dict, y: Dict) -> Dict:
  return _logic_and(x, y, make_value)


def slang_or(x: Dict, y: Dict) -> Dict:
  return _logic_or(x, y, make_value)


def slang_not(x: Dict) -> Dict:
  return _logic_not(x, make_value)


def slang_negate(x: Dict) -> Dict:
  return _negate(x, make_value)


def slang_unary_plus(x: Dict) -> Dict:
  return _unary_plus(x, make_value)


# ============================================================================
# OPERATOR DISPATCH
# ============================================================================

BINARY_OPERATORS: Dict[Operator, Callable[[Dict, Dict], Dict]] = {
  Operator.ADD: slang_add,
  Operator.SUBTRACT: slang_sub,
  Operator.MULTIPLY: slang_mul,
  Operator.DIVIDE: slang_div,
  Operator.MODULO: slang_mod,
  Operator.EQUAL: slang_eq,
  Operator.NOT_EQUAL: slang_ne,
  Operator.LESS_THAN: slang_lt,
  Operator.LESS_THAN_OR_EQUAL: slang_le,
  Operator.GREATER_THAN: slang_gt,
  Operator.GREATER_THAN_OR_EQUAL: slang_ge,
  Operator.AND: slang_and,
  Operator.OR: slang_or,
}

UNARY_OPERATORS: Dict[Operator, Callable[[Dict], Dict]] = {
  Operator.NOT: slang_not,
  Operator.NEGATE: slang_negate,
  Operator.UNARY_PLUS: slang_unary_plus,
}


def apply_binary_operator(op: Operator, x: Dict, y: Dict) -> Dict:
  if op not in BINARY_OPERATORS:
    raise SlangRuntimeError(f"'{op.symbol}' is not a binary operator")
  return BINARY_OPERATORS[op](x, y)


def apply_unary_operator(op: Operator, x: Dict) -> Dict:
  if op not in UNARY_OPERATORS:
    raise SlangRuntimeError(f"'{op.symbol}' is not a unary operator")
  return UNARY_OPERATORS[op](x)
