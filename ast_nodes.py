"""
SLANG abstract syntax tree
Statement, Expression and reference nodes plus a canonical source printer
"""

from typing import Dict, Optional, Tuple, Union
from dataclasses import dataclass
from decimal import Decimal

from stdlib import Operator, format_number, quote_string


# ============================================================================
# REFERENCES (lvalue paths)
# ============================================================================

@dataclass(frozen=True)
class VariableRef:
    name: str


@dataclass(frozen=True)
class IndexRef:
    container: 'Expression'
    index: 'Expression'


@dataclass(frozen=True)
class FieldRef:
    container: 'Expression'
    field: str


ReferenceExpr = Union[VariableRef, IndexRef, FieldRef]


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class Value:
    """Literal runtime value (numbers, strings, booleans, Unit, closures)"""
    value: Dict


@dataclass(frozen=True)
class ListLiteral:
    items: Tuple['Expression', ...]


@dataclass(frozen=True)
class ObjectLiteral:
    fields: Dict[str, 'Expression']


@dataclass(frozen=True)
class Reference:
    ref: ReferenceExpr


@dataclass(frozen=True)
class BinaryOperator:
    left: 'Expression'
    right: 'Expression'
    op: Operator


@dataclass(frozen=True)
class UnaryOperator:
    operand: 'Expression'
    op: Operator


@dataclass(frozen=True)
class Block:
    statements: Tuple['Statement', ...]


@dataclass(frozen=True)
class FunctionCall:
    callee: 'Expression'
    args: Tuple['Expression', ...]


@dataclass(frozen=True)
class IfElse:
    condition: 'Expression'
    then_branch: 'Expression'
    else_branch: Optional['Expression'] = None


@dataclass(frozen=True)
class ForLoop:
    var_name: str
    iterable: 'Expression'
    body: 'Expression'


@dataclass(frozen=True)
class WhileLoop:
    condition: 'Expression'
    body: 'Expression'


Expression = Union[Value, ListLiteral, ObjectLiteral, Reference, BinaryOperator,
                   UnaryOperator, Block, FunctionCall, IfElse, ForLoop, WhileLoop]


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class VariableDefinition:
    name: str
    expr: Expression


@dataclass(frozen=True)
class VariableAssignment:
    target: ReferenceExpr
    expr: Expression


@dataclass(frozen=True)
class ExpressionStatement:
    expr: Expression


@dataclass(frozen=True)
class Return:
    expr: Expression


@dataclass(frozen=True)
class Break:
    expr: Expression


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class ImplicitReturn:
    expr: Expression


Statement = Union[VariableDefinition, VariableAssignment, ExpressionStatement,
                  Return, Break, Continue, ImplicitReturn]


# ============================================================================
# CANONICAL PRINTER
# ============================================================================

def format_float(number: float) -> str:
    """Plain decimal text with a fractional part, never exponent notation"""
    text = format(Decimal(repr(number)), 'f')
    return text if "." in text else text + ".0"


def format_value(value: Dict) -> str:
    """Source form of a literal value"""
    value_type = value['type']
    payload = value['value']
    if value_type == "Unit":
        return "()"
    if value_type == "Number":
        if isinstance(payload, float):
            return format_float(payload)
        return format_number(payload)
    if value_type == "Boolean":
        return "true" if payload else "false"
    if value_type == "String":
        return quote_string(payload)
    if value_type == "List":
        return "[" + ", ".join(format_value(v) for v in payload) + "]"
    if value_type == "Object":
        return "{" + ", ".join(f"{k}: {format_value(v)}" for k, v in payload.items()) + "}"
    if value_type == "Function":
        return f"|{', '.join(payload['params'])}| {format_expression(payload['body'])}"
    raise ValueError(f"Cannot format value of type {value_type}")


def format_reference(ref: ReferenceExpr) -> str:
    if isinstance(ref, VariableRef):
        return ref.name
    if isinstance(ref, IndexRef):
        return f"{format_expression(ref.container, nested=True)}[{format_expression(ref.index)}]"
    return f"{format_expression(ref.container, nested=True)}.{ref.field}"


def format_block(block: Block) -> str:
    if not block.statements:
        return "{;}"
    return "{ " + " ".join(format_statement(s) for s in block.statements) + " }"


def format_expression(expr: Expression, nested: bool = False) -> str:
    """
    Render an expression as SLANG source.

    Compound sub-expressions are parenthesized so that parsing the output
    gives back an equal tree. Negative numeric literals are not preserved:
    they read back as a negation of the positive literal.
    """
    if isinstance(expr, Value):
        text = format_value(expr.value)
        compound = expr.value['type'] == "Function"
    elif isinstance(expr, ListLiteral):
        return "[" + ", ".join(format_expression(e) for e in expr.items) + "]"
    elif isinstance(expr, ObjectLiteral):
        if not expr.fields:
            return "{}"
        return "{" + ", ".join(f"{k}: {format_expression(v)}" for k, v in expr.fields.items()) + "}"
    elif isinstance(expr, Reference):
        return format_reference(expr.ref)
    elif isinstance(expr, Block):
        return format_block(expr)
    elif isinstance(expr, FunctionCall):
        args = ", ".join(format_expression(a) for a in expr.args)
        return f"{format_expression(expr.callee, nested=True)}({args})"
    elif isinstance(expr, BinaryOperator):
        text = (f"{format_expression(expr.left, nested=True)} {expr.op.symbol} "
                f"{format_expression(expr.right, nested=True)}")
        compound = True
    elif isinstance(expr, UnaryOperator):
        text = f"{expr.op.symbol} {format_expression(expr.operand, nested=True)}"
        compound = True
    elif isinstance(expr, IfElse):
        text = f"if {format_expression(expr.condition, nested=True)} {format_expression(expr.then_branch)}"
        if expr.else_branch is not None:
            text += f" else {format_expression(expr.else_branch)}"
        compound = True
    elif isinstance(expr, ForLoop):
        text = (f"for {expr.var_name} in {format_expression(expr.iterable, nested=True)} "
                f"{format_expression(expr.body)}")
        compound = True
    elif isinstance(expr, WhileLoop):
        text = f"while {format_expression(expr.condition, nested=True)} {format_expression(expr.body)}"
        compound = True
    else:
        raise ValueError(f"Unknown expression node: {expr!r}")

    return f"({text})" if nested and compound else text


def format_statement(statement: Statement) -> str:
    """Render a statement as SLANG source, terminated unless it is an implicit return"""
    if isinstance(statement, VariableDefinition):
        return f"let {statement.name} = {format_expression(statement.expr)};"
    if isinstance(statement, VariableAssignment):
        return f"{format_reference(statement.target)} = {format_expression(statement.expr)};"
    if isinstance(statement, ExpressionStatement):
        return f"{format_expression(statement.expr)};"
    if isinstance(statement, Return):
        return f"return {format_expression(statement.expr)};"
    if isinstance(statement, Break):
        return f"break {format_expression(statement.expr)};"
    if isinstance(statement, Continue):
        return "continue;"
    if isinstance(statement, ImplicitReturn):
        return format_expression(statement.expr)
    raise ValueError(f"Unknown statement node: {statement!r}")
