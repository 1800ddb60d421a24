"""
SLANG Parser
Delimiter reduction, statement splitting and recursive expression parsing
over the token stream produced by the tokenizer
"""

from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass
import logging

from error_handling import SlangSyntaxError, SourceSpan
from tokenizer import Token, tokenize
from stdlib import make_value, make_unit, make_function_value, UNARY_FORMS
from ast_nodes import (
    Statement, Expression, VariableDefinition, VariableAssignment,
    ExpressionStatement, Return, Break, Continue, ImplicitReturn,
    Value, ListLiteral, ObjectLiteral, Reference, BinaryOperator,
    UnaryOperator, Block, FunctionCall, IfElse, ForLoop, WhileLoop,
    VariableRef, IndexRef, FieldRef, format_statement
)

logger = logging.getLogger(__name__)


# Opening delimiter -> (closing delimiter, node type, name for messages)
GROUPS = {
    '(': (')', 'PARENTHESES', 'parenthesis'),
    '{': ('}', 'BRACES', 'brace'),
    '[': (']', 'BRACKETS', 'bracket'),
}
CLOSERS = {closing: name for closing, _, name in GROUPS.values()}
GROUP_TEXT = {node_type: (opening, closing) for opening, (closing, node_type, _) in GROUPS.items()}


@dataclass(frozen=True)
class ReducedNode:
    """
    Element of the delimiter tree.

    TOKEN nodes wrap a raw token. PARENTHESES, BRACES and BRACKETS own their
    reduced children and keep the opening token for error locations. CLOSURE
    nodes hold the parameter names of a |...| list.
    """
    type: str
    token: Token
    children: Tuple['ReducedNode', ...] = ()
    params: Tuple[str, ...] = ()

    def __str__(self) -> str:
        if self.type == "TOKEN":
            return str(self.token)
        if self.type == "CLOSURE":
            return f"|{', '.join(self.params)}|"
        opening, closing = GROUP_TEXT[self.type]
        return f"{opening}{format_nodes(self.children)}{closing}"


def format_nodes(nodes: Sequence[ReducedNode]) -> str:
    """Approximate source text of a node slice, for error messages"""
    return " ".join(str(node) for node in nodes)


def _span(nodes: Sequence[ReducedNode]) -> Optional[SourceSpan]:
    return nodes[0].token.span if nodes else None


def _trace(label: str, nodes: Sequence[ReducedNode]) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("%s: %s", label, format_nodes(nodes))


# ============================================================================
# NODE PREDICATES
# ============================================================================

def is_delimiter(node: ReducedNode, char: str) -> bool:
    return node.type == "TOKEN" and node.token.is_delimiter(char)


def is_keyword(node: ReducedNode, word: str) -> bool:
    return node.type == "TOKEN" and node.token.is_keyword(word)


def is_token_type(node: ReducedNode, token_type: str) -> bool:
    return node.type == "TOKEN" and node.token.type == token_type


def find_keyword(nodes: Sequence[ReducedNode], word: str) -> Optional[int]:
    for i, node in enumerate(nodes):
        if is_keyword(node, word):
            return i
    return None


def split_top_level(nodes: Sequence[ReducedNode], char: str) -> List[List[ReducedNode]]:
    """Split a node slice at every top-level delimiter token `char`"""
    segments = [[]]
    for node in nodes:
        if is_delimiter(node, char):
            segments.append([])
        else:
            segments[-1].append(node)
    return segments


# ============================================================================
# DELIMITER REDUCER
# ============================================================================

def find_matching(tokens: Sequence[Token], start: int, closing: str) -> Optional[int]:
    """
    Index of the `closing` delimiter that matches at nesting depth 0,
    scanning from `start`. All three bracket kinds count towards the depth,
    so crossed kinds never match.
    """
    depth = 0
    for i in range(start, len(tokens)):
        token = tokens[i]
        if depth == 0 and token.is_delimiter(closing):
            return i
        if token.type != "DELIMITER":
            continue
        if token.value in GROUPS:
            depth += 1
        elif token.value in CLOSERS:
            depth -= 1
    return None


def get_comma_separated_identifiers(tokens: Sequence[Token]) -> List[str]:
    """Parse the contents of a closure parameter list"""
    if not tokens:
        return []

    names = []
    segment: List[Token] = []
    for token in list(tokens) + [None]:
        if token is None or token.is_delimiter(','):
            if len(segment) != 1:
                raise SlangSyntaxError("invalid identifier list", segment[0].span if segment else None)
            if segment[0].type != "IDENTIFIER":
                raise SlangSyntaxError(f"invalid identifier in list: '{segment[0]}'", segment[0].span)
            names.append(segment[0].value)
            segment = []
        else:
            segment.append(token)
    return names


def reduce_delimiters(tokens: Sequence[Token]) -> List[ReducedNode]:
    """Group a flat token stream into a tree of matched delimiter groups"""
    reduced = []

    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.type == "DELIMITER" and token.value in GROUPS:
            closing, node_type, name = GROUPS[token.value]
            end = find_matching(tokens, i + 1, closing)
            if end is None:
                raise SlangSyntaxError(f"No matching closing {name}!", token.span)
            children = reduce_delimiters(tokens[i + 1:end])
            reduced.append(ReducedNode(node_type, token, tuple(children)))
            i = end
        elif token.is_delimiter('|'):
            end = find_matching(tokens, i + 1, '|')
            if end is None:
                raise SlangSyntaxError("No matching closing bar for closure parameters!", token.span)
            params = get_comma_separated_identifiers(tokens[i + 1:end])
            reduced.append(ReducedNode("CLOSURE", token, params=tuple(params)))
            i = end
        elif token.type == "DELIMITER" and token.value in CLOSERS:
            raise SlangSyntaxError(f"Unmatched closing {CLOSERS[token.value]}!", token.span)
        else:
            reduced.append(ReducedNode("TOKEN", token))
        i += 1

    return reduced


# ============================================================================
# STATEMENTS
# ============================================================================

def get_statements(nodes: Sequence[ReducedNode]) -> List[Statement]:
    """
    Split one block's nodes at top-level semicolons and parse each segment.

    A trailing expression statement without a semicolon becomes an
    ImplicitReturn, which gives the block its value.
    """
    statements: List[Statement] = []
    for segment in split_top_level(nodes, ';'):
        if segment:
            statement = get_statement(segment)
            if logger.isEnabledFor(logging.INFO):
                logger.info("statement: %s", format_statement(statement))
            statements.append(statement)

    if nodes and is_delimiter(nodes[-1], ';'):
        return statements

    if not statements:
        raise SlangSyntaxError("empty block!", _span(nodes))

    last = statements[-1]
    if isinstance(last, ExpressionStatement):
        statements[-1] = ImplicitReturn(last.expr)
    return statements


def get_statement(nodes: Sequence[ReducedNode]) -> Statement:
    """Parse a single non-empty statement slice"""
    first = nodes[0]

    if is_keyword(first, 'let'):
        if len(nodes) >= 3 and is_token_type(nodes[1], "IDENTIFIER") and is_token_type(nodes[2], "ASSIGN"):
            return VariableDefinition(nodes[1].token.value, get_expression(nodes[3:]))
        raise SlangSyntaxError(
            f"Invalid variable definition '{format_nodes(nodes)}', expected 'let <name> = <expression>'",
            first.token.span
        )

    if is_keyword(first, 'return'):
        return Return(get_expression(nodes[1:]) if len(nodes) > 1 else Value(make_unit()))

    if is_keyword(first, 'break'):
        return Break(get_expression(nodes[1:]) if len(nodes) > 1 else Value(make_unit()))

    if is_keyword(first, 'continue'):
        if len(nodes) > 1:
            raise SlangSyntaxError("invalid statement after continue", nodes[1].token.span)
        return Continue()

    for i, node in enumerate(nodes):
        if is_token_type(node, "ASSIGN"):
            target = _get_assignment_target(nodes[:i], node)
            return VariableAssignment(target.ref, get_expression(nodes[i + 1:]))

    for i, node in enumerate(nodes):
        if is_token_type(node, "OPERATOR_ASSIGN"):
            target = _get_assignment_target(nodes[:i], node)
            value = get_expression(nodes[i + 1:])
            return VariableAssignment(target.ref, BinaryOperator(target, value, node.token.value))

    return ExpressionStatement(get_expression(nodes))


def _get_assignment_target(nodes: Sequence[ReducedNode], assign: ReducedNode) -> Reference:
    target = get_expression(nodes)
    if not isinstance(target, Reference):
        raise SlangSyntaxError(
            f"can only assign to a reference, got '{format_nodes(nodes)}'", assign.token.span
        )
    return target


# ============================================================================
# EXPRESSIONS
# ============================================================================

def get_expression(nodes: Sequence[ReducedNode]) -> Expression:
    """
    Parse a node slice into an Expression.

    Longer slices are tried in order as a closure literal, a for/while/if
    construct, an operator expression split at its weakest operator, and
    finally a trailing call, index or field access.
    """
    _trace("get expression", nodes)
    if not nodes:
        raise SlangSyntaxError("Empty expression")
    if len(nodes) == 1:
        return get_single_expression(nodes[0])

    if any(node.type == "CLOSURE" for node in nodes):
        if nodes[0].type != "CLOSURE":
            raise SlangSyntaxError(f"invalid closure expression: '{format_nodes(nodes)}'", _span(nodes))
        body = get_expression(nodes[1:])
        return Value(make_function_value(nodes[0].params, body))

    if find_keyword(nodes, 'for') is not None:
        return get_for_loop(nodes)

    if find_keyword(nodes, 'while') is not None:
        return get_while_loop(nodes)

    if find_keyword(nodes, 'if') is not None:
        return get_if_else(nodes)

    operator_expression = get_operator_expression(nodes)
    if operator_expression is not None:
        return operator_expression

    return get_postfix_expression(nodes)


def get_single_expression(node: ReducedNode) -> Expression:
    """Parse a slice made of exactly one node"""
    if node.type == "BRACES":
        if not node.children:
            # Empty object, also stands in for an empty loop body
            return Value(make_value({}, "Object"))
        if any(is_delimiter(child, ':') for child in node.children):
            return get_object(node.children)
        return Block(tuple(get_statements(node.children)))

    if node.type == "PARENTHESES":
        if not node.children:
            return Value(make_unit())
        return get_expression(node.children)

    if node.type == "BRACKETS":
        if not node.children:
            return ListLiteral(())
        return ListLiteral(tuple(get_comma_separated_expressions(node.children)))

    if node.type == "CLOSURE":
        raise SlangSyntaxError("closure is missing its body", node.token.span)

    token = node.token
    if token.type == "NUMBER":
        return Value(make_value(token.value, "Number"))
    if token.type == "STRING":
        return Value(make_value(token.value, "String"))
    if token.type == "BOOLEAN":
        return Value(make_value(token.value, "Boolean"))
    if token.type == "IDENTIFIER":
        return Reference(VariableRef(token.value))
    raise SlangSyntaxError(f"Not a valid token expression: '{token}'", token.span)


def get_body(node: ReducedNode, construct: str) -> Block:
    """A construct body must be a block or the empty braces"""
    body = get_single_expression(node)
    if isinstance(body, Block):
        return body
    if isinstance(body, Value) and body.value['type'] == "Object" and not body.value['value']:
        return Block(())
    raise SlangSyntaxError(f"invalid {construct} body: '{node}'", node.token.span)


def get_for_loop(nodes: Sequence[ReducedNode]) -> ForLoop:
    if (len(nodes) < 5 or not is_keyword(nodes[0], 'for')
            or not is_token_type(nodes[1], "IDENTIFIER") or not is_keyword(nodes[2], 'in')):
        raise SlangSyntaxError(
            f"invalid for loop: '{format_nodes(nodes)}', expected 'for <name> in <list> {{ ... }}'",
            _span(nodes)
        )
    iterable = get_expression(nodes[3:-1])
    return ForLoop(nodes[1].token.value, iterable, get_body(nodes[-1], "for loop"))


def get_while_loop(nodes: Sequence[ReducedNode]) -> WhileLoop:
    if len(nodes) < 3 or not is_keyword(nodes[0], 'while'):
        raise SlangSyntaxError(
            f"invalid while loop: '{format_nodes(nodes)}', expected 'while <condition> {{ ... }}'",
            _span(nodes)
        )
    condition = get_expression(nodes[1:-1])
    return WhileLoop(condition, get_body(nodes[-1], "while loop"))


def get_if_else(nodes: Sequence[ReducedNode]) -> IfElse:
    if len(nodes) < 3 or not is_keyword(nodes[0], 'if'):
        raise SlangSyntaxError(f"invalid if expression: '{format_nodes(nodes)}'", _span(nodes))

    else_pos = find_keyword(nodes, 'else')
    if else_pos is None:
        condition = get_expression(nodes[1:-1])
        return IfElse(condition, get_body(nodes[-1], "if"))

    if else_pos < 3 or else_pos == len(nodes) - 1:
        raise SlangSyntaxError(f"invalid if else expression: '{format_nodes(nodes)}'", _span(nodes))

    condition = get_expression(nodes[1:else_pos - 1])
    then_branch = get_body(nodes[else_pos - 1], "if")

    rest = nodes[else_pos + 1:]
    if len(rest) == 1:
        else_branch = get_body(rest[0], "else")
    elif is_keyword(rest[0], 'if'):
        else_branch = get_if_else(rest)
    else:
        raise SlangSyntaxError(f"invalid else body: '{format_nodes(rest)}'", _span(rest))
    return IfElse(condition, then_branch, else_branch)


def get_operator_expression(nodes: Sequence[ReducedNode]) -> Optional[Expression]:
    """
    Split at the weakest top-level operator and parse both sides.

    The lowest precedence wins and among equals the rightmost one, so that
    chains group to the left. An operator right after another operator is a
    prefix of its operand and is never a split point. A split at position 0
    makes a unary operator.
    """
    split_at = None
    lowest = None
    for i, node in enumerate(nodes):
        if not is_token_type(node, "OPERATOR"):
            continue
        if i > 0 and is_token_type(nodes[i - 1], "OPERATOR"):
            continue
        precedence = node.token.value.precedence
        if lowest is None or precedence <= lowest:
            lowest = precedence
            split_at = i

    if split_at is None:
        return None

    op = nodes[split_at].token.value
    if split_at == 0:
        if op not in UNARY_FORMS:
            raise SlangSyntaxError(f"no such unary operator: '{op.symbol}'", nodes[0].token.span)
        return UnaryOperator(get_expression(nodes[1:]), UNARY_FORMS[op])

    left = get_expression(nodes[:split_at])
    right = get_expression(nodes[split_at + 1:])
    return BinaryOperator(left, right, op)


def get_postfix_expression(nodes: Sequence[ReducedNode]) -> Expression:
    """Trailing call arguments, index or field access"""
    last = nodes[-1]

    if last.type == "PARENTHESES":
        callee = get_expression(nodes[:-1])
        args = get_comma_separated_expressions(last.children) if last.children else []
        return FunctionCall(callee, tuple(args))

    if last.type == "BRACKETS":
        container = get_expression(nodes[:-1])
        return Reference(IndexRef(container, get_expression(last.children)))

    if is_delimiter(nodes[-2], '.') and is_token_type(last, "IDENTIFIER"):
        container = get_expression(nodes[:-2])
        return Reference(FieldRef(container, last.token.value))

    raise SlangSyntaxError(
        f"Not a valid expression: '{format_nodes(nodes)}'. Are you missing a semicolon?",
        _span(nodes)
    )


def get_object(nodes: Sequence[ReducedNode]) -> ObjectLiteral:
    """Parse `name: expression` pairs separated by commas"""
    fields = {}
    for segment in split_top_level(nodes, ','):
        if len(segment) < 2 or not is_token_type(segment[0], "IDENTIFIER") or not is_delimiter(segment[1], ':'):
            raise SlangSyntaxError(f"invalid object field: '{format_nodes(segment)}'", _span(segment or nodes))
        name = segment[0].token.value
        if name in fields:
            raise SlangSyntaxError(f"duplicate object field '{name}'", segment[0].token.span)
        fields[name] = get_expression(segment[2:])
    return ObjectLiteral(fields)


def get_comma_separated_expressions(nodes: Sequence[ReducedNode]) -> List[Expression]:
    return [get_expression(segment) for segment in split_top_level(nodes, ',')]


# ============================================================================
# PARSER
# ============================================================================

class SlangParser:
    """Main SLANG parser combining tokenizer, delimiter reducer and parsers"""

    def parse_file(self, filepath: str) -> List[Statement]:
        """Parse a SLANG source file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> List[Statement]:
        """Parse SLANG source code from string into the program's statements"""
        return get_statements(reduce_delimiters(tokenize(text, filename)))

    def parse_expression(self, text: str, filename: str = "<input>") -> Expression:
        """Parse a single SLANG expression"""
        return get_expression(reduce_delimiters(tokenize(text, filename)))

    def reduce(self, text: str, filename: str = "<input>") -> List[ReducedNode]:
        """Tokenize and reduce delimiters, without parsing"""
        return reduce_delimiters(tokenize(text, filename))

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize SLANG source code"""
        return tokenize(text, filename)


def create_parser() -> SlangParser:
    """Create a SLANG parser"""
    return SlangParser()
