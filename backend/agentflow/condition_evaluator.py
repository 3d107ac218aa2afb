# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Safe Expression Evaluator

Evaluates the small expression language used by workflow definitions:
condition and loop predicates, edge predicates and transform assignments.
Expressions are parsed with :mod:`ast` and walked against a whitelist, so
they can read run data but never call into Python beyond a few builtins.

Names resolve against the run's variables; ``true``/``false``/``null`` are
accepted alongside Python's literals, and ``a.b`` on a mapping reads key
``b`` (missing keys give ``None``).
"""

import ast
import operator
from functools import lru_cache
from typing import Any, Callable, Dict


class ExpressionError(ValueError):
    """Expression is malformed or uses a disallowed construct."""
    pass


# Expressions run on the event loop; bound the work a single operator can do
MAX_INT_BITS = 100_000
MAX_SEQUENCE_LENGTH = 1_000_000

SEQUENCE_TYPES = (str, list, tuple)


def _safe_pow(base: Any, exponent: Any) -> Any:
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 0 and abs(base) > 1:
        if abs(base).bit_length() * exponent > MAX_INT_BITS:
            raise ExpressionError(f"Power result exceeds {MAX_INT_BITS} bits")
    return operator.pow(base, exponent)


def _safe_mul(left: Any, right: Any) -> Any:
    sequence, count = (left, right) if isinstance(left, SEQUENCE_TYPES) else (right, left)
    if isinstance(sequence, SEQUENCE_TYPES) and isinstance(count, int):
        if len(sequence) * count > MAX_SEQUENCE_LENGTH:
            raise ExpressionError(f"Repetition exceeds {MAX_SEQUENCE_LENGTH} items")
    elif isinstance(left, int) and isinstance(right, int):
        if abs(left).bit_length() + abs(right).bit_length() > MAX_INT_BITS:
            raise ExpressionError(f"Product exceeds {MAX_INT_BITS} bits")
    return operator.mul(left, right)


BINARY_OPERATORS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: _safe_mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _safe_pow,
}

UNARY_OPERATORS: Dict[type, Callable[[Any], Any]] = {
    ast.Not: operator.not_,
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

COMPARISONS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda x, y: x in y,
    ast.NotIn: lambda x, y: x not in y,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

SAFE_FUNCTIONS = {
    'len': len,
    'str': str,
    'int': int,
    'float': float,
    'bool': bool,
    'abs': abs,
    'min': min,
    'max': max,
    'sum': sum,
    'any': any,
    'all': all,
    'round': round,
    'sorted': sorted,
    'list': list,
}

LITERAL_NAMES = {
    'true': True,
    'false': False,
    'null': None,
}


def _lookup(table: Dict[type, Callable], op: ast.AST) -> Callable:
    try:
        return table[type(op)]
    except KeyError:
        raise ExpressionError(f"Operator not allowed: {type(op).__name__}") from None


class SafeEvaluator(ast.NodeVisitor):
    """Walks a parsed expression; any node without a visitor is rejected."""

    def __init__(self, variables: Dict[str, Any]):
        self.variables = variables

    def visit_Expression(self, node):
        return self.visit(node.body)

    def visit_Constant(self, node):
        return node.value

    def visit_Name(self, node):
        # Run variables shadow builtins and literal names
        for scope in (self.variables, SAFE_FUNCTIONS, LITERAL_NAMES):
            if node.id in scope:
                return scope[node.id]
        raise ExpressionError(f"Undefined variable: {node.id}")

    def visit_BinOp(self, node):
        func = _lookup(BINARY_OPERATORS, node.op)
        return func(self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node):
        return _lookup(UNARY_OPERATORS, node.op)(self.visit(node.operand))

    def visit_Compare(self, node):
        # Chained: 1 < x <= 3 evaluates each operand once
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if not _lookup(COMPARISONS, op)(left, right):
                return False
            left = right
        return True

    def visit_BoolOp(self, node):
        # Short-circuits like Python: returns the deciding operand
        stop_on_truthy = isinstance(node.op, ast.Or)
        value = None
        for operand in node.values:
            value = self.visit(operand)
            if bool(value) == stop_on_truthy:
                return value
        return value

    def visit_IfExp(self, node):
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_Call(self, node):
        func = self.visit(node.func)
        if not any(func is allowed for allowed in SAFE_FUNCTIONS.values()):
            raise ExpressionError(f"Function not allowed: {getattr(node.func, 'id', 'unknown')}")

        args = [self.visit(arg) for arg in node.args]
        kwargs = {kw.arg: self.visit(kw.value) for kw in node.keywords}
        return func(*args, **kwargs)

    def visit_Subscript(self, node):
        container = self.visit(node.value)
        key = self.visit(node.slice)
        try:
            return container[key]
        except (KeyError, IndexError, TypeError):
            return None

    def visit_Attribute(self, node):
        # Key lookup on mappings, never Python attribute access
        container = self.visit(node.value)
        if isinstance(container, dict):
            return container.get(node.attr)
        if container is None:
            return None
        raise ExpressionError(f"Attribute access not allowed: .{node.attr}")

    def visit_List(self, node):
        return [self.visit(element) for element in node.elts]

    def visit_Tuple(self, node):
        return tuple(self.visit(element) for element in node.elts)

    def visit_Dict(self, node):
        if any(key is None for key in node.keys):
            raise ExpressionError("Dict unpacking not allowed")
        return {self.visit(key): self.visit(value) for key, value in zip(node.keys, node.values)}

    def generic_visit(self, node):
        raise ExpressionError(f"AST node type not allowed: {type(node).__name__}")


@lru_cache(maxsize=512)
def _parse(expression: str) -> ast.Expression:
    # Loop and edge predicates are re-evaluated on every visit
    try:
        return ast.parse(expression.strip(), mode='eval')
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression syntax: {e.msg}") from e


def evaluate_expression(expression: str, variables: Dict[str, Any]) -> Any:
    """
    Evaluate an expression string against ``variables`` and return its value.

    Raises:
        ExpressionError: If the expression does not parse, uses a construct
            outside the whitelist or fails while evaluating
    """
    tree = _parse(expression)
    try:
        return SafeEvaluator(variables).visit(tree)
    except ExpressionError:
        raise
    except Exception as e:
        raise ExpressionError(f"Expression evaluation failed: {e}") from e


def evaluate_condition(condition: str, variables: Dict[str, Any]) -> bool:
    """
    Evaluate a predicate; the result is the truthiness of the expression.

    Examples:
        >>> evaluate_condition("var_0 > 5", {"var_0": 10})
        True
        >>> evaluate_condition("input.city == 'Paris'", {"input": {"city": "Paris"}})
        True
    """
    return bool(evaluate_expression(condition, variables))
