"""
Math Validation Module
Uses SymPy to check that expressions in the restricted infix notation
(implicit multiplication, ^ for powers, |a| for absolute value) are
parseable. The same parser backs the local math oracle.

parse_expr evaluates its input, so text is screened against the notation
first and then evaluated in a namespace holding only the SymPy names the
notation needs, with no builtins.
"""

from __future__ import annotations

import logging
import re
from typing import Tuple

from sympy import (
    Abs,
    E,
    Expr,
    Float,
    Function,
    Integer,
    Rational,
    Symbol,
    acos,
    asin,
    atan,
    cos,
    cosh,
    cot,
    csc,
    exp,
    log,
    oo,
    pi,
    sec,
    sin,
    sinh,
    sqrt,
    tan,
    tanh,
)
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    parse_expr,
    standard_transformations,
)

logger = logging.getLogger(__name__)

TRANSFORMATIONS = standard_transformations + (implicit_multiplication_application, convert_xor)

FUNCTIONS = {
    "sin": sin, "cos": cos, "tan": tan, "sec": sec, "csc": csc, "cot": cot,
    "asin": asin, "acos": acos, "atan": atan,
    "sinh": sinh, "cosh": cosh, "tanh": tanh,
    "log": log, "ln": log, "sqrt": sqrt, "exp": exp, "abs": Abs, "Abs": Abs,
}
CONSTANTS = {"e": E, "pi": pi, "oo": oo}

LOCAL_NAMES = {"e": E, "pi": pi, "ln": log, "abs": Abs}

# Everything generated code may reference: the number and symbol
# constructors the transformations emit, plus the notation's functions.
GLOBAL_NAMES = {
    "__builtins__": {},
    "Symbol": Symbol,
    "Integer": Integer,
    "Float": Float,
    "Rational": Rational,
    "Function": Function,
    **FUNCTIONS,
    **CONSTANTS,
}

# Multi-letter names that are not functions are only accepted as implicit
# products of these variables ("2xy").
PRODUCT_VARIABLES = set("xyzt")

_ABS_BARS = re.compile(r"\|([^|]+)\|")
_INFINITY = re.compile(r"∞|\binfinity\b", re.IGNORECASE)
_ALLOWED_CHARS = re.compile(r"[A-Za-z0-9\s.+\-*/^(),]*")
_ATTRIBUTE = re.compile(r"\.\s*[A-Za-z]")
_NAME = re.compile(r"[A-Za-z]+")


def _prepare(text: str) -> str:
    """Rewrite notation SymPy does not read natively."""
    prepared = text.strip()
    prepared = _ABS_BARS.sub(r"Abs(\1)", prepared)
    prepared = prepared.replace("π", "pi")
    prepared = _INFINITY.sub("oo", prepared)
    prepared = prepared.replace("·", "*")
    return prepared


def _check_notation(prepared: str) -> None:
    if not _ALLOWED_CHARS.fullmatch(prepared):
        bad = sorted({c for c in prepared if not _ALLOWED_CHARS.fullmatch(c)})
        raise ValueError(f"Unsupported characters {bad}")
    if _ATTRIBUTE.search(prepared):
        raise ValueError("Attribute access is not part of the notation")
    for name in _NAME.findall(prepared):
        if name in FUNCTIONS or name in CONSTANTS or len(name) == 1:
            continue
        if set(name) <= PRODUCT_VARIABLES:
            continue
        raise ValueError(f"Unknown name '{name}'")


def parse_expression(text: str) -> Expr:
    """Parse an expression string. Raises ValueError on anything unparseable."""
    prepared = _prepare(text)
    if not prepared:
        raise ValueError("Empty expression string.")
    try:
        _check_notation(prepared)
        return parse_expr(
            prepared,
            local_dict=dict(LOCAL_NAMES),
            global_dict=dict(GLOBAL_NAMES),
            transformations=TRANSFORMATIONS,
        )
    except Exception as exc:
        raise ValueError(f"Cannot parse '{text}': {exc}") from exc


def validate_expression(text: str) -> Tuple[bool, str]:
    """
    Attempt to parse an expression with SymPy.
    Returns (is_valid, error_message).
    An empty error_message means success.
    """
    try:
        parse_expression(text)
        return True, ""
    except ValueError as exc:
        logger.debug("Invalid expression '%s': %s", text[:60], exc)
        return False, str(exc)


def normalize_expression(text: str) -> str:
    """Render SymPy-style output in the caret notation used by the frontend."""
    return " ".join(text.replace("**", "^").split())
