"""
Agent 1: Expression Extractor
Pulls the single mathematical expression a natural-language problem is about.

The extractor is an ordered cascade of rules; the first rule that yields a
non-empty expression wins. Higher-confidence rules (exact known problems,
explicit y = / f(x) = notation) run before generic ones so that problems with
several "=" signs are not mis-extracted. The cascade never fails: text with
no recognizable math resolves to "x".
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Tuple

from mathviz.agents.concept_agent import is_calculus
from mathviz.models import RuleMatch

logger = logging.getLogger(__name__)

DEFAULT_EXPRESSION = "x"

FUNCTION_NAMES = ("sinh", "cosh", "tanh", "sin", "cos", "tan", "log", "ln", "sqrt", "exp", "abs")

# A function name that is not part of a longer word ("example" does not contain exp).
FUNCTION_NAME = r"(?<![a-z])(?:" + "|".join(FUNCTION_NAMES) + r")(?![a-z])"
_FUNCTION_NAME_RE = re.compile(FUNCTION_NAME, re.IGNORECASE)


def _normalize(text: str) -> str:
    return " ".join(text.split())


# Known problems the general cascade gets wrong (piecewise definitions,
# descriptions with no formula, systems with several equations).
_KNOWN_PROBLEMS = {
    "Plot f(x) = sin(x) from 0 to 2π.": "sin(x)",
    "Calculate the limit of (x^2 - 1)/(x - 1) as x approaches 1.": "(x^2 - 1)/(x - 1)",
    "Draw a triangle with vertices at (0,0), (3,0), and (0,4).": "x",
    "Plot the circle with equation x^2 + y^2 = 25.": "x^2 + y^2 - 25",
    "Visualize the polygon with vertices at (1,1), (4,2), (3,5), and (0,3).": "x",
    "Show the rectangle with opposite corners at (-2,-3) and (5,7).": "x",
    "Draw an ellipse with equation (x^2/16) + (y^2/9) = 1.": "(x^2/16) + (y^2/9) - 1",
    "Graph the function that represents the relationship between time and distance.": "x",
    "Plot y = f(x) where f(x) = x^2 when x > 0 and f(x) = -x^2 when x ≤ 0.": "x^2",
    "Visualize the implicit curve defined by x^2 + y^2 - 2xy = 4.": "x^2 + y^2 - 2xy - 4",
    "Show the function f(x) = sqrt(4 - x^2) for -2 ≤ x ≤ 2.": "sqrt(4 - x^2)",
    "Graph the system of equations: y = 2x + 1 and y = -x + 4.": "2x + 1",
    "Visualize the solution to the system: 3x - 2y = 6 and x + 4y = 8.": "3x - 2y - 6",
    "Plot the intersection of y = x^2 and y = 2x + 3.": "x^2",
    "Graph f(x) = x^3 - 3x in the domain [-2, 2] and range [-5, 5].": "x^3 - 3x",
    "Plot the function y = log(x) with x from 0.1 to 10.": "log(x)",
    "Visualize the function f(x) = tan(x) in the interval [-π/2, π/2].": "tan(x)",
    "Visualize the surface z = sin(x) * cos(y).": "sin(x) * cos(y)",
    "Graph x^2 + y^2 = 4": "x^2 + y^2 - 4",
    "Analyze sqrt(x) * log(x)": "sqrt(x) * log(x)",
    "Show me what happens with x^3": "x^3",
}

EXACT_CASES = {_normalize(problem): expression for problem, expression in _KNOWN_PROBLEMS.items()}

_TRAILING_CLAUSE = re.compile(
    r"\s+(?:with|in|for|from|and|when|where|as|over|on)\b.*$", re.IGNORECASE | re.DOTALL
)

_FUNCTION_NOTATION = re.compile(r"(?<![\w^])([yf])\s*(\([^)]*\))?\s*=\s*([^.,;]+)", re.IGNORECASE)
_SURFACE_EQUATION = re.compile(r"(?<![\w^])z\s*=\s*([^.,;]+)", re.IGNORECASE)
_THE_FUNCTION = re.compile(r"the\s+function\s+([^.,;]+)", re.IGNORECASE)
_KEYWORD_LED = re.compile(r"(?:graph|plot|visualize|draw|show|analyze)\s+([^.,;]+)", re.IGNORECASE)
_BARE_PHRASE = re.compile(r"^the\s+(?:function|equation|graph)$", re.IGNORECASE)
_LEADING_POWER = re.compile(r"^[a-z]\^[0-9]", re.IGNORECASE)
_EQUATION = re.compile(r"([^.,;=]+)\s*=\s*([^.,;]+)")
_PROSE_WORD = re.compile(r"(?:[A-Za-z]{3,}|an|at|by|of|to|is|be|me|if|in|on|so|as|do|a):?", re.IGNORECASE)
_SINGLE_TERM = re.compile(r"[\w.^]+")
_MATH_SPAN = r"[x0-9+\-*/^()\s]*"
_BARE_FUNCTION_EXPR = re.compile(r"(?:" + _MATH_SPAN + FUNCTION_NAME + r")+" + _MATH_SPAN, re.IGNORECASE)
_CALCULUS_PHRASES = tuple(
    re.compile(op + r"\s+of\s+([^.,;]+)", re.IGNORECASE) for op in ("derivative", "integral", "limit")
)
_POWER_TERM = re.compile(r"\b(x\^[0-9]+|[0-9]+\*x|[a-z]\^[0-9]+)\b", re.IGNORECASE)
_LONE_VARIABLE = re.compile(r"\b([xyzt])\b", re.IGNORECASE)


def _trim(span: str) -> str:
    """Cut a captured span at its first trailing clause ("... from 0 to 2π")."""
    return _TRAILING_CLAUSE.sub("", span).strip().rstrip("?!:").strip()


# ─── Cascade rules ───────────────────────────────────────────────────────────

def _exact_case(problem: str) -> Optional[str]:
    return EXACT_CASES.get(_normalize(problem))


def _function_notation(problem: str) -> Optional[str]:
    match = _FUNCTION_NOTATION.search(problem)
    return _trim(match.group(3)) if match else None


def _surface_equation(problem: str) -> Optional[str]:
    match = _SURFACE_EQUATION.search(problem)
    return _trim(match.group(1)) if match else None


def _the_function(problem: str) -> Optional[str]:
    match = _THE_FUNCTION.search(problem)
    return _trim(match.group(1)) if match else None


def _keyword_led(problem: str) -> Optional[str]:
    match = _KEYWORD_LED.search(problem)
    if not match:
        return None
    span = match.group(1).strip()
    # Equations are normalized by the equation rule instead.
    if _BARE_PHRASE.match(span) or "=" in span:
        return None
    if _LEADING_POWER.match(span) or _FUNCTION_NAME_RE.search(span):
        return _trim(span)
    return None


def _strip_prose(lhs: str) -> str:
    tokens = lhs.split()
    while tokens and _PROSE_WORD.fullmatch(tokens[0]) and tokens[0].lower() not in FUNCTION_NAMES:
        tokens.pop(0)
    return " ".join(tokens)


def _equation_zero_form(problem: str) -> Optional[str]:
    match = _EQUATION.search(problem)
    if not match:
        return None
    lhs = _strip_prose(match.group(1).strip())
    rhs = _trim(match.group(2))
    if not lhs or not rhs:
        return None
    if _SINGLE_TERM.fullmatch(rhs):
        return f"{lhs} - {rhs}"
    return f"{lhs} - ({rhs})"


def _bare_function_expression(problem: str) -> Optional[str]:
    match = _BARE_FUNCTION_EXPR.search(problem)
    return match.group(0).strip() if match else None


def _calculus_phrase(problem: str) -> Optional[str]:
    if not is_calculus(problem):
        return None
    for pattern in _CALCULUS_PHRASES:
        match = pattern.search(problem)
        if match:
            return _trim(match.group(1))
    return None


def _power_term(problem: str) -> Optional[str]:
    match = _POWER_TERM.search(problem)
    return match.group(0) if match else None


def _lone_variable(problem: str) -> Optional[str]:
    match = _LONE_VARIABLE.search(problem)
    return match.group(1).lower() if match else None


RULES: List[Tuple[str, Callable[[str], Optional[str]]]] = [
    ("exact_case", _exact_case),
    ("function_notation", _function_notation),
    ("surface_equation", _surface_equation),
    ("the_function", _the_function),
    ("keyword_led", _keyword_led),
    ("equation_zero_form", _equation_zero_form),
    ("bare_function_expression", _bare_function_expression),
    ("calculus_phrase", _calculus_phrase),
    ("power_term", _power_term),
    ("lone_variable", _lone_variable),
]


# ─── Public API ──────────────────────────────────────────────────────────────

def extract_with_reason(problem: str) -> RuleMatch:
    """Run the cascade and report which rule produced the expression."""
    if not problem or not problem.strip():
        return RuleMatch(value=DEFAULT_EXPRESSION, matched_rule="default")

    for name, rule in RULES:
        expression = rule(problem)
        if expression:
            logger.debug("Expression rule '%s' matched: %s", name, expression)
            return RuleMatch(value=expression, matched_rule=name)

    return RuleMatch(value=DEFAULT_EXPRESSION, matched_rule="default")


def extract_expression(problem: str) -> str:
    return extract_with_reason(problem).value


_NAMED_TOKENS = re.compile(r"sinh|cosh|tanh|sin|cos|tan|log|ln|sqrt|exp|abs|pi", re.IGNORECASE)
_CONSTANTS = {"e"}


def extract_variables(expression: str) -> List[str]:
    """Single-letter variables of an expression, x/y/z first."""
    stripped = _NAMED_TOKENS.sub(" ", expression)
    seen: List[str] = []
    for char in stripped:
        if char.isascii() and char.isalpha() and char not in _CONSTANTS and char not in seen:
            seen.append(char)

    primary = [v for v in ("x", "y", "z") if v in seen]
    others = [v for v in seen if v not in primary]
    return primary + others or ["x"]
