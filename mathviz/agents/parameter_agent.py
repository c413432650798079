"""
Agent 3: Parameter Extractor
Derives the viewport, named points, constraints and visualization traits
from problem text, and resolves calculus operations through the math oracle.

Viewport extraction is a pipeline of pure functions. Each returns a partial
{axis: [min, max]} update; updates are merged in VIEWPORT_EXTRACTORS order,
so a later, more specific phrase ("x in [0, 5]") overrides an earlier generic
one ("domain [-2, 2]") on the same axis.

Calculus resolution never raises: oracle errors, timeouts and explicit
OracleResult failures all degrade to "no calculus result".
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import string
from typing import Callable, Dict, List, Optional, Tuple

from mathviz.config import settings
from mathviz.models import (
    CalculusResult,
    ExtractedParameters,
    Feature,
    OracleResult,
    PlotFunction,
    Point,
    Viewport,
)
from mathviz.modules.math_oracle import MathOracle, get_oracle

logger = logging.getLogger(__name__)

POINT_COLOR = "#3090FF"

ViewportUpdate = Dict[str, List[float]]

_NUMBER = r"-?(?:\d+(?:\.\d+)?|\.\d+)"
_INTERVAL = r"\[?\s*(" + _NUMBER + r")\s*(?:,|to|and)\s*(" + _NUMBER + r")\s*\]?"
_AXIS_KEYWORD = r"\s*(?:in|from|between|∈)?\s*"
_LESS_EQUAL = r"\s*(?:≤|<=|<)\s*"


def _interval_extractor(axis: str, pattern: str) -> Callable[[str], ViewportUpdate]:
    compiled = re.compile(pattern, re.IGNORECASE)

    def extract(problem: str) -> ViewportUpdate:
        match = compiled.search(problem)
        if not match:
            return {}
        # Viewport axes are [min, max] whichever order the text gives them in.
        bounds = sorted([float(match.group(1)), float(match.group(2))])
        if not all(math.isfinite(b) for b in bounds):
            return {}
        return {axis: bounds}

    return extract


VIEWPORT_EXTRACTORS: List[Tuple[str, Callable[[str], ViewportUpdate]]] = [
    ("domain", _interval_extractor("x", r"domain\s*(?:is|of|=)?\s*" + _INTERVAL)),
    ("range", _interval_extractor("y", r"range\s*(?:is|of|=)?\s*" + _INTERVAL)),
    ("x_inequality", _interval_extractor("x", r"(" + _NUMBER + r")" + _LESS_EQUAL + r"x" + _LESS_EQUAL + r"(" + _NUMBER + r")")),
    ("x_interval", _interval_extractor("x", r"(?<![a-z])x" + _AXIS_KEYWORD + _INTERVAL)),
    ("y_interval", _interval_extractor("y", r"(?<![a-z])y" + _AXIS_KEYWORD + _INTERVAL)),
    ("z_interval", _interval_extractor("z", r"(?<![a-z])z" + _AXIS_KEYWORD + _INTERVAL)),
]


def extract_viewport(problem: str) -> Viewport:
    axes: ViewportUpdate = {"x": settings.default_axis(), "y": settings.default_axis(), "z": settings.default_axis()}
    for name, extractor in VIEWPORT_EXTRACTORS:
        update = extractor(problem or "")
        if update:
            logger.debug("Viewport extractor '%s' set %s", name, update)
            axes.update(update)
    return Viewport(**axes)


# ─── Points ──────────────────────────────────────────────────────────────────

_POINT_TRIGGER = re.compile(r"points?\s+at\s*\(|vertices\s+(?:at\s+)?\(|corners\s+at\s*\(", re.IGNORECASE)
_TUPLE = re.compile(r"\(([^()]+)\)")


def _parse_coordinates(body: str) -> Optional[List[float]]:
    parts = [part.strip() for part in body.split(",")]
    if len(parts) < 2:
        return None
    try:
        coordinates = [float(part) for part in parts]
    except ValueError:
        return None
    if not all(math.isfinite(c) for c in coordinates):
        return None
    return coordinates


def _label(index: int) -> str:
    letter = string.ascii_uppercase[index % 26]
    return letter if index < 26 else f"{letter}{index // 26}"


def extract_points(problem: str) -> List[Point]:
    """
    Points named by "points at (...)", "vertices (at) (...)" or "corners at (...)".
    Once triggered, every parenthesized tuple in the text is considered;
    tuples that are not all finite numbers (e.g. "f(x)") are dropped.
    """
    if not problem or not _POINT_TRIGGER.search(problem):
        return []

    coordinates = [c for c in (_parse_coordinates(m.group(1)) for m in _TUPLE.finditer(problem)) if c]
    return [Point(label=_label(i), coordinates=c, color=POINT_COLOR) for i, c in enumerate(coordinates)]


# ─── Constraints & functions ─────────────────────────────────────────────────

_CONSTRAINT_CLAUSE = re.compile(r"(?:where|with(?!\s+respect)|such that|constraint)\s+([^.,;]+)", re.IGNORECASE)
_DOMAIN_PHRASE = re.compile(r"domain\s*(?:is|=)?\s*(\[[^\]]*\]|[^.,;]+)", re.IGNORECASE)
_RANGE_PHRASE = re.compile(r"range\s*(?:is|=)?\s*(\[[^\]]*\]|[^.,;]+)", re.IGNORECASE)


def extract_constraints(problem: str) -> List[str]:
    constraints = [m.group(1).strip() for m in _CONSTRAINT_CLAUSE.finditer(problem or "")]

    domain = _DOMAIN_PHRASE.search(problem or "")
    if domain:
        constraints.append(f"domain: {domain.group(1).strip()}")
    range_ = _RANGE_PHRASE.search(problem or "")
    if range_:
        constraints.append(f"range: {range_.group(1).strip()}")
    return constraints


_RESULT_STYLES = {
    "derivative": ("f'", "#FF5733"),
    "integral": ("∫f", "#32CD32"),
}


def extract_functions(
    expression: str,
    domain: List[float],
    calculus_result: Optional[CalculusResult] = None,
) -> List[PlotFunction]:
    """The plotted curves: the original function and, if any, the calculus result."""
    if calculus_result:
        original = calculus_result.original_expression
    else:
        original = expression
    functions = [PlotFunction(label="f", expression=original, domain=domain, color=POINT_COLOR)]

    if calculus_result:
        label, color = _RESULT_STYLES.get(calculus_result.type, ("g", "#9932CC"))
        functions.append(PlotFunction(
            label=label,
            expression=calculus_result.expression,
            domain=domain,
            color=color,
            is_calculus_result=True,
            result_type=calculus_result.type,
        ))
    return functions


# ─── Visualization traits ────────────────────────────────────────────────────

def _has(pattern: str, problem: str) -> bool:
    return bool(re.search(pattern, problem or "", re.IGNORECASE))


def determine_dimensionality(problem: str) -> str:
    return "3D" if _has(r"3D|three dimensional|surface|space curve|volume", problem) else "2D"


def determine_complexity(problem: str) -> str:
    if _has(r"complex|multiple|advanced|detailed|intricate|sophisticated", problem):
        return "advanced"
    if _has(r"simple|basic|elementary|straightforward", problem):
        return "basic"
    return "intermediate"


LEVELS = {"basic": "elementary", "intermediate": "secondary", "advanced": "undergraduate"}


def determine_level(complexity: str) -> str:
    return LEVELS.get(complexity, "secondary")


def determine_special_features(problem: str, operation: Optional[str] = None) -> List[Feature]:
    features = []
    if _has(r"animation|animate|changing|over time|movement", problem):
        features.append(Feature(
            type="animation",
            parameters={"duration": 5000, "loop": True},
            description="Animate the visualization over time",
        ))
    if _has(r"highlight|emphasize|focus on", problem):
        features.append(Feature(
            type="highlighting",
            parameters={"color": "#FF5733"},
            description="Highlight important elements in the visualization",
        ))
    if operation == "derivative":
        features.append(Feature(
            type="tangent",
            parameters={"color": "#FF5733", "interactive": True},
            description="Display tangent lines at points on the curve",
        ))
    elif operation == "integral":
        features.append(Feature(
            type="area",
            parameters={"color": "#3090FF", "opacity": 0.3},
            description="Shade the area under the curve",
        ))
    return features


def determine_interactive_elements(problem: str, operation: Optional[str] = None) -> List[Feature]:
    elements = []
    if _has(r"slider|adjust|vary|parameter|change", problem):
        elements.append(Feature(
            type="slider",
            parameters={"min": 0, "max": 10, "step": 0.1, "initial": 1},
            description="Adjust parameters of the visualization",
        ))
    if _has(r"drag|move|position|relocate", problem):
        elements.append(Feature(type="draggable", description="Allow points or objects to be dragged"))
    if operation == "derivative":
        elements.append(Feature(
            type="point",
            parameters={"color": "#FF5733", "movable": True},
            description="Draggable point to show the derivative at different positions",
        ))
    return elements


# ─── Calculus ────────────────────────────────────────────────────────────────

_OPERATIONS: List[Tuple[str, str]] = [
    ("derivative", r"derivative|differentiate"),
    ("integral", r"integral|integrate"),
    ("limit", r"limit"),
]
_RESPECT_TO = re.compile(r"with respect to\s+([a-z])\b", re.IGNORECASE)
_LIMIT_APPROACH = re.compile(
    r"as\s+([a-z])\s+(?:approaches|tends to|goes to)\s+(.+?)\s*(?:[.?!](?:\s|$)|,|$)", re.IGNORECASE
)


def detect_operation(problem: str) -> Optional[str]:
    """derivative > integral > limit; maximize/minimize have no oracle operation."""
    for operation, pattern in _OPERATIONS:
        if _has(pattern, problem):
            return operation
    return None


def extract_variable(problem: str) -> str:
    match = _RESPECT_TO.search(problem or "")
    return match.group(1).lower() if match else "x"


def extract_limit_parameters(problem: str) -> Tuple[str, str]:
    match = _LIMIT_APPROACH.search(problem or "")
    if match:
        return match.group(1).lower(), match.group(2).strip()
    return "x", "0"


async def resolve_calculus(
    problem: str,
    expression: str,
    oracle: Optional[MathOracle] = None,
    concept_type: str = "calculus",
) -> Optional[CalculusResult]:
    """Ask the math oracle for the derivative/integral/limit the problem requests."""
    if concept_type != "calculus":
        return None
    operation = detect_operation(problem)
    if operation is None:
        return None

    limit_value = None
    if operation == "limit":
        variable, limit_value = extract_limit_parameters(problem)
    else:
        variable = extract_variable(problem)

    try:
        oracle = oracle or get_oracle()
        if operation == "derivative":
            pending = oracle.get_derivative(expression, variable)
        elif operation == "integral":
            pending = oracle.get_integral(expression, variable)
        else:
            pending = oracle.get_limit(expression, variable, limit_value)
        result: OracleResult = await asyncio.wait_for(pending, timeout=settings.oracle_timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("Math oracle timed out after %.1fs on %s of '%s'.",
                       settings.oracle_timeout_seconds, operation, expression)
        return None
    except Exception as exc:
        logger.warning("Math oracle failed on %s of '%s': %s", operation, expression, exc)
        return None

    if not result.ok or not result.expression:
        logger.warning("Math oracle could not compute %s of '%s': %s", operation, expression, result.error)
        return None

    if operation == "limit":
        description = (f"The limit of {expression} as {variable} approaches {limit_value} "
                       f"is {result.expression}")
    else:
        description = (f"The {operation} of {expression} with respect to {variable} "
                       f"is {result.expression}")

    return CalculusResult(
        type=operation,
        original_expression=expression,
        expression=result.expression,
        variable=variable,
        limit_value=limit_value,
        description=description,
    )


async def extract_parameters(
    problem: str,
    expression: str,
    concept_type: str,
    oracle: Optional[MathOracle] = None,
) -> ExtractedParameters:
    calculus_result = await resolve_calculus(problem, expression, oracle, concept_type)
    return ExtractedParameters(
        viewport=extract_viewport(problem),
        points=extract_points(problem),
        constraints=extract_constraints(problem),
        calculus_result=calculus_result,
    )
