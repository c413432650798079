"""
Agent 2: Concept Classifier
Assigns a concept type and a subtype to a problem from keyword tests.

Both classifications are ordered (name, predicate, value) tables evaluated
first-match-wins. Calculus keywords outrank everything else because calculus
problems usually also say "graph" or "plot". Text that matches nothing falls
back to a documented default rather than signalling uncertainty; callers that
need to tell the two apart use the *_with_reason variants.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Tuple

from mathviz.models import CONCEPT_SUBTYPES, RuleMatch

logger = logging.getLogger(__name__)

Rule = Tuple[str, Callable[[str], bool], str]

DEFAULT_TYPE = "function2D"
DEFAULT_SUBTYPES: Dict[str, str] = {
    "function2D": "general",
    "function3D": "surface",
    "geometry": "general",
    "calculus": "general",
    "linearAlgebra": "general",
    "probability": "general",
    "statistics": "general",
}

SUBTYPES = CONCEPT_SUBTYPES


def _matches(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern, re.IGNORECASE)
    return lambda problem: bool(compiled.search(problem))


_CALCULUS = _matches(r"derivative|integral|differentiate|integrate|limit|maximize|minimize")
_GRAPHING = _matches(r"graph|plot|function|equation|y\s*=|f\s*\(")
_THREE_D = _matches(r"3D|three dimensional|surface|space curve")


def is_calculus(problem: str) -> bool:
    return _CALCULUS(problem)


TYPE_RULES: List[Rule] = [
    ("calculus_keywords", _CALCULUS, "calculus"),
    ("graphing_3d", lambda p: _GRAPHING(p) and _THREE_D(p), "function3D"),
    ("graphing", _GRAPHING, "function2D"),
    ("geometry_nouns", _matches(r"geometry|triangle|circle|polygon|line|point|angle"), "geometry"),
    ("linear_algebra_nouns", _matches(r"matrix|matrices|vector|linear|system of equation"), "linearAlgebra"),
    ("probability_nouns", _matches(r"probability|random|chance|likelihood"), "probability"),
    ("statistics_nouns", _matches(r"dataset|distribution|mean|median|variance|standard deviation"), "statistics"),
]

SUBTYPE_RULES: Dict[str, List[Rule]] = {
    "function2D": [
        ("polynomial", _matches(r"polynomial|quadratic|cubic"), "polynomial"),
        ("trigonometric", _matches(r"trigonometric|(?<![a-z])(?:sin|cos|tan|sec|csc|cot)"), "trigonometric"),
        ("exponential", _matches(r"exponential|(?<![a-z])exp|e\^"), "exponential"),
        ("logarithmic", _matches(r"logarithm|(?<![a-z])(?:log|ln)(?![a-z])"), "logarithmic"),
        ("rational", _matches(r"rational|fraction|divide"), "rational"),
    ],
    "function3D": [
        ("surface", _matches(r"surface"), "surface"),
        ("parametric", _matches(r"parametric"), "parametric"),
        ("vector_field", _matches(r"vector field"), "vectorField"),
    ],
    "geometry": [
        ("triangle", _matches(r"triangle"), "triangle"),
        ("circle", _matches(r"circle"), "circle"),
        ("polygon", _matches(r"polygon|quadrilateral|rectangle|square|pentagon|hexagon"), "polygon"),
        ("construction", _matches(r"construction|construct|bisector"), "construction"),
    ],
    "calculus": [
        ("derivative", _matches(r"derivative|differentiate"), "derivative"),
        ("integral", _matches(r"integral|integrate"), "integral"),
        ("limit", _matches(r"limit"), "limit"),
    ],
    "linearAlgebra": [
        ("matrix", _matches(r"matrix|matrices|determinant|eigen"), "matrix"),
        ("vector", _matches(r"vector"), "vector"),
        ("system", _matches(r"system of equation|linear system"), "system"),
    ],
    "probability": [
        ("discrete", _matches(r"coin|dice|die\b|card|binomial|discrete"), "discrete"),
        ("continuous", _matches(r"normal|uniform|continuous|density"), "continuous"),
    ],
    "statistics": [
        ("regression", _matches(r"regression|correlation|line of best fit"), "regression"),
        ("distribution", _matches(r"distribution|histogram"), "distribution"),
        ("descriptive", _matches(r"mean|median|mode|variance|standard deviation"), "descriptive"),
    ],
}


def _first_match(problem: str, rules: List[Rule], default: str) -> RuleMatch:
    text = problem or ""
    for name, predicate, value in rules:
        if predicate(text):
            return RuleMatch(value=value, matched_rule=name)
    return RuleMatch(value=default, matched_rule="default")


def classify_type_with_reason(problem: str) -> RuleMatch:
    result = _first_match(problem, TYPE_RULES, DEFAULT_TYPE)
    logger.debug("Concept type: %s (rule=%s)", result.value, result.matched_rule)
    return result


def classify_subtype_with_reason(problem: str, concept_type: str) -> RuleMatch:
    rules = SUBTYPE_RULES.get(concept_type, [])
    default = DEFAULT_SUBTYPES.get(concept_type, "general")
    return _first_match(problem, rules, default)


def classify_type(problem: str) -> str:
    return classify_type_with_reason(problem).value


def classify_subtype(problem: str, concept_type: str) -> str:
    return classify_subtype_with_reason(problem, concept_type).value
