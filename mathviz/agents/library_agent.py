"""
Agent 4: Library Selector
Picks the visualization library for an analysis and describes the code the
frontend needs to load it. Pure and deterministic: the same analysis always
selects the same library.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Tuple

from mathviz.config import settings
from mathviz.models import Analysis, CodeSpec, Concept, Viewport, Visualization

logger = logging.getLogger(__name__)

LibraryRule = Tuple[str, Callable[[Concept, Visualization], bool], str]

FALLBACK_LIBRARY = "jsxgraph"


def _has_depth(visualization: Visualization) -> bool:
    return visualization.viewport.z != settings.default_axis()


DECISION_RULES: List[LibraryRule] = [
    ("three_dimensional", lambda c, v: v.dimensionality == "3D" or _has_depth(v), "mathbox"),
    ("function_2d", lambda c, v: c.type == "function2D", "mafs"),
    ("geometry", lambda c, v: c.type == "geometry", "jsxgraph"),
    ("calculus", lambda c, v: c.type == "calculus", "mafs"),
    ("data", lambda c, v: c.type in ("statistics", "probability"), "d3"),
]


def library_decision_tree(concept: Concept, visualization: Visualization) -> str:
    for name, predicate, library in DECISION_RULES:
        if predicate(concept, visualization):
            logger.debug("Library rule '%s' selected %s", name, library)
            return library
    return FALLBACK_LIBRARY


def select_library(analysis: Analysis) -> str:
    """An explicit recommendation wins; otherwise walk the decision tree."""
    recommended = analysis.visualization.recommended_library
    if recommended:
        return recommended
    return library_decision_tree(analysis.concept, analysis.visualization)


ALTERNATIVES: Dict[str, List[str]] = {
    "function2D": ["desmos", "jsxgraph", "d3"],
    "function3D": ["three", "grafar"],
    "geometry": ["cindyjs", "euclidjs", "geogebra"],
}
GENERIC_ALTERNATIVES = ["p5", "three", "d3", "jsxgraph"]


def alternative_libraries(concept_type: str, primary: str) -> List[str]:
    candidates = ALTERNATIVES.get(concept_type, GENERIC_ALTERNATIVES)
    return [lib for lib in candidates if lib != primary]


# ─── Code descriptor ─────────────────────────────────────────────────────────

DEPENDENCIES: Dict[str, List[str]] = {
    "mathbox": ["mathbox", "three"],
}


def library_dependencies(library: str) -> List[str]:
    return list(DEPENDENCIES.get(library, [library]))


def code_template(concept: Concept, library: str) -> str:
    if concept.type == "calculus" and concept.subtype != "general":
        return f"{library}_{concept.subtype}"
    return f"{library}_{concept.type}"


def library_configuration(library: str, viewport: Viewport) -> Dict[str, Any]:
    if library == "mathbox":
        return {
            "colors": {"background": "#FFFFFF", "primary": "#3090FF"},
            "controls": True,
            "camera": {"position": [3, 3, 3], "lookAt": [0, 0, 0]},
        }
    if library == "mafs":
        return {"theme": "light", "showGrid": True, "preserveAspectRatio": False}
    if library == "jsxgraph":
        return {
            "showNavigation": True,
            "showAxis": True,
            "showGrid": True,
            "boundingBox": list(viewport.x) + list(viewport.y),
        }
    if library == "d3":
        return {
            "margin": {"top": 40, "right": 40, "bottom": 60, "left": 60},
            "showGrid": True,
            "showAxis": True,
            "colors": ["#3090FF", "#FF5733", "#32CD32"],
        }
    return {}


def build_code_spec(concept: Concept, library: str, viewport: Viewport) -> CodeSpec:
    return CodeSpec(
        library=library,
        dependencies=library_dependencies(library),
        template=code_template(concept, library),
        configuration=library_configuration(library, viewport),
    )
