"""
Agent 5: Content Synthesizer
Fills fixed educational templates (title, summary, insights, steps,
questions) for an analysis. Pure lookup and format, no generation.

Banks are layered: the generic bank, then the (type, None) bank, then the
(type, subtype) bank, each overriding the fields it defines. Calculus banks
are keyed by the calculus result type, so a calculus problem whose oracle
call failed gets the generic calculus text rather than derivative text.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from mathviz.agents.parameter_agent import determine_level
from mathviz.config import settings
from mathviz.models import Analysis, EducationalContent, Question, Step

logger = logging.getLogger(__name__)

Bank = Dict[str, Any]

BASE_INSIGHTS = [
    "Observe the relationship between variables",
    "Understand the mathematical principles illustrated",
]

BASE_QUESTION = (
    "What happens to the visualization when parameters change?",
    "Changes in parameters result in corresponding changes to the visual representation, "
    "demonstrating how the mathematical concept responds to different inputs.",
)

GENERIC_BANK: Bank = {
    "title": "Mathematical Visualization: {expression}",
    "summary": "This visualization presents a mathematical concept related to {type}, providing an "
               "interactive way to explore and understand the underlying principles.",
    "insights": [
        "Notice how changes in parameters affect the output",
        "Identify patterns and relationships in the visualization",
    ],
    "steps": [
        ("Observe the overall shape and behavior", "General characteristics of the visualization"),
        ("Identify key features or points of interest",
         "Notable elements like intercepts, extrema, or special cases"),
        ("Explore how changing parameters affects the result", "Dynamic behavior and dependencies"),
    ],
    "questions": [
        ("What mathematical principles are illustrated in this visualization?",
         "The visualization demonstrates concepts such as functions, relationships between variables, "
         "geometric properties, or analytical techniques relevant to the specific mathematical field."),
    ],
}

BANKS: Dict[Tuple[str, Optional[str]], Bank] = {
    # ── 2D functions ─────────────────────────────────────────────────────────
    ("function2D", None): {
        "title": "Graph of the function f(x) = {expression}",
        "summary": "This visualization explores the behavior of the function f(x) = {expression} across "
                   "different input values, showing how the output changes in response to changes in the input.",
        "insights": [
            "Notice how changes in x affect the output y = f(x)",
            "Identify key features such as intercepts, maxima, and minima",
            "Observe any symmetry, asymptotes, or periodicity in the function",
        ],
        "questions": [
            ("What are the notable features of this function?",
             "Key features may include intercepts, maxima, minima, asymptotes, or regions of particular behavior."),
            ("How would you describe the end behavior of this function?",
             "The end behavior describes what happens as x approaches positive or negative infinity. Different "
             "types of functions have characteristic end behaviors (e.g., polynomials, exponentials, rationals)."),
        ],
    },
    ("function2D", "polynomial"): {
        "title": "Exploring Polynomial Functions: {expression}",
    },
    ("function2D", "trigonometric"): {
        "title": "Visualizing Trigonometric Functions: {expression}",
        "insights": [
            "Trigonometric functions repeat their values over regular intervals",
            "Amplitude, period and phase shift describe the shape of the wave",
        ],
    },
    ("function2D", "exponential"): {
        "title": "Understanding Exponential Functions: {expression}",
        "insights": [
            "The rate of change of an exponential function is proportional to its value",
            "Observe the horizontal asymptote and the y-intercept",
        ],
    },
    ("function2D", "logarithmic"): {
        "title": "Investigating Logarithmic Functions: {expression}",
        "insights": [
            "Logarithmic functions are the inverse of exponential functions",
            "Observe the vertical asymptote and the slow rate of increase",
        ],
    },
    ("function2D", "rational"): {
        "title": "Graph of the rational function f(x) = {expression}",
    },
    # ── 3D functions ─────────────────────────────────────────────────────────
    ("function3D", None): {
        "title": "3D Visualization of the {subtype} f(x,y) = {expression}",
        "summary": "This 3D visualization demonstrates how the function f(x,y) = {expression} maps inputs to "
                   "outputs, creating a surface in three-dimensional space.",
        "insights": [
            "Examine how the output changes across the x-y plane",
            "Identify features like peaks, valleys, and saddle points",
            "Observe patterns of level curves (contours) in the surface",
        ],
        "questions": [
            ("What are the key features of this surface?",
             "Key features may include peaks, valleys, saddle points, plateaus, or intersections with the "
             "coordinate planes."),
            ("How do level curves help understand this 3D function?",
             "Level curves (or contour lines) show where the function has the same z-value, similar to elevation "
             "lines on a topographic map. They help visualize the shape and behavior of the surface in 2D."),
        ],
    },
    ("function3D", "vectorField"): {
        "title": "3D Visualization of the vector field {expression}",
    },
    # ── Geometry ─────────────────────────────────────────────────────────────
    ("geometry", None): {
        "title": "Geometric Visualization: {subtype}",
        "summary": "This geometric visualization examines properties and relationships in {subtype} geometry.",
        "insights": [
            "Explore the geometric relationships between points, lines, and shapes",
            "Understand how changing one element affects the overall structure",
            "Apply geometric principles to analyze properties like area and angle measures",
        ],
    },
    ("geometry", "triangle"): {"title": "Exploring Triangle Properties"},
    ("geometry", "circle"): {"title": "Understanding Circle Geometry"},
    ("geometry", "polygon"): {"title": "Investigating Polygon Properties"},
    # ── Calculus ─────────────────────────────────────────────────────────────
    ("calculus", None): {
        "title": "Calculus Concepts: {expression}",
        "summary": "This visualization illustrates key calculus ideas for the function {expression}, building "
                   "intuition for how quantities change and accumulate.",
        "insights": [
            "Calculus studies how quantities change and accumulate",
            "The shape of a graph reveals where a function grows, shrinks, or levels off",
        ],
    },
    ("calculus", "derivative"): {
        "title": "Derivative of {expression}",
        "summary": "The derivative of {expression} with respect to {variable} is {result}",
        "insights": [
            "The derivative represents the rate of change of the function",
            "Locations where the derivative equals zero correspond to horizontal tangents",
            "The sign of the derivative indicates whether the function is increasing or decreasing",
        ],
        "steps": [
            ("Observe the original function", "Understand the shape and behavior of the original function"),
            ("Examine the derivative function", "Notice where the derivative is positive, negative, or zero"),
            ("Connect the two functions",
             "See how slopes on the original function correspond to values on the derivative"),
            ("Identify critical points",
             "Find where the derivative equals zero and determine if they are maxima, minima, or neither"),
        ],
        "questions": [
            ("What does the derivative tell us about the original function?",
             "The derivative tells us the rate of change or slope of the original function at each point. "
             "Positive derivatives indicate the function is increasing, negative derivatives indicate it is "
             "decreasing, and zero derivatives correspond to horizontal tangents (potential extrema)."),
            ("Where does the original function have maximum and minimum values?",
             "The function has potential extrema where the derivative equals zero. To classify a critical point, "
             "examine the sign of the derivative on either side of it or analyze the second derivative."),
        ],
    },
    ("calculus", "integral"): {
        "title": "Integral of {expression}",
        "summary": "The integral of {expression} with respect to {variable} is {result}",
        "insights": [
            "The integral represents the area under the curve",
            "The Fundamental Theorem of Calculus connects differentiation and integration",
            "The constant of integration shifts the antiderivative vertically",
        ],
        "steps": [
            ("Observe the original function", "Understand the shape and behavior of the function being integrated"),
            ("Examine the area under the curve",
             "Visualize how the area accumulates between the curve and the x-axis"),
            ("Study the antiderivative function",
             "See how the slope of the antiderivative at any point matches the value of the original function"),
            ("Explore different bounds of integration",
             "Understand how changing the limits affects the resulting area"),
        ],
        "questions": [
            ("What is the relationship between the original function and its integral?",
             "The integral of a function represents the accumulated area under the curve. The Fundamental "
             "Theorem of Calculus tells us that the derivative of the integral equals the original function."),
            ("How does the constant of integration affect the antiderivative?",
             "The constant of integration shifts the antiderivative vertically without changing its shape, "
             "since many functions share the same derivative and differ only by a constant."),
        ],
    },
    ("calculus", "limit"): {
        "title": "Limit of {expression} as {variable} → {limit_value}",
        "summary": "The limit of {expression} as {variable} approaches {limit_value} is {result}",
        "insights": [
            "The limit represents the value the function approaches as the input approaches a specific value",
            "A function can have a limit even if it is not defined at that point",
            "Limits are foundational to the concepts of continuity and derivatives",
        ],
        "questions": [
            ("What does it mean for a function to have a limit at a point?",
             "A function has a limit at a point if the function values approach a specific number as the input "
             "approaches that point. The function does not need to be defined at the point itself."),
            ("How do limits relate to continuity?",
             "A function is continuous at a point if the limit exists, the function is defined there, "
             "and the two values are equal."),
        ],
    },
    # ── Other domains ────────────────────────────────────────────────────────
    ("linearAlgebra", None): {
        "title": "Linear Algebra: {subtype}",
        "summary": "This visualization demonstrates concepts in linear algebra related to {subtype}, showing how "
                   "mathematical abstractions can be represented and understood visually.",
    },
    ("statistics", None): {
        "title": "Statistical Analysis: {subtype}",
        "summary": "This statistical visualization presents data and analytical concepts related to {subtype}, "
                   "helping to build intuition for statistical measures and their interpretations.",
    },
    ("probability", None): {
        "title": "Probability Concepts: {subtype}",
        "summary": "This probability visualization illustrates concepts related to {subtype}, demonstrating how "
                   "probabilistic outcomes can be visualized and understood intuitively.",
    },
}


def resolve_bank(concept_type: str, subtype: Optional[str]) -> Bank:
    """Merge generic -> (type, None) -> (type, subtype), later layers winning per field."""
    bank = dict(GENERIC_BANK)
    bank.update(BANKS.get((concept_type, None), {}))
    if subtype is not None:
        bank.update(BANKS.get((concept_type, subtype), {}))
    return bank


def _template_values(analysis: Analysis) -> Dict[str, str]:
    concept = analysis.concept
    result = analysis.calculus_result
    subtype = concept.subtype
    if subtype == "general" and concept.type.startswith("function"):
        subtype = "function"
    return {
        "type": concept.type,
        "subtype": subtype,
        "expression": result.original_expression if result else concept.expression,
        "variable": result.variable if result else (concept.variables[0] if concept.variables else "x"),
        "limit_value": (result.limit_value or "") if result else "",
        "result": result.expression if result else concept.expression,
    }


def _dedupe(items: List[str]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def synthesize(analysis: Analysis) -> EducationalContent:
    concept = analysis.concept
    if concept.type == "calculus":
        bank_key = analysis.calculus_result.type if analysis.calculus_result else None
    else:
        bank_key = concept.subtype
    bank = resolve_bank(concept.type, bank_key)
    values = _template_values(analysis)

    insights = _dedupe([text.format(**values) for text in bank["insights"]] + BASE_INSIGHTS)
    steps = [Step(description=d.format(**values), focus=f.format(**values)) for d, f in bank["steps"]]
    questions = [
        Question(text=t.format(**values), answer=a.format(**values))
        for t, a in list(bank["questions"]) + [BASE_QUESTION]
    ][:settings.max_questions]

    content = EducationalContent(
        title=bank["title"].format(**values),
        summary=bank["summary"].format(**values),
        key_insights=insights,
        level=determine_level(analysis.visualization.complexity),
        steps=steps,
        questions=questions,
    )
    logger.debug("Educational content: %s (bank=%s/%s)", content.title, concept.type, bank_key)
    return content
