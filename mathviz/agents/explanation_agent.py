"""
Agent 6: Solution Explanation
Builds a step-by-step walkthrough of a finished analysis, with practice
questions and references. One step builder per concept type; calculus steps
adapt to the features of the expression (powers, trig, exponentials, 1/x).
"""

from __future__ import annotations

import logging
import re
from typing import List

from mathviz.config import settings
from mathviz.models import (
    Analysis,
    CalculusResult,
    ExplanationStep,
    Point,
    PracticeQuestion,
    SolutionExplanation,
)

logger = logging.getLogger(__name__)

_POWER = re.compile(r"x\^(\d+)")


def polynomial_degree(expression: str) -> int:
    """Highest x^n exponent in the expression; 1 when there is none."""
    return max([1] + [int(p) for p in _POWER.findall(expression)])


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _interval(bounds: List[float]) -> str:
    return f"[{_num(bounds[0])}, {_num(bounds[1])}]"


def _coordinates(points: List[Point]) -> str:
    return ", ".join("(" + ", ".join(_num(c) for c in p.coordinates) + ")" for p in points)


def _step(title: str, content: str, emphasis: str = "") -> ExplanationStep:
    return ExplanationStep(title=title, content=content, emphasis=emphasis)


# ─── Practice questions ──────────────────────────────────────────────────────

BASE_QUESTIONS = [
    PracticeQuestion(question="What are the key features of this visualization?",
                     hint="Look for critical points, intercepts, and overall shape."),
    PracticeQuestion(question="How would this change if we modified a parameter?",
                     hint="Consider how changing coefficients or terms would affect the result."),
]


def practice_questions(concept_type: str, subtype: str = "general", expression: str = "") -> List[PracticeQuestion]:
    specific: List[PracticeQuestion] = []
    if concept_type == "function2D":
        specific = [
            PracticeQuestion(question=f"Find the zeroes of f(x) = {expression}.",
                             hint="Set the function equal to zero and solve for x."),
            PracticeQuestion(question=f"Determine where f(x) = {expression} is increasing and decreasing.",
                             hint="Look at where the derivative is positive or negative."),
        ]
    elif concept_type == "function3D":
        specific = [
            PracticeQuestion(question=f"Identify the critical points of f(x,y) = {expression}.",
                             hint="Look for points where both partial derivatives equal zero."),
            PracticeQuestion(question=f"Describe the behavior of f(x,y) = {expression} as x and y approach infinity.",
                             hint="Analyze the highest-degree terms in x and y."),
        ]
    elif concept_type == "calculus" and subtype == "derivative":
        specific = [
            PracticeQuestion(question=f"Find the critical points of f(x) = {expression}.",
                             hint="Set the derivative equal to zero and solve for x."),
            PracticeQuestion(question=f"Determine where f(x) = {expression} is concave up or concave down.",
                             hint="Look at the second derivative."),
        ]
    elif concept_type == "calculus" and subtype == "integral":
        specific = [
            PracticeQuestion(question=f"Calculate the definite integral of f(x) = {expression} from a to b.",
                             hint="Evaluate the antiderivative at the boundaries and find the difference."),
            PracticeQuestion(question=f"Find the average value of f(x) = {expression} over the interval [a, b].",
                             hint="Use the formula (1/(b-a)) * ∫_a^b f(x) dx."),
        ]
    elif concept_type == "calculus" and subtype == "limit":
        specific = [
            PracticeQuestion(question="Evaluate the limit from the left and right sides.",
                             hint="Check if the function approaches the same value from both directions."),
            PracticeQuestion(question="Is the function continuous at the point of interest?",
                             hint="Check if the limit equals the function value at that point."),
        ]
    elif concept_type == "geometry":
        specific = [
            PracticeQuestion(question="Calculate the area of the geometric figure.",
                             hint="Use appropriate area formulas based on the shape."),
            PracticeQuestion(question="Find the perimeter or circumference of the figure.",
                             hint="Calculate the sum of all sides or use the circle formula."),
        ]
    return (specific + BASE_QUESTIONS)[:settings.max_practice_questions]


# ─── Per-type builders ───────────────────────────────────────────────────────

_SUBTYPE_2D_STEPS = {
    "trigonometric": _step(
        "Trigonometric Analysis",
        "This trigonometric function has periodic behavior. We should look for key features like "
        "amplitude, period, phase shift, and vertical shift.",
        "Amplitude, Period, Phase Shift, Vertical Shift"),
    "exponential": _step(
        "Exponential Analysis",
        "Exponential functions grow quickly. This function will never cross the x-axis if it's a pure "
        "exponential function without any shift.",
        "Rapid Growth/Decay"),
    "logarithmic": _step(
        "Logarithmic Analysis",
        "Logarithmic functions grow slowly. The natural logarithm is undefined for non-positive inputs.",
        "Domain Restriction: x > 0 for natural logarithms"),
}


def _function_2d(analysis: Analysis) -> SolutionExplanation:
    concept, params = analysis.concept, analysis.parameters
    expression, subtype = concept.expression, concept.subtype

    steps = [
        _step("Understanding the Function",
              f"We're visualizing the function f(x) = {expression}. This is a {subtype} function.",
              f"f(x) = {expression}"),
        _step("Domain and Range",
              f"The domain (valid input values) is x ∈ {_interval(params.domain)}. Based on the function "
              f"behavior, the range (output values) is approximately y ∈ {_interval(params.range)}.",
              f"Domain: {_interval(params.domain)}, Range: {_interval(params.range)}"),
    ]
    if subtype == "polynomial":
        degree = polynomial_degree(expression)
        behavior = ("Even-degree polynomials have the same end behavior in both directions."
                    if degree % 2 == 0 else "Odd-degree polynomials have opposite end behaviors.")
        steps.append(_step("Polynomial Analysis", f"This is a degree {degree} polynomial. {behavior}",
                           f"Degree: {degree}"))
        steps.append(_step("Finding Zeroes",
                           f"To find where f(x) = 0, we would solve the equation {expression} = 0.",
                           f"{expression} = 0"))
    elif subtype in _SUBTYPE_2D_STEPS:
        steps.append(_SUBTYPE_2D_STEPS[subtype])
    steps.append(_step("Visual Analysis",
                       "Looking at the graph, we can identify key features such as intercepts, extrema "
                       "(maximum and minimum points), and the overall shape.",
                       "Intercepts, Extrema, Inflection Points"))

    return SolutionExplanation(
        title=f"Step-by-Step Analysis of f(x) = {expression}",
        summary=f"This guide walks through the analysis of the function f(x) = {expression}, "
                f"exploring its key features and behavior.",
        steps=steps,
        questions=practice_questions("function2D", subtype, expression),
        references=[
            "Functions and Their Graphs - Khan Academy",
            "Visual Calculus - MIT OpenCourseWare",
            "Desmos Graphing Calculator",
        ],
    )


_SUBTYPE_3D_STEPS = {
    "surface": _step(
        "Surface Analysis",
        "This function creates a 3D surface. Key features to look for include peaks, valleys, "
        "saddle points, and flatness.",
        "Peaks, Valleys, Saddle Points"),
    "parametric": _step(
        "Parametric Surface Analysis",
        "This is a parametric surface, generated by parameters that vary independently. The shape is "
        "determined by how these parameters map to 3D coordinates.",
        "Parameter Mapping, Coordinate Transformation"),
    "vectorField": _step(
        "Vector Field Analysis",
        "This visualization represents a vector field in 3D space. Each point has an associated vector "
        "showing direction and magnitude.",
        "Vector Direction, Magnitude, Field Patterns"),
}


def _function_3d(analysis: Analysis) -> SolutionExplanation:
    concept, params = analysis.concept, analysis.parameters
    expression = concept.expression
    x, y, z = params.domain, params.range, analysis.visualization.viewport.z

    steps = [
        _step("Understanding the 3D Function",
              f"We're visualizing the function f(x,y) = {expression}. This creates a surface in 3D space.",
              f"f(x,y) = {expression}"),
        _step("Domain and Range",
              f"The domain is x ∈ {_interval(x)} and y ∈ {_interval(y)}. The range of the function "
              f"(z-values) is approximately z ∈ {_interval(z)}.",
              f"Domain: x ∈ {_interval(x)}, y ∈ {_interval(y)}; Range: z ∈ {_interval(z)}"),
    ]
    if concept.subtype in _SUBTYPE_3D_STEPS:
        steps.append(_SUBTYPE_3D_STEPS[concept.subtype])
    steps.append(_step("Level Curves/Contours",
                       "Level curves (or contour lines) show points where the function has the same z-value. "
                       "They help us understand the topography of the surface.",
                       "Constant z-values, Topographic Map"))
    steps.append(_step("Interacting with the 3D Visualization",
                       "To fully understand this 3D surface, interact with the visualization by rotating, "
                       "zooming, and examining it from different angles.",
                       "Rotation, Zoom, Perspective"))

    return SolutionExplanation(
        title=f"Step-by-Step Analysis of f(x,y) = {expression}",
        summary=f"This guide explores the 3D function f(x,y) = {expression}, analyzing its surface "
                f"features and behavior in 3D space.",
        steps=steps,
        questions=practice_questions("function3D", concept.subtype, expression),
        references=[
            "Multivariable Calculus - Khan Academy",
            "Visualizing Functions of Two Variables - MIT OpenCourseWare",
            "MathWorld: 3D Plotting and Visualization",
        ],
    )


def derivative_steps(expression: str, derivative: str) -> List[ExplanationStep]:
    steps = [
        _step("Understanding the Derivative",
              f"We're finding the derivative of f(x) = {expression}. The derivative measures the rate "
              f"of change of the function at each point.",
              f"f(x) = {expression}"),
        _step("Applying Derivative Rules",
              "To find the derivative, we apply the appropriate differentiation rules based on the "
              "function structure.",
              "Power Rule, Product Rule, Chain Rule, etc."),
    ]
    if "^" in expression:
        steps.append(_step("Power Rule", "For terms of the form x^n, the derivative is n·x^(n-1).",
                           "Power Rule: d/dx(x^n) = n·x^(n-1)"))
    if "sin" in expression or "cos" in expression:
        steps.append(_step("Trigonometric Functions",
                           "For trigonometric functions, we have specific derivative rules like "
                           "d/dx(sin(x)) = cos(x) and d/dx(cos(x)) = -sin(x).",
                           "d/dx(sin(x)) = cos(x), d/dx(cos(x)) = -sin(x)"))
    if "e^" in expression:
        steps.append(_step("Exponential Functions",
                           "For e^x, the derivative is simply e^x. For other bases, we use the chain rule.",
                           "d/dx(e^x) = e^x"))
    steps.append(_step("Final Derivative",
                       f"After applying all the appropriate rules, we get the derivative: f'(x) = {derivative}",
                       f"f'(x) = {derivative}"))
    steps.append(_step("Interpreting the Derivative",
                       "The derivative f'(x) tells us the slope of the tangent line to the original function "
                       "at any point x. When f'(x) = 0, we have critical points that may be maxima, minima, "
                       "or inflection points.",
                       "Slope, Critical Points, Max/Min, Inflection Points"))
    return steps


def integral_steps(expression: str, integral: str) -> List[ExplanationStep]:
    steps = [
        _step("Understanding the Integral",
              f"We're finding the indefinite integral of f(x) = {expression}. The integral gives us the "
              f"anti-derivative, or the family of functions whose derivative is our original function.",
              f"f(x) = {expression}"),
        _step("Applying Integration Rules",
              "To find the integral, we apply the appropriate integration rules based on the function structure.",
              "Power Rule, Substitution, Integration by Parts, etc."),
    ]
    if "^" in expression:
        steps.append(_step("Power Rule for Integration",
                           "For terms of the form x^n (where n ≠ -1), the integral is x^(n+1)/(n+1) + C.",
                           "∫x^n dx = x^(n+1)/(n+1) + C (for n ≠ -1)"))
    if "sin" in expression or "cos" in expression:
        steps.append(_step("Trigonometric Integrals",
                           "For trigonometric functions, we use specific integral formulas like "
                           "∫sin(x)dx = -cos(x) + C and ∫cos(x)dx = sin(x) + C.",
                           "∫sin(x)dx = -cos(x) + C, ∫cos(x)dx = sin(x) + C"))
    if "e^" in expression:
        steps.append(_step("Exponential Integrals",
                           "For e^x, the integral is also e^x + C. For other bases, we need additional techniques.",
                           "∫e^x dx = e^x + C"))
    if "1/x" in expression or "x^-1" in expression:
        steps.append(_step("Logarithmic Integrals", "For 1/x, the integral is ln|x| + C.",
                           "∫(1/x)dx = ln|x| + C"))
    steps.append(_step("Final Integral",
                       f"After applying all the appropriate rules, we get the indefinite integral: "
                       f"∫f(x)dx = {integral} + C, where C is an arbitrary constant.",
                       f"∫f(x)dx = {integral} + C"))
    steps.append(_step("Interpreting the Integral",
                       "The indefinite integral represents a family of functions (differing by a constant C) "
                       "whose derivative is the original function. The definite integral (with bounds) gives "
                       "us the net signed area between the function and the x-axis.",
                       "Anti-derivative, Area Under the Curve"))
    return steps


def limit_steps(expression: str, variable: str, approach: str, value: str) -> List[ExplanationStep]:
    notation = f"lim ({variable}→{approach}) {expression}"
    steps = [
        _step("Understanding the Limit",
              f"We're finding the limit of f({variable}) = {expression} as {variable} approaches {approach}.",
              notation),
        _step("Analyzing the Function Behavior",
              f"To find the limit, we need to understand how the function behaves as {variable} gets closer "
              f"and closer to {approach} (but not necessarily equal to it).",
              "Function Behavior Near the Limit Point"),
    ]
    if "/" in expression and approach == "0":
        steps.append(_step("Handling Potential Division by Zero",
                           "Since there's division in the expression and we're approaching 0, we need to check "
                           "for potential indeterminate forms like 0/0 or ∞/∞.",
                           "Indeterminate Forms, L'Hôpital's Rule"))
    if "sin" in expression and approach == "0":
        steps.append(_step("Special Trigonometric Limit",
                           "For expressions involving sin(x)/x as x approaches 0, we use the special limit: "
                           "lim (x→0) sin(x)/x = 1.",
                           "lim (x→0) sin(x)/x = 1"))
    steps.append(_step("Computing the Limit",
                       f"Using appropriate limit evaluation techniques, we determine that the limit equals {value}.",
                       f"{notation} = {value}"))
    steps.append(_step("Interpreting the Limit",
                       f"This limit tells us the value that the function approaches as {variable} gets closer to "
                       f"{approach}. It doesn't necessarily mean the function equals this value at "
                       f"{variable} = {approach}.",
                       "Function Behavior, Continuity"))
    return steps


def _calculus_steps(result: CalculusResult) -> List[ExplanationStep]:
    if result.type == "derivative":
        return derivative_steps(result.original_expression, result.expression)
    if result.type == "integral":
        return integral_steps(result.original_expression, result.expression)
    return limit_steps(result.original_expression, result.variable, result.limit_value or "0", result.expression)


def _calculus(analysis: Analysis) -> SolutionExplanation:
    result = analysis.calculus_result
    references = [
        "Calculus - Khan Academy",
        "MIT OpenCourseWare: Single Variable Calculus",
        "Paul's Online Math Notes: Calculus",
    ]
    if result is None:
        expression = analysis.concept.expression
        return SolutionExplanation(
            title=f"Step-by-Step Analysis of f(x) = {expression}",
            summary=f"This guide walks through the calculus of the function f(x) = {expression}.",
            steps=[
                _step("Understanding the Calculus Problem",
                      f"We're analyzing the function f(x) = {expression} using calculus.",
                      f"f(x) = {expression}"),
                _step("Function Analysis",
                      "First, we identify the key characteristics of the function to understand how to apply "
                      "calculus operations.",
                      "Domain, Continuity, Differentiability"),
            ],
            questions=practice_questions("calculus", "general", expression),
            references=references,
        )

    expression = result.original_expression
    return SolutionExplanation(
        title=f"Step-by-Step {result.type.capitalize()} of f(x) = {expression}",
        summary=f"This guide walks through the {result.type} of the function f(x) = {expression}, "
                f"providing detailed steps and explanations.",
        steps=_calculus_steps(result),
        questions=practice_questions("calculus", result.type, expression),
        references=references,
    )


def _polygon_name(sides: int) -> str:
    return {3: "Triangle", 4: "Quadrilateral", 5: "Pentagon", 6: "Hexagon"}.get(sides, "Polygon")


def _geometry(analysis: Analysis) -> SolutionExplanation:
    subtype = analysis.concept.subtype
    points = analysis.parameters.points
    steps = [_step("Understanding the Geometric Figure",
                   f"We're analyzing a geometric figure of type {subtype}.",
                   f"Geometry Type: {subtype}")]

    if subtype == "triangle":
        steps += [
            _step("Identifying the Vertices", f"The triangle has vertices at {_coordinates(points)}.",
                  "Vertices, Coordinates"),
            _step("Calculating Side Lengths",
                  "To find the side lengths, we calculate the distance between each pair of vertices using "
                  "the distance formula.",
                  "Distance Formula: d = √[(x₂ - x₁)² + (y₂ - y₁)²]"),
            _step("Calculating Area",
                  "The area of the triangle can be calculated using the formula Area = (1/2) × base × height "
                  "or using the cross product method for coordinates.",
                  "Area Formula, Cross Product Method"),
            _step("Finding the Centroid",
                  "The centroid of the triangle is where the three medians intersect. It is the average of "
                  "the three vertices.",
                  "Centroid: (x₁ + x₂ + x₃)/3, (y₁ + y₂ + y₃)/3"),
        ]
    elif subtype == "circle":
        expression = analysis.concept.expression
        steps += [
            _step("Identifying the Circle Equation", f"The circle is defined by the equation {expression} = 0.",
                  f"Circle Equation: {expression} = 0"),
            _step("Finding the Center and Radius",
                  "From the standard form (x - h)² + (y - k)² = r², we can identify the center (h, k) "
                  "and the radius r.",
                  "Standard Form: (x - h)² + (y - k)² = r²"),
            _step("Calculating the Circumference and Area",
                  "Once we have the radius r, we can calculate the circumference as 2πr and the area as πr².",
                  "Circumference = 2πr, Area = πr²"),
        ]
    elif subtype == "polygon":
        sides = len(points)
        steps += [
            _step("Identifying the Vertices", f"The polygon has {sides} vertices at {_coordinates(points)}.",
                  f"{sides}-sided Polygon ({_polygon_name(sides)})"),
            _step("Calculating the Perimeter",
                  "To find the perimeter, we calculate the distance between each consecutive pair of vertices "
                  "and sum them.",
                  "Perimeter = Sum of all sides"),
            _step("Calculating the Area",
                  "For a polygon with coordinates, we can calculate the area using the Shoelace formula.",
                  "Shoelace Formula, Coordinate Method"),
        ]
    else:
        steps.append(_step("Analyzing the Geometric Elements",
                           "This geometric visualization contains various elements that we can analyze using "
                           "principles of Euclidean geometry.",
                           "Points, Lines, Angles, Relationships"))
    steps.append(_step("Geometric Properties",
                       "Understanding the geometric properties helps us analyze the relationships between "
                       "different elements of the figure.",
                       "Congruence, Similarity, Symmetry"))

    return SolutionExplanation(
        title=f"Step-by-Step Analysis of {subtype.capitalize()} Geometry",
        summary=f"This guide explores the geometric properties and relationships in the given {subtype} figure.",
        steps=steps,
        questions=practice_questions("geometry", subtype),
        references=[
            "Euclidean Geometry - Khan Academy",
            "Interactive Geometry - GeoGebra",
            "Principles of Geometry - Wolfram MathWorld",
        ],
    )


# Fixed walkthroughs: (title, summary, steps, references)
_FIXED = {
    "linearAlgebra": (
        "Step-by-Step Linear Algebra Solution",
        "This guide walks through the linear algebra problem, providing detailed steps and explanations.",
        [
            ("Understanding the Problem", "We first identify the type of linear algebra problem we're dealing with.",
             "Matrix Operations, Systems of Equations, Vector Spaces"),
            ("Setting Up the Problem", "We set up the problem in appropriate mathematical form.",
             "Matrix Notation, Vector Notation"),
            ("Solving the Problem", "We apply appropriate linear algebra techniques to solve the problem.",
             "Gauss-Jordan Elimination, Matrix Inversion, Eigenvalues"),
            ("Interpreting the Solution", "We interpret the mathematical solution in the context of the original problem.",
             "Geometric Interpretation, Application Context"),
        ],
        ["Linear Algebra - Khan Academy", "MIT OpenCourseWare: Linear Algebra",
         "3Blue1Brown: Essence of Linear Algebra"],
    ),
    "probability": (
        "Step-by-Step Probability Solution",
        "This guide walks through the probability problem, providing detailed steps and explanations.",
        [
            ("Understanding the Problem", "We first identify what type of probability problem we're dealing with.",
             "Discrete Probability, Continuous Probability, Distributions"),
            ("Identifying the Sample Space", "We determine all possible outcomes in the sample space.",
             "Sample Space, Events, Outcomes"),
            ("Calculating Probabilities", "We apply appropriate probability formulas and concepts.",
             "Probability Rules, Conditional Probability, Bayes' Theorem"),
            ("Interpreting the Results", "We interpret the calculated probabilities in the context of the original problem.",
             "Practical Interpretation, Decision Making"),
        ],
        ["Probability - Khan Academy", "MIT OpenCourseWare: Introduction to Probability",
         "Statistics and Probability - Wolfram MathWorld"],
    ),
    "statistics": (
        "Step-by-Step Statistical Analysis",
        "This guide walks through the statistical problem, providing detailed steps and explanations.",
        [
            ("Understanding the Data",
             "We first understand what kind of data we're dealing with and what we want to learn from it.",
             "Data Types, Statistical Questions"),
            ("Descriptive Statistics",
             "We calculate summary statistics to understand the central tendency and spread of the data.",
             "Mean, Median, Mode, Variance, Standard Deviation"),
            ("Data Visualization", "We create appropriate visualizations to better understand the data distribution.",
             "Histograms, Box Plots, Scatter Plots"),
            ("Statistical Inference", "We apply inferential statistics to draw conclusions beyond the immediate data.",
             "Hypothesis Testing, Confidence Intervals, p-values"),
            ("Interpreting Results", "We interpret the statistical results in the context of the original problem.",
             "Practical Significance, Decision Making"),
        ],
        ["Statistics - Khan Academy", "MIT OpenCourseWare: Introduction to Statistics",
         "Statistical Learning - Stanford Online"],
    ),
    "general": (
        "Step-by-Step Mathematical Analysis",
        "This guide walks through the mathematical problem, providing a general framework for analysis.",
        [
            ("Understanding the Problem",
             "First, we identify what type of mathematical problem we're dealing with and what we need to find.",
             "Problem Identification, Goal Setting"),
            ("Analyzing Mathematical Structures",
             "We analyze the key mathematical structures and relationships in the problem.",
             "Patterns, Relationships, Structures"),
            ("Applying Mathematical Techniques",
             "We apply appropriate mathematical techniques and methods to solve the problem.",
             "Mathematical Methods, Algorithms, Procedures"),
            ("Visualizing the Solution",
             "We create a visualization to better understand the solution and mathematical relationships.",
             "Visual Representation, Geometric Interpretation"),
            ("Interpreting Results", "We interpret the mathematical results in a meaningful way.",
             "Practical Interpretation, Connections to Other Concepts"),
        ],
        ["Mathematics - Khan Academy", "MIT OpenCourseWare: Mathematics", "Wolfram MathWorld"],
    ),
}


def _fixed(concept_type: str) -> SolutionExplanation:
    title, summary, steps, references = _FIXED.get(concept_type, _FIXED["general"])
    return SolutionExplanation(
        title=title,
        summary=summary,
        steps=[_step(*s) for s in steps],
        questions=practice_questions(concept_type),
        references=list(references),
    )


BUILDERS = {
    "function2D": _function_2d,
    "function3D": _function_3d,
    "calculus": _calculus,
    "geometry": _geometry,
}


def explain(analysis: Analysis) -> SolutionExplanation:
    concept_type = analysis.concept.type
    builder = BUILDERS.get(concept_type)
    explanation = builder(analysis) if builder else _fixed(concept_type)
    logger.debug("Explanation for %s: %d steps", concept_type, len(explanation.steps))
    return explanation
