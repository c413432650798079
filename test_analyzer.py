"""
MathViz Analyzer Test Suite
Tests the text-only agents: expression extraction, concept classification
and parameter extraction. The math oracle is mocked throughout.
"""

from __future__ import annotations

import asyncio
import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from mathviz.agents import concept_agent, expression_agent, parameter_agent
from mathviz.config import settings
from mathviz.models import CONCEPT_SUBTYPES, OracleResult


# ── Fixtures ──────────────────────────────────────────────────────────────────

BASIC_FUNCTION_PROBLEMS = [
    ("Graph the function y = x^2 + 3x - 4.", "x^2 + 3x - 4"),
    ("Plot f(x) = sin(x) from 0 to 2π.", "sin(x)"),
    ("Visualize the function y = log(x).", "log(x)"),
    ("Show the quadratic function y = 2x^2 - 5x + 3.", "2x^2 - 5x + 3"),
    ("Draw the line y = 3x + 2.", "3x + 2"),
]

CALCULUS_PROBLEMS = [
    ("Find the derivative of x^3 + 2x^2 - 5x + 1.", "x^3 + 2x^2 - 5x + 1"),
    ("Evaluate the integral of sin(x) with respect to x.", "sin(x)"),
    ("Calculate the limit of (x^2 - 1)/(x - 1) as x approaches 1.", "(x^2 - 1)/(x - 1)"),
    ("Find the derivative of the function f(x) = e^x * sin(x).", "e^x * sin(x)"),
    ("Compute the integral of x^2 * ln(x) with respect to x.", "x^2 * ln(x)"),
]

GEOMETRY_PROBLEMS = [
    ("Draw a triangle with vertices at (0,0), (3,0), and (0,4).", "x"),
    ("Plot the circle with equation x^2 + y^2 = 25.", "x^2 + y^2 - 25"),
    ("Visualize the polygon with vertices at (1,1), (4,2), (3,5), and (0,3).", "x"),
    ("Show the rectangle with opposite corners at (-2,-3) and (5,7).", "x"),
    ("Draw an ellipse with equation (x^2/16) + (y^2/9) = 1.", "(x^2/16) + (y^2/9) - 1"),
]

EDGE_CASE_PROBLEMS = [
    ("Visualize x.", "x"),
    ("What is a good example of a mathematical function?", "x"),
    ("Graph the function that represents the relationship between time and distance.", "x"),
    ("", "x"),
    ("Plot y = f(x) where f(x) = x^2 when x > 0 and f(x) = -x^2 when x ≤ 0.", "x^2"),
    ("Graph y = (x^3 - 3x^2 + 2x)/(x-1).", "(x^3 - 3x^2 + 2x)/(x-1)"),
    ("Visualize the function f(x) = |x - 3| + 2.", "|x - 3| + 2"),
]

COMPLEX_FUNCTION_PROBLEMS = [
    ("Graph the function f(x) = sin(x) * e^(-x/5) * cos(x/2).", "sin(x) * e^(-x/5) * cos(x/2)"),
    ("Plot the rational function y = (x^3 - 4x^2 + 5x - 2) / (x^2 - 3x + 2).",
     "(x^3 - 4x^2 + 5x - 2) / (x^2 - 3x + 2)"),
    ("Visualize the implicit curve defined by x^2 + y^2 - 2xy = 4.", "x^2 + y^2 - 2xy - 4"),
    ("Show the function f(x) = sqrt(4 - x^2) for -2 ≤ x ≤ 2.", "sqrt(4 - x^2)"),
    ("Graph the hyperbolic function f(x) = sinh(x) + cosh(x).", "sinh(x) + cosh(x)"),
]

SYSTEM_PROBLEMS = [
    ("Graph the system of equations: y = 2x + 1 and y = -x + 4.", "2x + 1"),
    ("Visualize the solution to the system: 3x - 2y = 6 and x + 4y = 8.", "3x - 2y - 6"),
    ("Plot the intersection of y = x^2 and y = 2x + 3.", "x^2"),
]

DOMAIN_RANGE_PROBLEMS = [
    ("Graph f(x) = x^3 - 3x in the domain [-2, 2] and range [-5, 5].", "x^3 - 3x"),
    ("Plot the function y = log(x) with x from 0.1 to 10.", "log(x)"),
    ("Visualize the function f(x) = tan(x) in the interval [-π/2, π/2].", "tan(x)"),
]

FUNCTION_3D_PROBLEMS = [
    ("Graph the 3D function f(x,y) = x^2 + y^2.", "x^2 + y^2"),
    ("Visualize the surface z = sin(x) * cos(y).", "sin(x) * cos(y)"),
    ("Plot the 3D function f(x,y) = sqrt(x^2 + y^2).", "sqrt(x^2 + y^2)"),
]

ALL_PROBLEMS = (
    BASIC_FUNCTION_PROBLEMS + CALCULUS_PROBLEMS + GEOMETRY_PROBLEMS + EDGE_CASE_PROBLEMS
    + COMPLEX_FUNCTION_PROBLEMS + SYSTEM_PROBLEMS + DOMAIN_RANGE_PROBLEMS + FUNCTION_3D_PROBLEMS
)

DERIVATIVE_PROBLEM = "Find the derivative of f(x) = x^3 - 3x^2 + 2x - 1 and visualize both functions."


def make_oracle(**results) -> MagicMock:
    """An oracle whose methods return the given OracleResult values."""
    oracle = MagicMock()
    oracle.get_derivative = AsyncMock(return_value=results.get("derivative", OracleResult.failure("n/a")))
    oracle.get_integral = AsyncMock(return_value=results.get("integral", OracleResult.failure("n/a")))
    oracle.get_limit = AsyncMock(return_value=results.get("limit", OracleResult.failure("n/a")))
    return oracle


# ── Expression Extractor ──────────────────────────────────────────────────────

class TestExpressionExtractor(unittest.TestCase):

    def _check(self, cases):
        for problem, expected in cases:
            with self.subTest(problem=problem):
                self.assertEqual(expression_agent.extract_expression(problem), expected)

    def test_basic_functions(self):
        self._check(BASIC_FUNCTION_PROBLEMS)

    def test_calculus_problems(self):
        self._check(CALCULUS_PROBLEMS)

    def test_geometry_problems(self):
        self._check(GEOMETRY_PROBLEMS)

    def test_edge_cases(self):
        self._check(EDGE_CASE_PROBLEMS)

    def test_complex_functions(self):
        self._check(COMPLEX_FUNCTION_PROBLEMS)

    def test_systems_of_equations(self):
        self._check(SYSTEM_PROBLEMS)

    def test_domain_and_range_problems(self):
        self._check(DOMAIN_RANGE_PROBLEMS)

    def test_3d_functions(self):
        self._check(FUNCTION_3D_PROBLEMS)

    def test_extraction_strategies(self):
        self._check([
            ("Graph y = x^2 + 3x - 4", "x^2 + 3x - 4"),
            ("Plot f(x) = sin(x) * cos(x)", "sin(x) * cos(x)"),
            ("Visualize the function x^3 + 2x - 1", "x^3 + 2x - 1"),
            ("Plot 3sin(x) + 2cos(x)", "3sin(x) + 2cos(x)"),
            ("Graph x^2 + y^2 = 4", "x^2 + y^2 - 4"),
            ("Analyze sqrt(x) * log(x)", "sqrt(x) * log(x)"),
            ("Find the derivative of x^2 * sin(x)", "x^2 * sin(x)"),
            ("Show me what happens with x^3", "x^3"),
            ("What is x?", "x"),
            ("Tell me about the history of calculus", "x"),
        ])

    def test_trailing_clause_is_trimmed(self):
        self.assertEqual(expression_agent.extract_expression(DERIVATIVE_PROBLEM), "x^3 - 3x^2 + 2x - 1")

    def test_whitespace_variants_hit_exact_table(self):
        self.assertEqual(expression_agent.extract_expression("  Graph   x^2 + y^2 = 4 "), "x^2 + y^2 - 4")

    def test_idempotent(self):
        for problem, _ in ALL_PROBLEMS:
            with self.subTest(problem=problem):
                first = expression_agent.extract_expression(problem)
                self.assertEqual(first, expression_agent.extract_expression(problem))

    def test_never_empty(self):
        for problem in ["", "   ", "?!", "Tell me a story", "12345"]:
            with self.subTest(problem=problem):
                self.assertTrue(expression_agent.extract_expression(problem))

    def test_reports_matched_rule(self):
        self.assertEqual(expression_agent.extract_with_reason("Graph y = x^2").matched_rule, "function_notation")
        self.assertEqual(expression_agent.extract_with_reason("Graph x^2 + y^2 = 4").matched_rule, "exact_case")
        fallback = expression_agent.extract_with_reason("Tell me about the history of calculus")
        self.assertTrue(fallback.is_default)
        self.assertEqual(fallback.value, "x")

    def test_extract_variables(self):
        self.assertEqual(expression_agent.extract_variables("x^2 + y^2 - 25"), ["x", "y"])
        self.assertEqual(expression_agent.extract_variables("sin(x) * cos(y)"), ["x", "y"])
        self.assertEqual(expression_agent.extract_variables("e^t + pi"), ["t"])
        self.assertEqual(expression_agent.extract_variables("42"), ["x"])


# ── Concept Classifier ────────────────────────────────────────────────────────

class TestConceptClassifier(unittest.TestCase):

    def test_calculus_outranks_graphing(self):
        self.assertEqual(concept_agent.classify_type("Plot the derivative of sin(x)"), "calculus")
        self.assertEqual(concept_agent.classify_type(DERIVATIVE_PROBLEM), "calculus")

    def test_calculus_subtypes(self):
        self.assertEqual(concept_agent.classify_subtype(DERIVATIVE_PROBLEM, "calculus"), "derivative")
        self.assertEqual(concept_agent.classify_subtype("Integrate x^2", "calculus"), "integral")
        self.assertEqual(concept_agent.classify_subtype("Find the limit of 1/x", "calculus"), "limit")
        self.assertEqual(concept_agent.classify_subtype("Minimize x^2 - 4x", "calculus"), "general")

    def test_function_types(self):
        self.assertEqual(concept_agent.classify_type("Graph the 3D function f(x,y) = x^2 + y^2."), "function3D")
        self.assertEqual(concept_agent.classify_type("Graph y = x^2"), "function2D")
        self.assertEqual(concept_agent.classify_subtype("Graph the 3D function f(x,y) = x^2", "function3D"),
                         "surface")

    def test_function_2d_subtypes(self):
        self.assertEqual(concept_agent.classify_subtype("Graph the quadratic y = x^2", "function2D"), "polynomial")
        self.assertEqual(concept_agent.classify_subtype("Plot y = sin(x)", "function2D"), "trigonometric")
        self.assertEqual(concept_agent.classify_subtype("Plot y = e^x", "function2D"), "exponential")
        self.assertEqual(concept_agent.classify_subtype("Plot y = ln(x)", "function2D"), "logarithmic")
        self.assertEqual(concept_agent.classify_subtype("Plot y = x", "function2D"), "general")

    def test_word_boundaries_for_function_names(self):
        # "distance" contains "tan"
        self.assertEqual(concept_agent.classify_subtype("Plot the distance against time", "function2D"), "general")

    def test_geometry(self):
        problem = "Draw a triangle with vertices at (0,0), (3,0), and (0,4)."
        self.assertEqual(concept_agent.classify_type(problem), "geometry")
        self.assertEqual(concept_agent.classify_subtype(problem, "geometry"), "triangle")

    def test_other_domains(self):
        self.assertEqual(concept_agent.classify_type("Compute the determinant of the matrix"), "linearAlgebra")
        self.assertEqual(concept_agent.classify_subtype("Compute the determinant of the matrix", "linearAlgebra"),
                         "matrix")
        self.assertEqual(concept_agent.classify_type("What is the probability of rolling a six on a die?"),
                         "probability")
        self.assertEqual(concept_agent.classify_subtype("rolling a six on a die", "probability"), "discrete")
        self.assertEqual(concept_agent.classify_type("Find the mean and median of the dataset"), "statistics")
        self.assertEqual(concept_agent.classify_subtype("Find the mean of the dataset", "statistics"), "descriptive")

    def test_default_type_is_reported(self):
        result = concept_agent.classify_type_with_reason("Tell me about the history of calculus")
        self.assertEqual(result.value, "function2D")
        self.assertEqual(result.matched_rule, "default")

    def test_subtype_always_belongs_to_type(self):
        for problem, _ in ALL_PROBLEMS:
            with self.subTest(problem=problem):
                concept_type = concept_agent.classify_type(problem)
                self.assertIn(concept_type, CONCEPT_SUBTYPES)
                self.assertIn(concept_agent.classify_subtype(problem, concept_type), CONCEPT_SUBTYPES[concept_type])


# ── Parameter Extractor ───────────────────────────────────────────────────────

class TestViewport(unittest.TestCase):

    def test_default_viewport(self):
        viewport = parameter_agent.extract_viewport("Plot sin(x)")
        self.assertEqual(viewport.x, [-10.0, 10.0])
        self.assertEqual(viewport.y, [-10.0, 10.0])
        self.assertEqual(viewport.z, [-10.0, 10.0])

    def test_domain_and_range(self):
        viewport = parameter_agent.extract_viewport("Graph f(x) = x^3 - 3x in the domain [-2, 2] and range [-5, 5].")
        self.assertEqual(viewport.x, [-2.0, 2.0])
        self.assertEqual(viewport.y, [-5.0, 5.0])
        self.assertEqual(viewport.z, [-10.0, 10.0])

    def test_axis_interval_with_to(self):
        viewport = parameter_agent.extract_viewport("Plot the function y = log(x) with x from 0.1 to 10.")
        self.assertEqual(viewport.x, [0.1, 10.0])
        self.assertEqual(viewport.y, [-10.0, 10.0])

    def test_inequality_bounds(self):
        viewport = parameter_agent.extract_viewport("Show the function f(x) = sqrt(4 - x^2) for -2 ≤ x ≤ 2.")
        self.assertEqual(viewport.x, [-2.0, 2.0])

    def test_later_axis_phrase_overrides_domain(self):
        viewport = parameter_agent.extract_viewport("Graph y = x^2 on the domain [-2, 2] with x in [0, 5]")
        self.assertEqual(viewport.x, [0.0, 5.0])

    def test_z_axis(self):
        viewport = parameter_agent.extract_viewport("Plot the surface with z between -1 and 1")
        self.assertEqual(viewport.z, [-1.0, 1.0])

    def test_reversed_bounds_are_ordered(self):
        viewport = parameter_agent.extract_viewport("Plot x^2 for x between 5 and 1 with domain [3, -3]")
        self.assertEqual(viewport.x, [1.0, 5.0])
        viewport = parameter_agent.extract_viewport("Graph y = x in the range [4, -4]")
        self.assertEqual(viewport.y, [-4.0, 4.0])


class TestPoints(unittest.TestCase):

    def test_triangle_vertices_in_order(self):
        points = parameter_agent.extract_points("Draw a triangle with vertices at (0,0), (3,0), and (0,4).")
        self.assertEqual([p.label for p in points], ["A", "B", "C"])
        self.assertEqual([p.coordinates for p in points], [[0.0, 0.0], [3.0, 0.0], [0.0, 4.0]])
        self.assertTrue(all(p.color == "#3090FF" for p in points))

    def test_corners(self):
        points = parameter_agent.extract_points("Show the rectangle with opposite corners at (-2,-3) and (5,7).")
        self.assertEqual([p.coordinates for p in points], [[-2.0, -3.0], [5.0, 7.0]])

    def test_non_numeric_tuples_are_skipped_before_labelling(self):
        points = parameter_agent.extract_points("Mark the points at (inf, 1) and (2, 3) on the graph of f(x).")
        self.assertEqual(len(points), 1)
        self.assertEqual(points[0].label, "A")
        self.assertEqual(points[0].coordinates, [2.0, 3.0])

    def test_no_trigger_no_points(self):
        self.assertEqual(parameter_agent.extract_points("Graph y = (x+1)*(x-2)"), [])


class TestConstraintsAndTraits(unittest.TestCase):

    def test_constraint_clauses(self):
        self.assertEqual(parameter_agent.extract_constraints("Plot y = x^2 where x > 0."), ["x > 0"])

    def test_with_respect_to_is_not_a_constraint(self):
        self.assertEqual(parameter_agent.extract_constraints("Integrate x^2 with respect to x"), [])

    def test_domain_and_range_constraints(self):
        constraints = parameter_agent.extract_constraints(
            "Graph f(x) = x^3 - 3x in the domain [-2, 2] and range [-5, 5]."
        )
        self.assertEqual(constraints, ["domain: [-2, 2]", "range: [-5, 5]"])

    def test_dimensionality(self):
        self.assertEqual(parameter_agent.determine_dimensionality("Visualize the surface z = x*y"), "3D")
        self.assertEqual(parameter_agent.determine_dimensionality("Plot y = x"), "2D")

    def test_complexity_and_level(self):
        self.assertEqual(parameter_agent.determine_complexity("Show a detailed plot"), "advanced")
        self.assertEqual(parameter_agent.determine_complexity("Show a simple plot"), "basic")
        self.assertEqual(parameter_agent.determine_complexity("Show a plot"), "intermediate")
        self.assertEqual(parameter_agent.determine_level("advanced"), "undergraduate")
        self.assertEqual(parameter_agent.determine_level("basic"), "elementary")

    def test_special_features(self):
        features = parameter_agent.determine_special_features("Animate and highlight the peak", "integral")
        self.assertEqual([f.type for f in features], ["animation", "highlighting", "area"])
        self.assertEqual(features[2].parameters["opacity"], 0.3)

    def test_interactive_elements(self):
        elements = parameter_agent.determine_interactive_elements("Add a slider and drag the point", "derivative")
        self.assertEqual([e.type for e in elements], ["slider", "draggable", "point"])

    def test_functions_include_calculus_result(self):
        from mathviz.models import CalculusResult

        result = CalculusResult(type="derivative", original_expression="x^2", expression="2*x")
        functions = parameter_agent.extract_functions("2*x", [-1.0, 1.0], result)
        self.assertEqual([f.label for f in functions], ["f", "f'"])
        self.assertEqual(functions[0].expression, "x^2")
        self.assertTrue(functions[1].is_calculus_result)
        self.assertEqual(functions[1].color, "#FF5733")


class TestCalculusResolution(unittest.IsolatedAsyncioTestCase):

    async def test_derivative(self):
        oracle = make_oracle(derivative=OracleResult.success("3x^2 - 6x + 2"))
        result = await parameter_agent.resolve_calculus(DERIVATIVE_PROBLEM, "x^3 - 3x^2 + 2x - 1", oracle)

        oracle.get_derivative.assert_awaited_once_with("x^3 - 3x^2 + 2x - 1", "x")
        self.assertEqual(result.type, "derivative")
        self.assertEqual(result.expression, "3x^2 - 6x + 2")
        self.assertEqual(result.original_expression, "x^3 - 3x^2 + 2x - 1")
        self.assertEqual(
            result.description,
            "The derivative of x^3 - 3x^2 + 2x - 1 with respect to x is 3x^2 - 6x + 2",
        )

    async def test_integral_variable(self):
        oracle = make_oracle(integral=OracleResult.success("t^3/3"))
        result = await parameter_agent.resolve_calculus("Integrate t^2 with respect to t", "t^2", oracle)
        oracle.get_integral.assert_awaited_once_with("t^2", "t")
        self.assertEqual(result.variable, "t")

    async def test_limit_parameters(self):
        oracle = make_oracle(limit=OracleResult.success("2"))
        problem = "Calculate the limit of (x^2 - 1)/(x - 1) as x approaches 1."
        result = await parameter_agent.resolve_calculus(problem, "(x^2 - 1)/(x - 1)", oracle)

        oracle.get_limit.assert_awaited_once_with("(x^2 - 1)/(x - 1)", "x", "1")
        self.assertEqual(result.limit_value, "1")
        self.assertEqual(result.description, "The limit of (x^2 - 1)/(x - 1) as x approaches 1 is 2")

    async def test_oracle_failure_result_degrades_to_none(self):
        oracle = make_oracle(derivative=OracleResult.failure("did not understand"))
        self.assertIsNone(await parameter_agent.resolve_calculus(DERIVATIVE_PROBLEM, "x^3", oracle))

    async def test_oracle_exception_degrades_to_none(self):
        oracle = make_oracle()
        oracle.get_derivative = AsyncMock(side_effect=RuntimeError("network down"))
        self.assertIsNone(await parameter_agent.resolve_calculus(DERIVATIVE_PROBLEM, "x^3", oracle))

    async def test_oracle_timeout_degrades_to_none(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return OracleResult.success("never")

        oracle = make_oracle()
        oracle.get_derivative = AsyncMock(side_effect=slow)
        with patch.object(settings, "oracle_timeout_seconds", 0.01):
            self.assertIsNone(await parameter_agent.resolve_calculus(DERIVATIVE_PROBLEM, "x^3", oracle))

    async def test_non_calculus_skips_oracle(self):
        oracle = make_oracle()
        result = await parameter_agent.resolve_calculus("Graph y = x^2", "x^2", oracle, concept_type="function2D")
        self.assertIsNone(result)
        oracle.get_derivative.assert_not_called()

    async def test_optimization_has_no_oracle_operation(self):
        oracle = make_oracle()
        self.assertIsNone(await parameter_agent.resolve_calculus("Maximize x^2 - 4x", "x^2 - 4x", oracle))

    async def test_extract_parameters(self):
        oracle = make_oracle(derivative=OracleResult.success("2*x"))
        params = await parameter_agent.extract_parameters("Find the derivative of x^2 where x > 0", "x^2",
                                                          "calculus", oracle)
        self.assertEqual(params.calculus_result.expression, "2*x")
        self.assertEqual(params.constraints, ["x > 0"])
        self.assertEqual(params.viewport.x, [-10.0, 10.0])


if __name__ == "__main__":
    unittest.main(verbosity=2)
