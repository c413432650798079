"""
Math oracle and validator tests.
SymPy runs for real; Wolfram|Alpha HTTP calls are mocked.
"""

from __future__ import annotations

import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests
from sympy import E, exp, simplify

sys.path.insert(0, str(Path(__file__).parent))

from mathviz.modules.math_oracle import SympyOracle, WolframAlphaOracle, get_oracle, parse_short_answer
from mathviz.modules.math_validator import normalize_expression, parse_expression, validate_expression


def equivalent(actual: str, expected: str) -> bool:
    return simplify(parse_expression(actual) - parse_expression(expected)) == 0


# ── Validator ─────────────────────────────────────────────────────────────────

class TestMathValidator(unittest.TestCase):

    def test_implicit_multiplication_and_caret(self):
        self.assertTrue(equivalent("3x^2 - 6x + 2", "3*x**2 - 6*x + 2"))

    def test_euler_and_ln(self):
        self.assertEqual(parse_expression("e^x"), exp(parse_expression("x")))
        self.assertEqual(parse_expression("e"), E)
        self.assertTrue(equivalent("ln(x)", "log(x)"))

    def test_absolute_value_bars(self):
        ok, err = validate_expression("|x - 3| + 2")
        self.assertTrue(ok, err)

    def test_invalid_expression(self):
        ok, err = validate_expression("sin(")
        self.assertFalse(ok)
        self.assertIn("Cannot parse", err)

    def test_empty_expression_raises(self):
        with self.assertRaises(ValueError):
            parse_expression("   ")

    def test_normalize_expression(self):
        self.assertEqual(normalize_expression("3*x**2  -  6*x"), "3*x^2 - 6*x")

    def test_implicit_product_of_variables(self):
        self.assertTrue(equivalent("x^2 + y^2 - 2xy", "x**2 + y**2 - 2*x*y"))

    def test_names_outside_notation_rejected(self):
        for text in ("exec(chr(120))", "__import__('os')", "open('f')", "x.evalf()", "lambda: 1", "x; y"):
            ok, err = validate_expression(text)
            self.assertFalse(ok, text)
            self.assertIn("Cannot parse", err)


def encoded_write(path: str) -> str:
    """exec(chr(..)+...) text that would create `path` if evaluated."""
    payload = f"open({path!r}, 'w').write('1')"
    return "exec(" + "+".join(f"chr({ord(c)})" for c in payload) + ")"


# ── SymPy oracle ──────────────────────────────────────────────────────────────

class TestSympyOracle(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.oracle = SympyOracle()

    async def test_derivative(self):
        result = await self.oracle.get_derivative("x^3 - 3x^2 + 2x - 1")
        self.assertTrue(result.ok)
        self.assertNotIn("**", result.expression)
        self.assertTrue(equivalent(result.expression, "3x^2 - 6x + 2"))

    async def test_derivative_other_variable(self):
        result = await self.oracle.get_derivative("t^2 + x", "t")
        self.assertTrue(equivalent(result.expression, "2t"))

    async def test_integral(self):
        result = await self.oracle.get_integral("sin(x)")
        self.assertTrue(result.ok)
        self.assertTrue(equivalent(result.expression, "-cos(x)"))

    async def test_integral_without_closed_form_fails(self):
        result = await self.oracle.get_integral("x^x")
        self.assertFalse(result.ok)
        self.assertIsNone(result.expression)

    async def test_limit(self):
        result = await self.oracle.get_limit("(x^2 - 1)/(x - 1)", "x", "1")
        self.assertEqual(result.expression, "2")

    async def test_special_trig_limit(self):
        result = await self.oracle.get_limit("sin(x)/x", "x", "0")
        self.assertEqual(result.expression, "1")

    async def test_unparseable_input_fails(self):
        result = await self.oracle.get_derivative("(((")
        self.assertFalse(result.ok)
        self.assertTrue(result.error)

    async def test_code_in_expression_is_not_evaluated(self):
        with tempfile.TemporaryDirectory() as tmp:
            marker = os.path.join(tmp, "marker")
            derivative = await self.oracle.get_derivative(encoded_write(marker))
            limit = await self.oracle.get_limit("x", "x", encoded_write(marker))

            self.assertFalse(derivative.ok)
            self.assertFalse(limit.ok)
            self.assertFalse(os.path.exists(marker))

    async def test_problem_text_is_not_evaluated(self):
        from mathviz.pipeline import run_pipeline_async

        with tempfile.TemporaryDirectory() as tmp:
            marker = os.path.join(tmp, "marker")
            result = await run_pipeline_async(f"Find the derivative of {encoded_write(marker)}",
                                              oracle=self.oracle)

            self.assertEqual(result.status, "success")
            self.assertIsNone(result.analysis.calculus_result)
            self.assertFalse(os.path.exists(marker))


# ── Wolfram|Alpha oracle ──────────────────────────────────────────────────────

def make_response(status_code: int, text: str) -> MagicMock:
    return MagicMock(status_code=status_code, text=text)


class TestWolframAlphaOracle(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.oracle = WolframAlphaOracle(app_id="TEST-APP", timeout_s=5)

    @patch("mathviz.modules.math_oracle.requests.get")
    async def test_derivative_query(self, mock_get):
        mock_get.return_value = make_response(200, "d/dx(x^2) = 2 x")
        result = await self.oracle.get_derivative("x^2")

        self.assertTrue(result.ok)
        self.assertEqual(result.expression, "2 x")
        params = mock_get.call_args.kwargs["params"]
        self.assertEqual(params["i"], "derivative of x^2 with respect to x")
        self.assertEqual(params["appid"], "TEST-APP")
        self.assertEqual(mock_get.call_args.kwargs["timeout"], 5)

    @patch("mathviz.modules.math_oracle.requests.get")
    async def test_integration_constant_is_dropped(self, mock_get):
        mock_get.return_value = make_response(200, "integral x^2 dx = x^3/3 + constant")
        result = await self.oracle.get_integral("x^2")
        self.assertEqual(result.expression, "x^3/3")

    @patch("mathviz.modules.math_oracle.requests.get")
    async def test_limit_query(self, mock_get):
        mock_get.return_value = make_response(200, "2")
        result = await self.oracle.get_limit("(x^2 - 1)/(x - 1)", "x", "1")
        self.assertEqual(result.expression, "2")
        self.assertEqual(mock_get.call_args.kwargs["params"]["i"],
                         "limit of (x^2 - 1)/(x - 1) as x approaches 1")

    @patch("mathviz.modules.math_oracle.requests.get")
    async def test_not_understood_is_failure(self, mock_get):
        mock_get.return_value = make_response(501, "Wolfram|Alpha did not understand your input")
        result = await self.oracle.get_derivative("gibberish")
        self.assertFalse(result.ok)
        self.assertIn("did not understand", result.error)

    @patch("mathviz.modules.math_oracle.requests.get")
    async def test_server_error_is_failure(self, mock_get):
        mock_get.return_value = make_response(503, "Service Unavailable")
        result = await self.oracle.get_derivative("x^2")
        self.assertFalse(result.ok)
        self.assertIn("503", result.error)

    @patch("mathviz.modules.math_oracle.requests.get")
    async def test_network_error_is_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("unreachable")
        result = await self.oracle.get_integral("x^2")
        self.assertFalse(result.ok)
        self.assertIn("unreachable", result.error)

    def test_missing_app_id_raises(self):
        with patch("mathviz.modules.math_oracle.settings") as mock_settings:
            mock_settings.wolfram_app_id = ""
            with self.assertRaises(EnvironmentError):
                WolframAlphaOracle()


class TestOracleHelpers(unittest.TestCase):

    def test_parse_short_answer_takes_last_side(self):
        self.assertEqual(parse_short_answer("d/dx(sin(x)) = cos(x)").expression, "cos(x)")
        self.assertFalse(parse_short_answer("f = ").ok)

    def test_get_oracle_defaults_to_sympy(self):
        with patch("mathviz.modules.math_oracle.settings") as mock_settings:
            mock_settings.oracle_backend = "sympy"
            self.assertIsInstance(get_oracle(), SympyOracle)
            mock_settings.oracle_backend = "abacus"
            self.assertIsInstance(get_oracle(), SympyOracle)

    def test_get_oracle_wolfram(self):
        with patch("mathviz.modules.math_oracle.settings") as mock_settings:
            mock_settings.oracle_backend = "wolfram"
            mock_settings.wolfram_app_id = "APP"
            mock_settings.oracle_timeout_seconds = 3.0
            oracle = get_oracle()
        self.assertIsInstance(oracle, WolframAlphaOracle)
        self.assertEqual(oracle.app_id, "APP")


if __name__ == "__main__":
    unittest.main(verbosity=2)
