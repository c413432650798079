"""
Math Oracle
Computes derivatives, integrals and limits for the calculus step of the
parameter extractor. Every backend reports an explicit OracleResult instead
of echoing the input back on failure.

Backends:
    - SympyOracle: local symbolic solve (default)
    - WolframAlphaOracle: Wolfram|Alpha short-answer API
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Protocol

import requests
from sympy import Integral, Symbol, diff, integrate, limit, sstr

from mathviz.config import settings
from mathviz.models import OracleResult
from mathviz.modules.math_validator import normalize_expression, parse_expression

logger = logging.getLogger(__name__)


class MathOracle(Protocol):
    async def get_derivative(self, expression: str, variable: str = "x") -> OracleResult: ...

    async def get_integral(self, expression: str, variable: str = "x") -> OracleResult: ...

    async def get_limit(self, expression: str, variable: str = "x", approach: str = "0") -> OracleResult: ...


# ─── SymPy ───────────────────────────────────────────────────────────────────

class SympyOracle:
    """Solves locally. SymPy work runs in a worker thread so callers can await it."""

    async def get_derivative(self, expression: str, variable: str = "x") -> OracleResult:
        return await asyncio.to_thread(self._solve, "derivative", expression, variable)

    async def get_integral(self, expression: str, variable: str = "x") -> OracleResult:
        return await asyncio.to_thread(self._solve, "integral", expression, variable)

    async def get_limit(self, expression: str, variable: str = "x", approach: str = "0") -> OracleResult:
        return await asyncio.to_thread(self._solve, "limit", expression, variable, approach)

    def _solve(self, operation: str, expression: str, variable: str, approach: str = "0") -> OracleResult:
        try:
            expr = parse_expression(expression)
            symbol = Symbol(variable)
            if operation == "derivative":
                result = diff(expr, symbol)
            elif operation == "integral":
                result = integrate(expr, symbol)
                if result.has(Integral):
                    return OracleResult.failure(f"No closed-form integral for {expression}")
            else:
                result = limit(expr, symbol, parse_expression(approach))
        except Exception as exc:
            logger.warning("SymPy %s failed for '%s': %s", operation, expression[:60], exc)
            return OracleResult.failure(str(exc))

        return OracleResult.success(normalize_expression(sstr(result)))


# ─── Wolfram|Alpha ───────────────────────────────────────────────────────────

NOT_UNDERSTOOD = "Wolfram|Alpha did not understand"
_INTEGRATION_CONSTANT = re.compile(r"\s*\+\s*constant\s*$", re.IGNORECASE)


class WolframAlphaOracle:
    """Queries the short-answer API. Requires WOLFRAM_APP_ID."""

    def __init__(self, app_id: str | None = None, timeout_s: float | None = None) -> None:
        self.app_id = app_id or settings.wolfram_app_id
        if not self.app_id:
            raise EnvironmentError(
                "WOLFRAM_APP_ID is not set. "
                "Please add it to your .env file or environment."
            )
        self.timeout_s = timeout_s or settings.oracle_timeout_seconds

    async def get_derivative(self, expression: str, variable: str = "x") -> OracleResult:
        return await self._ask(f"derivative of {expression} with respect to {variable}")

    async def get_integral(self, expression: str, variable: str = "x") -> OracleResult:
        return await self._ask(f"integrate {expression} with respect to {variable}")

    async def get_limit(self, expression: str, variable: str = "x", approach: str = "0") -> OracleResult:
        return await self._ask(f"limit of {expression} as {variable} approaches {approach}")

    async def _ask(self, query: str) -> OracleResult:
        return await asyncio.to_thread(self._query, query)

    def _query(self, query: str) -> OracleResult:
        logger.debug("Querying Wolfram|Alpha with: %s", query)
        try:
            resp = requests.get(
                settings.wolfram_api_url,
                params={"i": query, "appid": self.app_id},
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            logger.warning("Wolfram|Alpha request failed: %s", exc)
            return OracleResult.failure(str(exc))

        text = resp.text.strip()
        if resp.status_code in (400, 501) or NOT_UNDERSTOOD in text:
            return OracleResult.failure(text or f"HTTP {resp.status_code}")
        if resp.status_code != 200:
            return OracleResult.failure(f"HTTP {resp.status_code}: {text[:200]}")
        return parse_short_answer(text)


def parse_short_answer(text: str) -> OracleResult:
    """'d/dx(x^2) = 2 x' -> '2 x'. The right-most side of an equation wins."""
    answer = text.rsplit("=", 1)[-1].strip()
    answer = _INTEGRATION_CONSTANT.sub("", answer)
    if not answer:
        return OracleResult.failure("Empty answer")
    return OracleResult.success(normalize_expression(answer))


def get_oracle() -> MathOracle:
    """Build the oracle selected by settings.oracle_backend."""
    backend = settings.oracle_backend.lower()
    if backend == "wolfram":
        return WolframAlphaOracle()
    if backend != "sympy":
        logger.warning("Unknown oracle backend '%s'; using sympy.", settings.oracle_backend)
    return SympyOracle()
