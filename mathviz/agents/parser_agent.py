"""
Agent 0 (optional): LLM Parser
Asks the LLM for a concept descriptor instead of the keyword rules.
Opt-in via USE_LLM_PARSER or the use_llm request flag; the pipeline falls
back to the rule-based descriptor when this agent raises.
"""

from __future__ import annotations

import logging

from mathviz.config import settings
from mathviz.llm_client import llm_call
from mathviz.models import CONCEPT_SUBTYPES, ConceptDescriptor
from mathviz.modules.math_validator import validate_expression

logger = logging.getLogger(__name__)

_SUBTYPE_LINES = "\n".join(f"  {t}: {', '.join(s)}" for t, s in CONCEPT_SUBTYPES.items())

SYSTEM_PROMPT = f"""
You are an expert mathematics teacher. Classify a natural-language math problem
and extract the single expression it is about.
Return a JSON object with EXACTLY these keys:
{{
  "type": "<one of: {', '.join(CONCEPT_SUBTYPES)}>",
  "subtype": "<a subtype valid for the type>",
  "expression": "<infix expression using + - * / ^ and sin cos tan log ln sqrt exp abs>",
  "variables": ["<single-letter variables, x first>"],
  "recommended_library": "<mafs|mathbox|jsxgraph|d3 or null>"
}}
Valid subtypes per type:
{_SUBTYPE_LINES}
Rules: Equations are rewritten as lhs - (rhs). If the problem states no formula, use "x".
"""


def run(problem: str) -> ConceptDescriptor:
    truncated = problem[:settings.max_problem_chars]
    if len(problem) > settings.max_problem_chars:
        logger.warning("Input truncated from %d to %d chars.", len(problem), settings.max_problem_chars)

    result = llm_call(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=f"Problem:\n{truncated}",
        response_model=ConceptDescriptor,
    )

    ok, err = validate_expression(result.expression)
    if not ok:
        raise ValueError(f"LLM returned an unparseable expression '{result.expression}': {err}")

    logger.info("Parser agent completed. %s/%s: %s", result.type, result.subtype, result.expression)
    return result
