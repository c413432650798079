"""
MathViz Pipeline Orchestrator
Chains the analyzer agents and downstream builders:

    problem text
      → describe (Expression Extractor + Concept Classifier, or LLM Parser)
      → Parameter Extractor (awaits the math oracle for calculus)
      → Library Selector
      → Content Synthesizer + code descriptor          = Analysis
      → render props + solution explanation            = AnalyzeResponse

analyze() never raises for unrecognized text or oracle failure; those degrade
to documented defaults. run_pipeline_async() additionally converts any
unexpected step failure into a failed response.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from mathviz.agents import (
    concept_agent,
    explanation_agent,
    expression_agent,
    library_agent,
    parameter_agent,
    parser_agent,
    pedagogy_agent,
)
from mathviz.config import settings
from mathviz.models import (
    Analysis,
    AnalyzeResponse,
    ConceptDescriptor,
    Parameters,
    RenderProps,
    SolutionExplanation,
    Visualization,
)
from mathviz.modules import renderer
from mathviz.modules.math_oracle import MathOracle

logger = logging.getLogger(__name__)


@dataclass
class PipelineTrace:
    analysis: Optional[Analysis] = None
    selected_library: Optional[str] = None
    render_props: Optional[RenderProps] = None
    explanation: Optional[SolutionExplanation] = None
    timings_ms: Dict[str, float] = field(default_factory=dict)


# ─── Analysis ────────────────────────────────────────────────────────────────

def describe(problem: str) -> ConceptDescriptor:
    """Rule-based descriptor: expression, type and subtype, with the rules that fired."""
    expression = expression_agent.extract_with_reason(problem)
    concept_type = concept_agent.classify_type_with_reason(problem)
    subtype = concept_agent.classify_subtype_with_reason(problem, concept_type.value)
    return ConceptDescriptor(
        type=concept_type.value,
        subtype=subtype.value,
        expression=expression.value,
        variables=expression_agent.extract_variables(expression.value),
        matched_rules={
            "expression": expression.matched_rule,
            "type": concept_type.matched_rule,
            "subtype": subtype.matched_rule,
        },
    )


def describe_with_llm(problem: str) -> Optional[ConceptDescriptor]:
    try:
        descriptor = parser_agent.run(problem)
    except Exception as exc:
        logger.warning("LLM parser failed, using rule-based descriptor: %s", exc)
        return None
    return descriptor.model_copy(update={"matched_rules": {"source": "llm"}})


async def analyze(
    problem: str,
    oracle: Optional[MathOracle] = None,
    use_llm: Optional[bool] = None,
) -> Analysis:
    use_llm = settings.use_llm_parser if use_llm is None else use_llm

    descriptor = (describe_with_llm(problem) if use_llm else None) or describe(problem)
    logger.debug("Descriptor: %s/%s expr=%s rules=%s", descriptor.type, descriptor.subtype,
                 descriptor.expression, descriptor.matched_rules)

    extracted = await parameter_agent.extract_parameters(problem, descriptor.expression, descriptor.type, oracle)
    calculus_result = extracted.calculus_result

    concept = descriptor.model_dump(exclude={"recommended_library"})
    if calculus_result:
        concept["expression"] = calculus_result.expression
        concept["variables"] = expression_agent.extract_variables(calculus_result.expression)

    operation = parameter_agent.detect_operation(problem) if descriptor.type == "calculus" else None
    complexity = parameter_agent.determine_complexity(problem)
    visualization = Visualization(
        recommended_library=descriptor.recommended_library,
        dimensionality=parameter_agent.determine_dimensionality(problem),
        complexity=complexity,
        viewport=extracted.viewport,
        special_features=parameter_agent.determine_special_features(problem, operation),
        interactive_elements=parameter_agent.determine_interactive_elements(problem, operation),
    )
    parameters = Parameters(
        domain=extracted.viewport.x,
        range=extracted.viewport.y,
        points=extracted.points,
        functions=parameter_agent.extract_functions(descriptor.expression, extracted.viewport.x, calculus_result),
        constraints=extracted.constraints,
    )

    draft = Analysis(
        concept=concept,
        visualization=visualization,
        parameters=parameters,
        calculus_result=calculus_result,
    )

    library = library_agent.select_library(draft)
    visualization = visualization.model_copy(deep=True, update={
        "recommended_library": library,
        "alternative_libraries": library_agent.alternative_libraries(draft.concept.type, library),
    })
    draft = draft.model_copy(deep=True, update={"visualization": visualization})

    return draft.model_copy(deep=True, update={
        "educational": pedagogy_agent.synthesize(draft),
        "code": library_agent.build_code_spec(draft.concept, library, visualization.viewport),
    })


# ─── Orchestration ───────────────────────────────────────────────────────────

def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def run_pipeline_async(
    problem: str,
    use_llm: Optional[bool] = None,
    job_id: Optional[str] = None,
    oracle: Optional[MathOracle] = None,
) -> AnalyzeResponse:
    """
    Execute the full pipeline and return an AnalyzeResponse.
    Any step failure results in a failed response with an error message.
    """
    job_id = job_id or str(uuid.uuid4())
    trace = PipelineTrace()
    logger.info("=== Pipeline START job_id=%s ===", job_id)

    # ── Step 1: Analysis ──────────────────────────────────────────────────────
    try:
        logger.info("[1/4] Analysis Assembler...")
        start = time.perf_counter()
        trace.analysis = await analyze(problem, oracle=oracle, use_llm=use_llm)
        trace.timings_ms["analysis"] = _elapsed_ms(start)
    except Exception as exc:
        logger.error("Analysis Assembler failed: %s", exc)
        return AnalyzeResponse(job_id=job_id, status="failed", error=f"Analysis Assembler failed: {exc}")

    # ── Step 2: Library Selector ─────────────────────────────────────────────
    try:
        logger.info("[2/4] Library Selector...")
        start = time.perf_counter()
        trace.selected_library = library_agent.select_library(trace.analysis)
        trace.timings_ms["library"] = _elapsed_ms(start)
    except Exception as exc:
        logger.error("Library Selector failed: %s", exc)
        return AnalyzeResponse(
            job_id=job_id, status="failed", analysis=trace.analysis,
            error=f"Library Selector failed: {exc}",
        )

    # ── Step 3: Render props ─────────────────────────────────────────────────
    try:
        logger.info("[3/4] Render props...")
        start = time.perf_counter()
        trace.render_props = renderer.build_render_props(trace.analysis, trace.selected_library)
        trace.timings_ms["render_props"] = _elapsed_ms(start)
    except Exception as exc:
        logger.error("Render props failed: %s", exc)
        return AnalyzeResponse(
            job_id=job_id, status="failed", analysis=trace.analysis,
            selected_library=trace.selected_library, error=f"Render props failed: {exc}",
        )

    # ── Step 4: Solution explanation ─────────────────────────────────────────
    try:
        logger.info("[4/4] Solution Explanation...")
        start = time.perf_counter()
        trace.explanation = explanation_agent.explain(trace.analysis)
        trace.timings_ms["explanation"] = _elapsed_ms(start)
    except Exception as exc:
        logger.error("Solution Explanation failed: %s", exc)
        return AnalyzeResponse(
            job_id=job_id, status="failed", analysis=trace.analysis,
            selected_library=trace.selected_library, render_props=trace.render_props,
            error=f"Solution Explanation failed: {exc}",
        )

    logger.info("=== Pipeline COMPLETE job_id=%s library=%s ===", job_id, trace.selected_library)
    return AnalyzeResponse(
        job_id=job_id,
        status="success",
        analysis=trace.analysis,
        selected_library=trace.selected_library,
        render_props=trace.render_props,
        explanation=trace.explanation,
        pipeline_trace=_trace_to_dict(trace),
    )


def run_pipeline(
    problem: str,
    use_llm: Optional[bool] = None,
    job_id: Optional[str] = None,
    oracle: Optional[MathOracle] = None,
) -> AnalyzeResponse:
    """Blocking wrapper around run_pipeline_async for scripts and tests."""
    return asyncio.run(run_pipeline_async(problem, use_llm=use_llm, job_id=job_id, oracle=oracle))


def _trace_to_dict(trace: PipelineTrace) -> dict:
    analysis = trace.analysis
    return {
        "matched_rules": dict(analysis.concept.matched_rules) if analysis else None,
        "calculus_result": analysis.calculus_result.model_dump() if analysis and analysis.calculus_result else None,
        "selected_library": trace.selected_library,
        "timings_ms": dict(trace.timings_ms),
    }
