"""
Shared Pydantic models used throughout the MathViz analyzer.
Strict typing keeps the descriptor handed to rendering and template
collaborators well-formed.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mathviz.config import settings


ConceptType = Literal[
    "function2D",
    "function3D",
    "geometry",
    "calculus",
    "linearAlgebra",
    "probability",
    "statistics",
]

CONCEPT_SUBTYPES: Dict[str, tuple] = {
    "function2D": ("polynomial", "trigonometric", "exponential", "logarithmic", "rational", "general"),
    "function3D": ("surface", "parametric", "vectorField"),
    "geometry": ("triangle", "circle", "polygon", "construction", "general"),
    "calculus": ("derivative", "integral", "limit", "general"),
    "linearAlgebra": ("matrix", "vector", "system", "general"),
    "probability": ("discrete", "continuous", "general"),
    "statistics": ("descriptive", "distribution", "regression", "general"),
}

CalculusOperation = Literal["derivative", "integral", "limit"]
Dimensionality = Literal["2D", "3D"]
Complexity = Literal["basic", "intermediate", "advanced"]


def _default_axis() -> List[float]:
    return settings.default_axis()


class FrozenModel(BaseModel):
    """Records that make up an Analysis; attributes cannot be reassigned."""
    model_config = ConfigDict(frozen=True)


# ─── Rule matching ───────────────────────────────────────────────────────────

class RuleMatch(BaseModel):
    """A classification or extraction together with the rule that produced it."""
    value: str
    matched_rule: str

    @property
    def is_default(self) -> bool:
        return self.matched_rule == "default"


# ─── Parameter Extractor Output ──────────────────────────────────────────────

class Viewport(FrozenModel):
    x: List[float] = Field(default_factory=_default_axis)
    y: List[float] = Field(default_factory=_default_axis)
    z: List[float] = Field(default_factory=_default_axis)


class Point(FrozenModel):
    label: str
    coordinates: List[float]
    color: str = "#3090FF"


class CalculusResult(FrozenModel):
    type: CalculusOperation
    original_expression: str
    expression: str                  # the derivative / antiderivative / limit value
    variable: str = "x"
    limit_value: Optional[str] = None
    description: str = ""


class ExtractedParameters(BaseModel):
    viewport: Viewport = Field(default_factory=Viewport)
    points: List[Point] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    calculus_result: Optional[CalculusResult] = None


class Feature(FrozenModel):
    type: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    description: str = ""


class PlotFunction(FrozenModel):
    label: str
    expression: str
    domain: List[float]
    color: str = "#3090FF"
    is_calculus_result: bool = False
    result_type: Optional[CalculusOperation] = None


# ─── Oracle boundary ─────────────────────────────────────────────────────────

class OracleResult(BaseModel):
    ok: bool
    expression: Optional[str] = None
    error: str = ""

    @classmethod
    def success(cls, expression: str) -> "OracleResult":
        return cls(ok=True, expression=expression)

    @classmethod
    def failure(cls, error: str) -> "OracleResult":
        return cls(ok=False, error=error)


# ─── Analysis (aggregate root) ───────────────────────────────────────────────

class Concept(FrozenModel):
    type: ConceptType = "function2D"
    subtype: str = "general"
    expression: str = "x"
    variables: List[str] = Field(default_factory=lambda: ["x"])
    matched_rules: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _subtype_belongs_to_type(self) -> "Concept":
        allowed = CONCEPT_SUBTYPES[self.type]
        if self.subtype not in allowed:
            raise ValueError(
                f"Subtype '{self.subtype}' is not valid for {self.type}; expected one of {allowed}"
            )
        return self


class ConceptDescriptor(Concept):
    """Concept as returned by the LLM parser; may carry a library preference."""
    recommended_library: Optional[str] = None


class Visualization(FrozenModel):
    recommended_library: Optional[str] = None
    alternative_libraries: List[str] = Field(default_factory=list)
    dimensionality: Dimensionality = "2D"
    complexity: Complexity = "intermediate"
    viewport: Viewport = Field(default_factory=Viewport)
    special_features: List[Feature] = Field(default_factory=list)
    interactive_elements: List[Feature] = Field(default_factory=list)


class Parameters(FrozenModel):
    domain: List[float] = Field(default_factory=_default_axis)
    range: List[float] = Field(default_factory=_default_axis)
    points: List[Point] = Field(default_factory=list)
    functions: List[PlotFunction] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)


class Step(FrozenModel):
    description: str
    focus: str


class Question(FrozenModel):
    text: str
    answer: str


class EducationalContent(FrozenModel):
    title: str
    summary: str
    key_insights: List[str] = Field(default_factory=list)
    level: str = "secondary"
    steps: List[Step] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)


class CodeSpec(FrozenModel):
    library: str
    dependencies: List[str] = Field(default_factory=list)
    template: str
    configuration: Dict[str, Any] = Field(default_factory=dict)


class Analysis(FrozenModel):
    """Aggregate result; every nested record is frozen as well."""
    concept: Concept
    visualization: Visualization
    parameters: Parameters
    educational: Optional[EducationalContent] = None
    code: Optional[CodeSpec] = None
    calculus_result: Optional[CalculusResult] = None


# ─── Downstream artifacts ────────────────────────────────────────────────────

class ExplanationStep(BaseModel):
    title: str
    content: str
    emphasis: str = ""


class PracticeQuestion(BaseModel):
    question: str
    hint: str


class SolutionExplanation(BaseModel):
    title: str
    summary: str
    steps: List[ExplanationStep] = Field(default_factory=list)
    questions: List[PracticeQuestion] = Field(default_factory=list)
    references: List[str] = Field(default_factory=list)


class RenderProps(BaseModel):
    library: str
    type: str
    expression: str
    domain: List[float]
    range: List[float]
    z_range: Optional[List[float]] = None
    points: List[Point] = Field(default_factory=list)
    elements: List[Dict[str, Any]] = Field(default_factory=list)
    width: int
    height: int
    options: Dict[str, Any] = Field(default_factory=dict)


# ─── Top-level Job Models ────────────────────────────────────────────────────

class AnalyzeRequest(BaseModel):
    problem: str = Field(..., min_length=1, max_length=settings.max_problem_chars,
                         description="Natural-language math problem")
    use_llm: bool = False


class AnalyzeResponse(BaseModel):
    job_id: str
    status: str
    analysis: Optional[Analysis] = None
    selected_library: Optional[str] = None
    render_props: Optional[RenderProps] = None
    explanation: Optional[SolutionExplanation] = None
    error: Optional[str] = None
    pipeline_trace: Optional[dict] = None  # Debug: per-step matched rules and timings


class SelectLibraryResponse(BaseModel):
    library: str
