"""
MathViz FastAPI Application
Exposes REST endpoints to analyze math problems and select libraries.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mathviz.agents.library_agent import select_library
from mathviz.config import settings
from mathviz.models import Analysis, AnalyzeRequest, AnalyzeResponse, SelectLibraryResponse
from mathviz.pipeline import run_pipeline_async

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)

# ── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="MathViz Analyzer API",
    description="Classifies natural-language math problems and describes how to visualize them.",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/health")
def health_check():
    return {"status": "ok", "version": "0.1.0", "oracle": settings.oracle_backend}


@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze(request: AnalyzeRequest):
    """
    Analyze a natural-language math problem.
    Returns the structured analysis, selected library, render props
    and a step-by-step explanation.
    """
    job_id = str(uuid.uuid4())
    logger.info("New job %s | use_llm=%s | input_len=%d", job_id, request.use_llm, len(request.problem))
    return await run_pipeline_async(request.problem, use_llm=request.use_llm or None, job_id=job_id)


@app.post("/select-library", response_model=SelectLibraryResponse)
def select_library_for(analysis: Analysis):
    """Re-run library selection for an existing analysis."""
    return SelectLibraryResponse(library=select_library(analysis))
