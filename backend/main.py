"""
Feat Backend — main.py
FastAPI server exposing the differential test-case generator.

Architecture:
  1. The configuration document is parsed into typed generator trees
  2. The base set (exhaustive cross product + random draws) is built
  3. Reference and candidate sources are exec'd in-process (safety-checked)
  4. Every candidate runs on every test case; mismatches are kills
  5. Set cover over the kills yields the concise test set
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import COVER_STRATEGY, ENGINE_VERSION, EXEC_TIMEOUT_S, MAX_WORKERS
from differential.execution import implementation_from_source
from errors import GenerationError, InvalidConfigError, ToolingError
from parsing.config_parser import ConfigFileParser
from pipeline import run_pipeline

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger("feat")

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Feat — Differential Test-Case Generator",
    version=ENGINE_VERSION,
    description=(
        "Generates inputs over declared domains, runs a reference and buggy "
        "candidates on them, and returns the smallest test set that still "
        "kills every killable candidate."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------

class GenerateRequest(BaseModel):
    """Configuration document plus the implementations' source code."""
    config: dict[str, Any]
    reference_code: str = Field(..., min_length=1)
    candidates: dict[str, str] = Field(default_factory=dict)
    seed: int | None = None
    strategy: Literal["greedy", "exact"] = COVER_STRATEGY
    timeout_s: float = Field(default=EXEC_TIMEOUT_S, gt=0, le=60)


class ConciseTestCase(BaseModel):
    """One kept test case."""
    inputs: list[str]
    expected: str
    kills: list[str]


class GenerateResponse(BaseModel):
    function_name: str
    base_set_size: int
    candidates: list[str]
    killed: list[str]
    surviving: list[str]
    concise_set: list[ConciseTestCase]
    elapsed_ms: int = 0
    engine: str = ENGINE_VERSION


# ---------------------------------------------------------------------------
# Core endpoint
# ---------------------------------------------------------------------------

@app.post("/generate", response_model=GenerateResponse)
def generate(req: GenerateRequest) -> GenerateResponse:
    logger.info("━━━ /generate request (%d candidate(s)) ━━━", len(req.candidates))

    try:
        spec = ConfigFileParser().parse_document(req.config)
        reference = implementation_from_source(
            "reference", req.reference_code, spec.function_name, restricted=True,
        )
        candidates = [
            implementation_from_source(name, code, spec.function_name, restricted=True)
            for name, code in req.candidates.items()
        ]
        result = run_pipeline(
            spec, reference, candidates,
            seed=req.seed,
            strategy=req.strategy,
            timeout=req.timeout_s,
            max_workers=MAX_WORKERS,
        )
    except InvalidConfigError as exc:
        logger.warning("Invalid configuration: %s", exc)
        raise HTTPException(status_code=400, detail=f"Invalid configuration: {exc}") from exc
    except ToolingError as exc:
        logger.warning("Tooling error: %s", exc)
        raise HTTPException(status_code=422, detail=f"Tooling error: {exc}") from exc
    except GenerationError as exc:
        logger.warning("Generation error: %s", exc)
        raise HTTPException(status_code=413, detail=f"Generation error: {exc}") from exc

    kill_record = result.results.kill_record
    return GenerateResponse(
        function_name=result.function_name,
        base_set_size=len(result.base_tests),
        candidates=result.results.candidate_ids,
        killed=sorted(result.results.killed_candidates()),
        surviving=result.results.surviving_candidates(),
        concise_set=[
            ConciseTestCase(
                inputs=[v.to_literal() for v in t.inputs],
                expected=str(t.expected),
                kills=sorted(kill_record[t]),
            )
            for t in result.concise
        ],
        elapsed_ms=result.elapsed_ms,
    )


# ---------------------------------------------------------------------------
# Health-check
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "engine": ENGINE_VERSION}
