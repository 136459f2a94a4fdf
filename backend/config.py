"""
Feat — Shared configuration constants.

All tunable parameters live here so that every module imports from
one canonical source.  Environment variables (optionally loaded from
``backend/.env``) override the defaults.
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


# ── Execution ─────────────────────────────────────────────────────────
EXEC_TIMEOUT_S: float = float(os.getenv("FEAT_EXEC_TIMEOUT_S", "5"))
MAX_WORKERS: int = int(os.getenv("FEAT_MAX_WORKERS", "8"))
# "thread":  implementations are exec'd once and called in-process.
# "process": every call runs in a fresh interpreter.
EXECUTION_MODE: str = os.getenv("FEAT_EXECUTION_MODE", "thread")
STRICT_CODE_SAFETY: bool = _env_bool("FEAT_STRICT_CODE_SAFETY", False)

# ── Generation bounds ─────────────────────────────────────────────────
MAX_EXHAUSTIVE_SIZE: int = int(os.getenv("FEAT_MAX_EXHAUSTIVE_SIZE", "1000000"))
RANDOM_RETRY_BUDGET: int = int(os.getenv("FEAT_RANDOM_RETRY_BUDGET", "100"))
RANDOM_SEED: int | None = _env_optional_int("FEAT_RANDOM_SEED")

# ── Concise set ───────────────────────────────────────────────────────
COVER_STRATEGY: str = os.getenv("FEAT_COVER_STRATEGY", "greedy")
Z3_TIMEOUT_MS: int = int(os.getenv("FEAT_Z3_TIMEOUT_MS", "30000"))

ENGINE_VERSION: str = "feat-0.3.0"
