"""Coordinates the history cache, the core analyzer, and the optional enhancer."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional

from .analyzer import analyze
from .config import ENHANCE_TIMEOUT, normalize_mode
from .enhancer import FlowEnhancer
from .llm import LocalLLM
from .models import AnalysisResult
from .storage import AnalysisHistory, hash_source

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    analysis_id: Optional[str]
    result: AnalysisResult
    cached: bool = False
    enhanced: bool = False


class AnalysisOrchestrator:
    """Cache lookup -> core analysis -> optional enhancement -> save."""

    def __init__(
        self,
        history: Optional[AnalysisHistory] = None,
        llm: Optional[LocalLLM] = None,
        timeout: float = ENHANCE_TIMEOUT,
    ) -> None:
        self.history = history
        self.llm = llm
        self.timeout = timeout

    def run(
        self,
        source: str,
        file_name: str,
        language: str,
        mode: str = "standard",
        enhance: bool = False,
        use_cache: bool = True,
    ) -> AnalysisOutcome:
        mode = normalize_mode(mode)
        # Plain and LLM-enhanced results are cached separately.
        wants_llm = bool(enhance and self.llm is not None and self.llm.available)

        if use_cache and self.history is not None:
            try:
                cached = self.history.find_cached(hash_source(source), mode, enhanced=wants_llm)
            except sqlite3.Error as exc:
                logger.warning("History lookup failed: %s", exc)
                cached = None
            if cached:
                logger.info("Cache hit for %s", file_name)
                return AnalysisOutcome(cached["id"], cached["result"], cached=True, enhanced=cached["enhanced"])

        result = analyze(source, file_name, language)
        enhanced = False
        if wants_llm:
            enhancer = FlowEnhancer(self.llm, mode=mode, timeout=self.timeout)
            improved = enhancer.enhance(result, source)
            enhanced = improved is not result
            result = improved

        analysis_id = None
        if self.history is not None:
            try:
                analysis_id = self.history.save(file_name, language, mode, source, result, enhanced=enhanced)
            except sqlite3.Error as exc:
                logger.warning("Could not save analysis for %s: %s", file_name, exc)

        return AnalysisOutcome(analysis_id, result, cached=False, enhanced=enhanced)
