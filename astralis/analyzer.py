"""Core analysis entry point: source text in, gap-free flow graph out."""

from __future__ import annotations

import logging

from .gaps import fill_gaps
from .models import AnalysisResult
from .parser import parse_code, split_source

logger = logging.getLogger(__name__)


def analyze(source: str, file_name: str, language: str) -> AnalysisResult:
    """Build the flowchart for *source*.

    Pure and synchronous; never raises for any string input. ``language`` is
    carried through for labelling only.
    """
    result, branch_ids = parse_code(source, file_name, language)
    fill_gaps(result, split_source(source), branch_ids)
    logger.debug(
        "Analyzed %s (%s): %d nodes, %d edges, %d lines",
        file_name, language, len(result.nodes), len(result.edges), result.total_lines,
    )
    return result


LANGUAGE_MAP = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".rb": "ruby",
    ".cpp": "cpp",
    ".c": "c",
    ".cs": "c_sharp",
    ".php": "php",
}


def detect_language(file_name: str) -> str:
    """Guess a display language from the file extension."""
    suffix = "." + file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return LANGUAGE_MAP.get(suffix, "text")
