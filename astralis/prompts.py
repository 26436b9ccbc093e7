"""Prompts for the optional LLM enhancement and verification passes."""

from __future__ import annotations

from .config import normalize_mode

MODE_DESCRIPTIONS = {
    "concise": "Brief narratives, minimal logic table entries.",
    "standard": "Clear narratives, detailed logic tables for each node.",
    "deep_dive": "Comprehensive narratives, step-by-step logic tables, all decision branches explained.",
}


def build_system_prompt(mode: str) -> str:
    """System prompt for the enhancement pass at the given verbosity *mode*."""
    mode = normalize_mode(mode)
    return f"""You enhance parser-generated code flowcharts with human-readable narratives.

You receive a flowchart that a pattern-based parser already built. Improve it; do not recreate it.

MODE: {mode.upper()} - {MODE_DESCRIPTIONS[mode]}

FIELDS YOU MAY CHANGE (per node):
1. label     - short semantic name for the section
2. subtitle  - brief descriptor
3. narrative - what this section does, in plain English
   BAD:  "This is an if statement"
   GOOD: "Validates user input before submitting the form"
4. logicTable - list of {{"step", "trigger", "action", "output"}} rows

DO NOT CHANGE:
- the number or order of nodes
- id, lineStart, lineEnd, shape, color, isDecision
- the edges array

COLORS (for reference only): blue=setup/imports, green=state/success,
orange=decision, purple=async/side effect, red=error/guard, cyan=render.

Return the full flowchart as JSON with the same top-level keys:
fileName, language, nodes, edges, totalLines, totalSections.
Respond with ONLY valid JSON. No markdown fences, no explanations.
"""


def build_verifier_prompt() -> str:
    """System prompt for the verification pass."""
    return """You are a strict auditor of code flowcharts.

Check that each node's label and narrative describe what its source lines actually do,
and that decision nodes read as yes/no questions.

You may only rewrite label, subtitle, narrative and logicTable.
Never add, remove or reorder nodes; never change ids, line numbers, shapes, colors or edges.
Do not describe features that are not in the code.

Return the corrected flowchart JSON (same format as the input), or the input unchanged.
Respond ONLY with valid JSON."""


def build_user_message(source: str, file_name: str, language: str, flowchart_json: str) -> str:
    return (
        f'Source of "{file_name}" ({language}):\n'
        f"```{language}\n{source}\n```\n\n"
        f"CURRENT FLOWCHART:\n{flowchart_json}"
    )
