"""Line-sweep parser and graph assembler.

The sweep visits every non-blank, non-comment line once and lets the
highest-priority matching pattern claim it. Overlapping multi-line matches
are then collapsed (earliest wins) and the survivors are linked into a
directed flow graph with YES / NO edges around decisions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .helpers import (
    condition_to_english,
    extract_if_condition,
    extract_snippet,
    find_paren_end,
    is_empty_or_comment,
    normalize_python_condition,
)
from .models import AnalysisResult, FlowEdge, FlowNode, LogicStep, PatternMatch
from .patterns import CODE_PATTERNS, NETWORK_MARKERS, CodePattern

logger = logging.getLogger(__name__)


@dataclass
class RawMatch:
    index: int
    pattern_name: str
    match: PatternMatch


# ===================================================================
# Line sweep
# ===================================================================

def sweep_lines(
    lines: Sequence[str],
    patterns: Optional[Sequence[CodePattern]] = None,
) -> List[RawMatch]:
    """Apply the pattern catalog to every line; first successful pattern wins."""
    catalog = CODE_PATTERNS if patterns is None else patterns
    matches: List[RawMatch] = []

    for i, line in enumerate(lines):
        if is_empty_or_comment(line):
            continue
        for pattern in catalog:
            if not pattern.match(line, i, lines):
                continue
            found = pattern.extract(line, i, lines)
            if found is not None:
                matches.append(RawMatch(index=i, pattern_name=pattern.name, match=found))
                break

    return matches


def dedupe_matches(matches: Sequence[RawMatch]) -> List[RawMatch]:
    """Drop matches whose first line is already claimed by an earlier kept match."""
    kept: List[RawMatch] = []
    claimed: List[Tuple[int, int]] = []
    for raw in matches:
        start = raw.match.line_start
        if any(lo <= start <= hi for lo, hi in claimed):
            continue
        kept.append(raw)
        claimed.append((raw.match.line_start, raw.match.line_end))
    return kept


# ===================================================================
# Drill-down sub-flows
# ===================================================================

SUB_FLOW_PATTERNS = ("asyncFunction", "route")
SUB_FLOW_MIN_SPAN = 5

_SKIP_SUB_LINES = ("}", "});", ");")
_SET_STATE_RE = re.compile(r"^(set[A-Z]\w*)\s*\(")
_ASSIGNED_RE = re.compile(r"(?:const|let|var)\s+(\w+)\s*=|^(\w+)\s*=[^=]")
_PY_SUB_IF_RE = re.compile(r"^(?:el)?if\s+(.+):\s*$")


def parse_sub_nodes(
    lines: Sequence[str],
    start_line: int,
    end_line: int,
) -> Tuple[List[FlowNode], List[FlowEdge]]:
    """Sweep the body lines ``start_line..end_line`` (1-indexed, inclusive).

    The result is a linear chain of child nodes ``sub1, sub2, ...`` joined by
    ``se1, se2, ...`` edges. Children describe the inside of a block for
    drill-down views; they are not part of the top-level flow and never
    count towards coverage.
    """
    children: List[FlowNode] = []
    edges: List[FlowEdge] = []

    def add_child(label: str, subtitle: str, shape: str, color: str, first: int, last: int,
                  snippet: str, condition: Optional[str] = None) -> None:
        child = FlowNode(
            id=f"sub{len(children) + 1}",
            label=label,
            subtitle=subtitle,
            shape=shape,
            color=color,
            line_start=first + 1,
            line_end=last + 1,
            code_snippet=snippet,
            narrative=f"Execute {label}.",
            is_decision=condition is not None,
            condition=condition,
        )
        if children:
            edges.append(FlowEdge(id=f"se{len(edges) + 1}", source=children[-1].id, target=child.id))
        children.append(child)

    stop = min(end_line, len(lines))
    i = max(start_line - 1, 0)
    while i < stop:
        line = lines[i]
        trimmed = line.strip()
        if is_empty_or_comment(line) or trimmed in _SKIP_SUB_LINES:
            i += 1
            continue

        if "await" in trimmed and any(marker in trimmed for marker in NETWORK_MARKERS):
            assigned = _ASSIGNED_RE.search(trimmed)
            name = next((g for g in assigned.groups() if g), "response") if assigned else "response"
            last = i
            if ");" not in trimmed:
                last = next((j for j in range(i + 1, stop) if ");" in lines[j]), i)
            add_child(f"API: {name}", "Network Call", "hexagon", "purple", i, last,
                      extract_snippet(lines, i, last + 1))
            i = last + 1
            continue

        if trimmed.startswith("try {") or trimmed in ("try", "try:", "try{"):
            add_child("Try Block", "Error Handling", "rounded", "orange", i, i, trimmed)
        elif trimmed.startswith(("catch", "} catch", "except")):
            add_child("Catch Error", "Error Handler", "rounded", "red", i, i, trimmed)
        elif trimmed.startswith(("if (", "if(")) or _PY_SUB_IF_RE.match(trimmed):
            py_if = _PY_SUB_IF_RE.match(trimmed)
            if py_if and not trimmed.startswith(("if (", "if(")):
                condition = normalize_python_condition(py_if.group(1))
            else:
                condition = extract_if_condition(trimmed) or "condition"
            add_child(f"If: {condition[:30]}", "Condition", "diamond", "orange", i, i, trimmed,
                      condition=condition_to_english(condition))
        elif _SET_STATE_RE.match(trimmed):
            setter = _SET_STATE_RE.match(trimmed).group(1)
            last = min(find_paren_end(lines, i), stop) - 1
            add_child(setter, "State Update", "rectangle", "green", i, last,
                      extract_snippet(lines, i, last + 1))
            i = last + 1
            continue
        elif trimmed.startswith(("const ", "let ")) and "=" in trimmed:
            assigned = re.match(r"(?:const|let)\s+(\w+)", trimmed)
            add_child(f"Const: {assigned.group(1) if assigned else 'variable'}", "Variable",
                      "rectangle", "blue", i, i, trimmed)
        elif trimmed.startswith(("console.", "logger.", "logging.", "print(")):
            is_error = re.match(r"^(console|logger|logging)\.(error|exception)", trimmed)
            add_child("Log Error" if is_error else "Log", "Debug", "rectangle", "blue", i, i, trimmed)
        i += 1

    return children, edges


def _needs_sub_flow(match: PatternMatch, pattern_name: str) -> bool:
    return pattern_name in SUB_FLOW_PATTERNS and match.line_end - match.line_start > SUB_FLOW_MIN_SPAN


# ===================================================================
# Graph assembly
# ===================================================================

def generate_narrative(match: PatternMatch, pattern_name: str) -> str:
    if match.is_decision:
        return f"Guard clause: {match.label}. If YES, take action."
    if pattern_name == "imports":
        return "Import required modules and dependencies."
    if pattern_name == "route":
        return f"Handle {match.label} HTTP request."
    if pattern_name == "dataQuery":
        return f"Execute {match.label} database operation."
    if pattern_name == "useState":
        return f"Initialize {match.label.replace('useState: ', '')} state variable."
    if pattern_name == "useEffect":
        return "Execute side effects when dependencies change."
    if pattern_name == "returnJsx":
        return "Render the component output."
    return f"Execute {match.label}."


def branch_color(label: str) -> str:
    lower = label.lower()
    if "error" in lower or "null" in lower or "return" in lower:
        return "red"
    if "jsx" in lower or "render" in lower:
        return "cyan"
    if "state" in lower or "update" in lower:
        return "green"
    if "navigate" in lower or "async" in lower:
        return "purple"
    return "blue"


class GraphAssembler:
    """Turn an ordered list of matches into FlowNodes and FlowEdges."""

    def __init__(self, lines: Sequence[str] = ()) -> None:
        self.lines = lines
        self.nodes: List[FlowNode] = []
        self.edges: List[FlowEdge] = []
        self.branch_ids: List[str] = []
        self._node_counter = 0

    def add_node(
        self,
        match: PatternMatch,
        pattern_name: str,
        next_section_label: Optional[str] = None,
    ) -> FlowNode:
        self._node_counter += 1
        steps = list(match.logic_steps) or [LogicStep(
            step="1",
            trigger="Condition check" if match.is_decision else "Execution",
            action=match.label,
            output="Yes or No" if match.is_decision else "Continue",
            code_ref=match.code_snippet[:50],
            line_start=match.line_start,
            line_end=match.line_end,
        )]
        node = FlowNode(
            id=f"n{self._node_counter}",
            label=match.label,
            subtitle=match.subtitle,
            shape=match.shape,
            color=match.color,
            line_start=match.line_start,
            line_end=match.line_end,
            code_snippet=match.code_snippet,
            narrative=generate_narrative(match, pattern_name),
            logic_table=steps,
            is_decision=match.is_decision,
            condition=match.condition,
        )
        if self.lines and _needs_sub_flow(match, pattern_name):
            self._attach_sub_flow(node, next_section_label)
        self.nodes.append(node)
        return node

    def _attach_sub_flow(self, node: FlowNode, next_section_label: Optional[str]) -> None:
        # Brace-delimited bodies end on a closing line; indented ones do not.
        opener = self.lines[node.line_start - 1].rstrip()
        body_end = node.line_end if opener.endswith(":") else node.line_end - 1
        children, child_edges = parse_sub_nodes(self.lines, node.line_start + 1, body_end)
        if not children:
            return

        if next_section_label:
            tail = FlowNode(
                id=f"sub{len(children) + 1}",
                label=f"→ {next_section_label}",
                subtitle="Next Section",
                shape="rounded",
                color="blue",
                line_start=node.line_end,
                line_end=node.line_end,
                narrative=f"Continues to {next_section_label}.",
            )
            child_edges.append(FlowEdge(id=f"se{len(child_edges) + 1}", source=children[-1].id, target=tail.id))
            children.append(tail)
            node.next_section_label = next_section_label

        node.children = children
        node.child_edges = child_edges

    def add_edge(self, source: str, target: str, label: str = "", source_handle: Optional[str] = None) -> FlowEdge:
        edge = FlowEdge(
            id=f"e{len(self.edges) + 1}",
            source=source,
            target=target,
            label=label,
            source_handle=source_handle,
        )
        self.edges.append(edge)
        return edge

    def assemble(self, matches: Sequence[RawMatch]) -> None:
        previous: Optional[FlowNode] = None

        for position, raw in enumerate(matches):
            match = raw.match
            following = matches[position + 1].match.label if position + 1 < len(matches) else None
            node = self.add_node(match, raw.pattern_name, following)

            if match.is_decision and match.yes_branch is not None:
                branch = match.yes_branch
                yes_node = self.add_node(PatternMatch(
                    label=branch.label,
                    subtitle="Early Exit",
                    shape="rounded",
                    color=branch_color(branch.label),
                    line_start=branch.line_start,
                    line_end=branch.line_end,
                    code_snippet=branch.content,
                ), "yesBranch")
                self.branch_ids.append(yes_node.id)
                self.add_edge(node.id, yes_node.id, "YES", "yes")

            if previous is not None:
                if previous.is_decision:
                    self.add_edge(previous.id, node.id, "NO", "no")
                else:
                    self.add_edge(previous.id, node.id)
            previous = node


# ===================================================================
# Entry point
# ===================================================================

def split_source(code: str) -> List[str]:
    return (code or "").split("\n")


def parse_code(code: str, file_name: str, language: str) -> Tuple[AnalysisResult, List[str]]:
    """Run the sweep and assembly over *code*.

    Returns the (not yet gap-filled) result together with the ids of the
    synthesized yes-branch nodes, which the gap validator never uses as
    flow predecessors.
    """
    lines = split_source(code)
    raw = sweep_lines(lines)
    final = dedupe_matches(raw)
    logger.debug("%s: %d raw matches, %d after dedupe", file_name, len(raw), len(final))

    assembler = GraphAssembler(lines)
    assembler.assemble(final)

    result = AnalysisResult(
        file_name=file_name,
        language=language,
        nodes=assembler.nodes,
        edges=assembler.edges,
        total_lines=len(lines),
    )
    return result, assembler.branch_ids
