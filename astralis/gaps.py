"""Coverage validation: make sure every source line belongs to some node.

After the sweep, blank lines, closing braces, and unrecognised statements
are left uncovered. Each uncovered run becomes a filler node, labelled by a
lighter heuristic than the pattern catalog, and is spliced into the flow
after the node that preceded it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import AnalysisResult, FlowEdge, FlowNode, LogicStep

logger = logging.getLogger(__name__)

SECTION_THRESHOLD = 10


@dataclass
class Gap:
    line_start: int
    line_end: int
    predecessor: Optional[str] = None


def find_gaps(
    nodes: Sequence[FlowNode],
    total_lines: int,
    branch_ids: Iterable[str] = (),
) -> List[Gap]:
    """Return uncovered line ranges of ``[1, total_lines]`` in ascending order.

    Each gap records the id of the last flow node (never a yes-branch node)
    that starts before it.
    """
    skip = set(branch_ids)
    gaps: List[Gap] = []
    last_covered = 0
    predecessor: Optional[str] = None

    for node in sorted(nodes, key=lambda n: n.line_start):
        if node.line_start > last_covered + 1:
            gaps.append(Gap(last_covered + 1, node.line_start - 1, predecessor))
        last_covered = max(last_covered, node.line_end)
        if node.id not in skip:
            predecessor = node.id

    if last_covered < total_lines:
        gaps.append(Gap(last_covered + 1, total_lines, predecessor))
    return gaps


def classify_gap(text: str, line_count: int) -> Tuple[str, str, str, str]:
    """Return ``(label, subtitle, shape, color)`` for an uncovered chunk."""
    lower = text.lower()

    if re.search(r"\bif\s*\(?\s*!?\s*(is)?loading", lower):
        return "Loading Check", "Conditional Render", "diamond", "orange"
    if re.search(r"\bif\b", lower) and re.search(r"\breturn\b", lower):
        return "Conditional Logic", "Branching", "diamond", "orange"
    if "fetch(" in lower or re.search(r"\b(await|async)\b", lower):
        return "Async Operation", "Side Effect", "hexagon", "purple"

    handler = re.search(r"\b(handle[A-Z]\w*)", text)
    if handler:
        return f"Handler: {handler.group(1)}", "Event Handler", "rectangle", "green"
    hook = re.search(r"\b(use[A-Z]\w*)", text)
    if hook:
        return f"Hook: {hook.group(1)}", "Hook Call", "rectangle", "green"
    if re.search(r"\b(interface|type)\s+\w+", text):
        return "Type Definition", "Types", "rectangle", "blue"
    if re.search(r"^\s*(import|from)\s", text, re.MULTILINE):
        return "Imports", "Dependencies", "rectangle", "blue"
    if re.search(r"\breturn\b", lower) and "<" in text:
        return "Render Output", "JSX", "rounded", "cyan"

    if line_count > SECTION_THRESHOLD:
        return "Code Section", f"{line_count} lines", "rectangle", "blue"
    return "Code Block", f"{line_count} line{'s' if line_count != 1 else ''}", "rectangle", "blue"


def _outgoing_sequential(edges: Sequence[FlowEdge], source: str) -> Optional[FlowEdge]:
    for edge in edges:
        if edge.source == source and edge.label != "YES":
            return edge
    return None


def fill_gaps(
    result: AnalysisResult,
    lines: Sequence[str],
    branch_ids: Iterable[str] = (),
) -> AnalysisResult:
    """Insert filler nodes so the node ranges tile ``[1, total_lines]``.

    The result is modified in place and returned; nodes end up sorted by
    ``line_start``.
    """
    branch_ids = list(branch_ids)
    gaps = find_gaps(result.nodes, result.total_lines, branch_ids)
    if not gaps:
        result.nodes.sort(key=lambda n: n.line_start)
        return result

    skip = set(branch_ids)
    by_id: Dict[str, FlowNode] = {node.id: node for node in result.nodes}
    first_flow = next(
        (n.id for n in sorted(result.nodes, key=lambda n: n.line_start) if n.id not in skip),
        None,
    )

    for number, gap in enumerate(gaps, start=1):
        text = "\n".join(lines[gap.line_start - 1:gap.line_end])
        count = gap.line_end - gap.line_start + 1
        label, subtitle, shape, color = classify_gap(text, count)
        filler = FlowNode(
            id=f"gap{number}",
            label=label,
            subtitle=subtitle,
            shape=shape,
            color=color,
            line_start=gap.line_start,
            line_end=gap.line_end,
            code_snippet=text,
            narrative=f"Lines {gap.line_start}-{gap.line_end}: {label}.",
            logic_table=[LogicStep(
                step="1",
                trigger="Sequential execution",
                action=label,
                output="Continue",
                code_ref=text.strip()[:50],
                line_start=gap.line_start,
                line_end=gap.line_end,
            )],
        )
        result.nodes.append(filler)
        by_id[filler.id] = filler

        if gap.predecessor is None:
            if first_flow is not None:
                _add_edge(result, filler.id, first_flow)
            continue

        existing = _outgoing_sequential(result.edges, gap.predecessor)
        if existing is not None:
            target = existing.target
            existing.target = filler.id
            _add_edge(result, filler.id, target)
        elif by_id[gap.predecessor].is_decision:
            _add_edge(result, gap.predecessor, filler.id, "NO", "no")
        else:
            _add_edge(result, gap.predecessor, filler.id)

    result.nodes.sort(key=lambda n: n.line_start)
    logger.debug("%s: filled %d coverage gaps", result.file_name, len(gaps))
    return result


def _add_edge(result: AnalysisResult, source: str, target: str, label: str = "", handle: Optional[str] = None) -> None:
    result.edges.append(FlowEdge(
        id=f"e{len(result.edges) + 1}",
        source=source,
        target=target,
        label=label,
        source_handle=handle,
    ))


def uncovered_lines(result: AnalysisResult) -> List[int]:
    """Line numbers in ``[1, total_lines]`` not covered by any node."""
    covered = set()
    for node in result.nodes:
        covered.update(range(node.line_start, node.line_end + 1))
    return [line for line in range(1, result.total_lines + 1) if line not in covered]
