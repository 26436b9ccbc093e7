"""Flowchart export helpers for JSON, DOT, and Mermaid outputs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

from .models import AnalysisResult, FlowNode

_DOT_SHAPES = {
    "rectangle": "box",
    "diamond": "diamond",
    "rounded": "box",
    "hexagon": "hexagon",
}

_COLOR_FILLS = {
    "blue": "#dbeafe",
    "green": "#dcfce7",
    "orange": "#ffedd5",
    "purple": "#ede9fe",
    "red": "#fee2e2",
    "cyan": "#cffafe",
}


def export_json(result: AnalysisResult) -> str:
    return json.dumps(result.to_dict(), indent=2)


def export_dot(result: AnalysisResult) -> str:
    lines = ["digraph Flow {"]
    lines.append("  rankdir=TB;")
    lines.append('  node [fontname="Helvetica", style=filled];')

    for node in result.nodes:
        label = f"{node.label}\\nL{node.line_start}-{node.line_end}"
        style = ', style="rounded,filled"' if node.shape == "rounded" else ""
        lines.append(
            f'  "{node.id}" [label="{_esc(label)}", shape={_DOT_SHAPES.get(node.shape, "box")}, '
            f'fillcolor="{_COLOR_FILLS.get(node.color, "#ffffff")}"{style}];'
        )

    for edge in result.edges:
        attrs = f' [label="{_esc(edge.label)}"]' if edge.label else ""
        lines.append(f'  "{edge.source}" -> "{edge.target}"{attrs};')

    lines.append("}")
    return "\n".join(lines)


def export_mermaid(result: AnalysisResult) -> str:
    lines = ["flowchart TD"]
    for node in result.nodes:
        lines.append(f"  {node.id}{_mermaid_shape(node)}")
    for edge in result.edges:
        arrow = f"-->|{edge.label}|" if edge.label else "-->"
        lines.append(f"  {edge.source} {arrow} {edge.target}")

    classes: Dict[str, list] = {}
    for node in result.nodes:
        classes.setdefault(node.color, []).append(node.id)
    for color, ids in classes.items():
        lines.append(f"  classDef {color} fill:{_COLOR_FILLS.get(color, '#ffffff')}")
        lines.append(f"  class {','.join(ids)} {color}")
    return "\n".join(lines)


def _mermaid_shape(node: FlowNode) -> str:
    text = node.label.replace('"', "'")
    if node.shape == "diamond":
        return f'{{"{text}"}}'
    if node.shape == "rounded":
        return f'("{text}")'
    if node.shape == "hexagon":
        return f'{{{{"{text}"}}}}'
    return f'["{text}"]'


EXPORTERS = {
    "json": export_json,
    "dot": export_dot,
    "mermaid": export_mermaid,
}


def write_export(result: AnalysisResult, fmt: str, output_file: Path) -> None:
    output_file.write_text(EXPORTERS[fmt](result), encoding="utf-8")


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
