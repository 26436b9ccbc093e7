"""Core data models shared by the parser, gap validator, and collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

NODE_SHAPES = ("rectangle", "diamond", "rounded", "hexagon")
SECTION_COLORS = ("blue", "green", "orange", "purple", "red", "cyan")


def _known(value: Any, allowed: tuple) -> str:
    """Return *value* if it is one of *allowed*, else the first allowed entry."""
    return value if value in allowed else allowed[0]


def _optional_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class LogicStep:
    step: str
    trigger: str
    action: str
    output: str
    code_ref: Optional[str] = None
    line_start: Optional[int] = None
    line_end: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "step": self.step,
            "trigger": self.trigger,
            "action": self.action,
            "output": self.output,
        }
        if self.code_ref is not None:
            data["codeRef"] = self.code_ref
        if self.line_start is not None:
            data["lineStart"] = self.line_start
            data["lineEnd"] = self.line_end if self.line_end is not None else self.line_start
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogicStep":
        return cls(
            step=str(data.get("step", "")),
            trigger=str(data.get("trigger", "")),
            action=str(data.get("action", "")),
            output=str(data.get("output", "")),
            code_ref=data.get("codeRef"),
            line_start=_optional_int(data.get("lineStart")),
            line_end=_optional_int(data.get("lineEnd")),
        )


@dataclass
class Branch:
    """The "yes" outcome of a decision match."""

    label: str
    line_start: int
    line_end: int
    content: str


@dataclass
class PatternMatch:
    label: str
    subtitle: str
    shape: str
    color: str
    line_start: int
    line_end: int
    code_snippet: str
    is_decision: bool = False
    condition: Optional[str] = None
    yes_branch: Optional[Branch] = None
    logic_steps: List[LogicStep] = field(default_factory=list)


@dataclass
class FlowNode:
    id: str
    label: str
    shape: str
    color: str
    line_start: int
    line_end: int
    code_snippet: str = ""
    subtitle: Optional[str] = None
    narrative: str = ""
    logic_table: List[LogicStep] = field(default_factory=list)
    is_decision: bool = False
    condition: Optional[str] = None
    # Drill-down sub-flow of a long route or async function.
    children: List["FlowNode"] = field(default_factory=list)
    child_edges: List["FlowEdge"] = field(default_factory=list)
    next_section_label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "subtitle": self.subtitle,
            "shape": self.shape,
            "color": self.color,
            "lineStart": self.line_start,
            "lineEnd": self.line_end,
            "codeSnippet": self.code_snippet,
            "narrative": self.narrative,
            "logicTable": [row.to_dict() for row in self.logic_table],
        }
        if self.is_decision:
            data["isDecision"] = True
            data["condition"] = self.condition
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
            data["childEdges"] = [edge.to_dict() for edge in self.child_edges]
        if self.next_section_label:
            data["nextSectionLabel"] = self.next_section_label
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowNode":
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", "")),
            shape=_known(data.get("shape"), NODE_SHAPES),
            color=_known(data.get("color"), SECTION_COLORS),
            line_start=int(data.get("lineStart", 1)),
            line_end=int(data.get("lineEnd", data.get("lineStart", 1))),
            code_snippet=str(data.get("codeSnippet", "")),
            subtitle=data.get("subtitle"),
            narrative=str(data.get("narrative", "")),
            logic_table=[LogicStep.from_dict(row) for row in data.get("logicTable") or []],
            is_decision=bool(data.get("isDecision", False)),
            condition=data.get("condition"),
            children=[FlowNode.from_dict(c) for c in data.get("children") or []],
            child_edges=[FlowEdge.from_dict(e) for e in data.get("childEdges") or []],
            next_section_label=data.get("nextSectionLabel"),
        )


@dataclass
class FlowEdge:
    id: str
    source: str
    target: str
    label: str = ""
    source_handle: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
        }
        if self.source_handle:
            data["sourceHandle"] = self.source_handle
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowEdge":
        return cls(
            id=str(data.get("id", "")),
            source=str(data["source"]),
            target=str(data["target"]),
            label=str(data.get("label") or ""),
            source_handle=data.get("sourceHandle"),
        )


@dataclass
class AnalysisResult:
    file_name: str
    language: str
    nodes: List[FlowNode]
    edges: List[FlowEdge]
    total_lines: int

    @property
    def total_sections(self) -> int:
        return len(self.nodes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.file_name,
            "language": self.language,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "totalLines": self.total_lines,
            "totalSections": self.total_sections,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            file_name=str(data.get("fileName", "")),
            language=str(data.get("language", "")),
            nodes=[FlowNode.from_dict(n) for n in data.get("nodes") or []],
            edges=[FlowEdge.from_dict(e) for e in data.get("edges") or []],
            total_lines=int(data.get("totalLines", 1)),
        )
