"""Ordered catalog of code detectors used by the line-sweep parser.

Each :class:`CodePattern` pairs a cheap ``match`` predicate with an
``extract`` function that turns the line (plus its surrounding lines) into a
:class:`~astralis.models.PatternMatch`. Patterns are tried in descending
priority and the first successful extraction claims the line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .helpers import (
    condition_to_english,
    extract_if_condition,
    extract_snippet,
    find_block_end,
    find_indent_end,
    find_paren_end,
    find_statement_end,
    normalize_python_condition,
)
from .models import Branch, LogicStep, PatternMatch

MatchFn = Callable[[str, int, Sequence[str]], bool]
ExtractFn = Callable[[str, int, Sequence[str]], Optional[PatternMatch]]


@dataclass(frozen=True)
class CodePattern:
    name: str
    priority: int
    match: MatchFn
    extract: ExtractFn


HTTP_VERBS = "get|post|put|patch|delete"
NETWORK_MARKERS = ("fetch(", "axios", "requests.", "httpx.", "aiohttp")

_IMPORT_RE = re.compile(r"^(import\s|from\s+\S+\s+import\s)")
_ROUTE_RE = re.compile(rf"\b(?:router|app|server)\.({HTTP_VERBS})\s*\(\s*['\"`]([^'\"`]*)['\"`]")
_DATA_RE = re.compile(r"\b(prisma|db|database)\.(\w+)\.(\w+)\s*\(|\b([A-Z]\w*)\.objects\.(\w+)\s*\(")
_STATE_RE = re.compile(r"const\s+\[\s*(\w+)\s*,\s*(\w+)\s*\]\s*=\s*(?:React\.)?useState\b")
_EFFECT_RE = re.compile(r"\b(?:React\.)?useEffect\s*\(")
_HOOK_RE = re.compile(r"=\s*(?:await\s+)?(use[A-Z]\w*)\s*[<(]")
_PY_GUARD_RE = re.compile(r"^if\s+(.+?):\s*return\b\s*(.*)$")
_PY_IF_RE = re.compile(r"^(?:el)?if\s+(.+):\s*$")


# ===================================================================
# Imports / types / classes
# ===================================================================

def _match_import(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(_IMPORT_RE.match(line.strip()))


def _extract_import(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    end = index
    while True:
        current = lines[end]
        if current.count("{") > current.count("}"):
            end = find_block_end(lines, end) - 1
        elif current.count("(") > current.count(")"):
            end = find_paren_end(lines, end) - 1
        if end + 1 < len(lines) and _IMPORT_RE.match(lines[end + 1].strip()):
            end += 1
            continue
        break

    return PatternMatch(
        label="IMPORTS",
        subtitle="External Dependencies",
        shape="rectangle",
        color="blue",
        line_start=index + 1,
        line_end=end + 1,
        code_snippet="\n".join(lines[index:end + 1]),
    )


def _match_interface(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(re.match(r"^(export\s+)?(declare\s+)?(interface|type)\s+\w+", line.strip()))


def _extract_interface(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = re.search(r"\b(interface|type)\s+(\w+)", line)
    kind = m.group(1) if m else "type"
    name = m.group(2) if m else "Type"
    end = find_block_end(lines, index)

    members: List[LogicStep] = []
    for member_line in lines[index + 1:end]:
        prop = re.match(r"^\s+(\w+)(\?)?:\s*(.+)", member_line)
        if prop:
            typed = f"{prop.group(1)}: {prop.group(3).rstrip(';,').strip()}"
            members.append(LogicStep(
                step=str(len(members) + 1),
                trigger="Type check",
                action=f"Define {typed}",
                output="Property typed",
                code_ref=typed,
            ))

    return PatternMatch(
        label=f"{'Interface' if kind == 'interface' else 'Type'}: {name}",
        subtitle="Type Definition",
        shape="rectangle",
        color="blue",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
        logic_steps=members,
    )


def _match_class(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(re.match(r"^(export\s+)?(default\s+)?(abstract\s+)?class\s+\w+", line.strip()))


def _extract_class(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = re.search(r"\bclass\s+(\w+)", line)
    end = find_statement_end(lines, index)
    return PatternMatch(
        label=f"Class: {m.group(1) if m else 'Class'}",
        subtitle="Class Definition",
        shape="rectangle",
        color="blue",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
    )


# ===================================================================
# Routes / functions
# ===================================================================

def _match_route(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(_ROUTE_RE.search(line))


def _extract_route(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = _ROUTE_RE.search(line)
    method = m.group(1).upper() if m else "ROUTE"
    path = (m.group(2) if m else "") or "/"
    end = find_statement_end(lines, index)
    return PatternMatch(
        label=f"{method} {path}",
        subtitle="Route Handler",
        shape="hexagon",
        color="purple",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
    )


def _match_async_function(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(
        re.search(r"async\s+function\s+\w+", line)
        or re.search(r"const\s+\w+\s*=\s*async\s*\(", line)
        or re.match(r"^async\s+def\s+\w+", line.strip())
    )


def _extract_async_function(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = (
        re.search(r"async\s+function\s+(\w+)", line)
        or re.search(r"const\s+(\w+)\s*=\s*async", line)
        or re.search(r"async\s+def\s+(\w+)", line)
    )
    name = m.group(1) if m else "asyncFunc"
    end = find_statement_end(lines, index)
    body = "\n".join(lines[index:end]).lower()

    if any(marker in body for marker in NETWORK_MARKERS):
        label = f"API: {name}"
    elif name.lower().startswith("handle"):
        label = f"Handler: {name}"
    else:
        label = f"Async: {name}"

    return PatternMatch(
        label=label,
        subtitle="Async Function",
        shape="hexagon",
        color="purple",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
    )


def _match_function(line: str, index: int, lines: Sequence[str]) -> bool:
    trimmed = line.strip()
    if "async" in line:
        return False
    return bool(
        re.match(r"^(export\s+)?(default\s+)?function\s+\w+", trimmed)
        or re.match(r"^(export\s+)?const\s+\w+\s*=\s*\([^)]*\)\s*(:\s*[^=]+)?\s*=>", trimmed)
        or re.match(r"^def\s+\w+", trimmed)
    )


def _extract_function(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = re.search(r"function\s+(\w+)", line) or re.search(r"def\s+(\w+)", line) or re.search(r"const\s+(\w+)\s*=", line)
    name = m.group(1) if m else "function"

    # Components keep only their signature so hooks and renders inside are
    # swept as separate nodes.
    if name[:1].isupper():
        return PatternMatch(
            label=f"Component: {name}",
            subtitle="React Component",
            shape="rounded",
            color="cyan",
            line_start=index + 1,
            line_end=index + 1,
            code_snippet=line.strip(),
        )

    end = find_statement_end(lines, index)
    return PatternMatch(
        label=f"Function: {name}",
        subtitle="Function Definition",
        shape="rectangle",
        color="green",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
    )


# ===================================================================
# Data layer / hooks
# ===================================================================

def _match_data_query(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(_DATA_RE.search(line))


def _extract_data_query(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = _DATA_RE.search(line)
    if m and m.group(1):
        client, model, method = m.group(1), m.group(2), m.group(3)
    elif m:
        client, model, method = "orm", m.group(4), m.group(5)
    else:
        client, model, method = "db", "model", "query"
    prefix = "Prisma" if client == "prisma" else "Query"

    end = index
    if "({" in line:
        end = find_block_end(lines, index) - 1
    elif line.count("(") > line.count(")"):
        end = find_paren_end(lines, index) - 1
    end = max(end, index)

    return PatternMatch(
        label=f"{prefix}: {model}.{method}",
        subtitle="Database Query",
        shape="hexagon",
        color="purple",
        line_start=index + 1,
        line_end=end + 1,
        code_snippet=extract_snippet(lines, index, end + 1),
    )


def _match_use_state(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(_STATE_RE.search(line))


def _extract_use_state(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = _STATE_RE.search(line)
    name = m.group(1) if m else "state"

    end = index
    if line.count("(") > line.count(")"):
        end = find_paren_end(lines, index) - 1
    end = max(end, index)

    return PatternMatch(
        label=f"useState: {name}",
        subtitle="State Hook",
        shape="rectangle",
        color="green",
        line_start=index + 1,
        line_end=end + 1,
        code_snippet=extract_snippet(lines, index, end + 1),
    )


def _match_use_effect(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(_EFFECT_RE.search(line))


def _extract_use_effect(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    end = find_block_end(lines, index)
    return PatternMatch(
        label="useEffect",
        subtitle="Side Effect",
        shape="hexagon",
        color="purple",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
    )


def _match_custom_hook(line: str, index: int, lines: Sequence[str]) -> bool:
    m = _HOOK_RE.search(line)
    return bool(m) and m.group(1) not in ("useState", "useEffect")


def _extract_custom_hook(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = _HOOK_RE.search(line)
    return PatternMatch(
        label=f"Hook: {m.group(1) if m else 'useHook'}",
        subtitle="Custom Hook",
        shape="rectangle",
        color="green",
        line_start=index + 1,
        line_end=index + 1,
        code_snippet=line.strip(),
    )


# ===================================================================
# Decisions
# ===================================================================

def _match_guard(line: str, index: int, lines: Sequence[str]) -> bool:
    trimmed = line.strip()
    if re.search(r"\bif\s*\([^)]+\)", line) and re.search(r"\breturn\b", line):
        return True
    return bool(_PY_GUARD_RE.match(trimmed))


def _guard_outcome(content: str) -> str:
    if "<" in content:
        return "Return JSX"
    if "null" in content or "None" in content:
        return "Return Null"
    if "error" in content.lower():
        return "Return Error"
    return "Early Return"


def _extract_guard(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    trimmed = line.strip()
    py_guard = _PY_GUARD_RE.match(trimmed)
    if py_guard and not re.match(r"^if\s*\(", trimmed):
        condition = normalize_python_condition(py_guard.group(1))
        returned = py_guard.group(2).strip()
        content = f"return {returned}".strip()
    else:
        condition = extract_if_condition(line) or "condition"
        ret = re.search(r"\breturn\b\s*(.*?);?\s*}?\s*$", line)
        content = f"return {ret.group(1)}".strip() if ret else "return"

    readable = condition_to_english(condition)
    return PatternMatch(
        label=readable,
        subtitle="Guard Clause",
        shape="diamond",
        color="red",
        line_start=index + 1,
        line_end=index + 1,
        code_snippet=trimmed,
        is_decision=True,
        condition=readable,
        yes_branch=Branch(
            label=_guard_outcome(content),
            line_start=index + 1,
            line_end=index + 1,
            content=content,
        ),
    )


def _match_if_block(line: str, index: int, lines: Sequence[str]) -> bool:
    trimmed = line.strip()
    if re.search(r"\breturn\b", line):
        return False
    return bool(re.search(r"\bif\s*\(.+\)\s*\{", line) or _PY_IF_RE.match(trimmed))


def _block_outcome(body: str) -> str:
    if re.search(r"\breturn\b", body):
        return "Return Early"
    if re.search(r"\bset[A-Z]\w*\s*\(|\bsetState\b", body):
        return "Update State"
    if re.search(r"\b(throw|raise)\b", body):
        return "Throw Error"
    return "Execute Block"


def _extract_if_block(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    trimmed = line.strip()
    py_if = _PY_IF_RE.match(trimmed)
    if py_if and not re.search(r"\bif\s*\(.+\)\s*\{", line):
        condition = normalize_python_condition(py_if.group(1))
        end = find_indent_end(lines, index)
        body_end = end
    else:
        condition = extract_if_condition(line) or "condition"
        end = find_block_end(lines, index)
        body_end = end - 1

    readable = condition_to_english(condition)
    body = "\n".join(lines[index + 1:body_end])
    if body_end >= index + 2:
        yes_start, yes_end = index + 2, body_end
    else:
        yes_start, yes_end = index + 1, index + 1

    return PatternMatch(
        label=readable,
        subtitle="Decision",
        shape="diamond",
        color="orange",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
        is_decision=True,
        condition=readable,
        yes_branch=Branch(
            label=_block_outcome(body),
            line_start=yes_start,
            line_end=yes_end,
            content=body,
        ),
    )


def _match_try(line: str, index: int, lines: Sequence[str]) -> bool:
    trimmed = line.strip()
    return trimmed.startswith("try {") or trimmed in ("try", "try:", "try{")


def _extract_try(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    end = find_statement_end(lines, index)
    return PatternMatch(
        label="Try Block",
        subtitle="Error Handling",
        shape="rounded",
        color="orange",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
    )


def _match_switch(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(re.search(r"\bswitch\s*\(", line))


def _extract_switch(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = re.search(r"switch\s*\(([^)]+)\)", line)
    subject = m.group(1).strip() if m else "value"
    end = find_block_end(lines, index)
    return PatternMatch(
        label=f"Switch: {subject}",
        subtitle="Multi-Branch Decision",
        shape="diamond",
        color="orange",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
        is_decision=True,
        condition=f"Which case matches {subject}?",
    )


# ===================================================================
# Render / declarations / exports
# ===================================================================

def _match_return_jsx(line: str, index: int, lines: Sequence[str]) -> bool:
    trimmed = line.strip()
    return trimmed.startswith(("return (", "return(", "return <"))


def _extract_return_jsx(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    end = find_paren_end(lines, index)
    return PatternMatch(
        label="RENDER",
        subtitle="Component Output",
        shape="rounded",
        color="cyan",
        line_start=index + 1,
        line_end=end,
        code_snippet=extract_snippet(lines, index, end),
    )


def _match_const_declaration(line: str, index: int, lines: Sequence[str]) -> bool:
    return bool(re.match(r"^const\s+\w+\s*=\s*\w+\s*\(", line.strip()))


def _extract_const_declaration(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    m = re.search(r"const\s+(\w+)\s*=\s*(\w+)\s*\(", line)
    var_name = m.group(1) if m else "variable"
    factory = m.group(2) if m else "factory"
    return PatternMatch(
        label=f"{var_name} = {factory}()",
        subtitle="Initialization",
        shape="rectangle",
        color="blue",
        line_start=index + 1,
        line_end=index + 1,
        code_snippet=line.strip(),
    )


def _match_export(line: str, index: int, lines: Sequence[str]) -> bool:
    trimmed = line.strip()
    return trimmed.startswith("export default") or trimmed.startswith("export {")


def _extract_export(line: str, index: int, lines: Sequence[str]) -> PatternMatch:
    is_default = "default" in line
    return PatternMatch(
        label="Export Default" if is_default else "Named Exports",
        subtitle="Module Export",
        shape="rectangle",
        color="blue",
        line_start=index + 1,
        line_end=index + 1,
        code_snippet=line.strip(),
    )


CODE_PATTERNS: List[CodePattern] = sorted(
    [
        CodePattern("imports", 100, _match_import, _extract_import),
        CodePattern("interface", 95, _match_interface, _extract_interface),
        CodePattern("classDefinition", 93, _match_class, _extract_class),
        CodePattern("route", 90, _match_route, _extract_route),
        CodePattern("asyncFunction", 85, _match_async_function, _extract_async_function),
        CodePattern("function", 80, _match_function, _extract_function),
        CodePattern("dataQuery", 75, _match_data_query, _extract_data_query),
        CodePattern("useState", 70, _match_use_state, _extract_use_state),
        CodePattern("useEffect", 70, _match_use_effect, _extract_use_effect),
        CodePattern("customHook", 65, _match_custom_hook, _extract_custom_hook),
        CodePattern("guardClause", 60, _match_guard, _extract_guard),
        CodePattern("ifBlock", 55, _match_if_block, _extract_if_block),
        CodePattern("tryCatch", 50, _match_try, _extract_try),
        CodePattern("switch", 48, _match_switch, _extract_switch),
        CodePattern("returnJsx", 45, _match_return_jsx, _extract_return_jsx),
        CodePattern("constDeclaration", 40, _match_const_declaration, _extract_const_declaration),
        CodePattern("export", 30, _match_export, _extract_export),
    ],
    key=lambda pattern: pattern.priority,
    reverse=True,
)
