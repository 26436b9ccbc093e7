"""Span finding, condition translation, and small text helpers.

Block boundaries are located by counting literal braces / parens per line.
Braces inside strings, template literals, or comments are counted too; the
heuristics in :mod:`astralis.patterns` are tuned against that behaviour.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Sequence

# ---------------------------------------------------------------------------
# Span Finder
# ---------------------------------------------------------------------------


def _balance_end(lines: Sequence[str], start_index: int, opener: str, closer: str) -> int:
    total = len(lines)
    if start_index >= total:
        return total
    depth = 0
    j = max(start_index, 0)
    while True:
        line = lines[j]
        depth += line.count(opener) - line.count(closer)
        j += 1
        if depth <= 0 or j >= total:
            return j


def find_block_end(lines: Sequence[str], start_index: int) -> int:
    """Return the index just past the ``{...}`` block opened at *start_index*.

    The result doubles as the 1-indexed ``lineEnd`` of the block. Unbalanced
    input runs to the end of the file.
    """
    return _balance_end(lines, start_index, "{", "}")


def find_paren_end(lines: Sequence[str], start_index: int) -> int:
    """Same as :func:`find_block_end` but balances ``(`` / ``)``."""
    return _balance_end(lines, start_index, "(", ")")


def find_indent_end(lines: Sequence[str], start_index: int) -> int:
    """Return the index just past an indentation-delimited block (``def x():``)."""
    total = len(lines)
    if start_index >= total:
        return total
    base = _indent(lines[start_index])
    last = start_index
    for j in range(start_index + 1, total):
        line = lines[j]
        if not line.strip():
            continue
        if _indent(line) <= base:
            break
        last = j
    return last + 1


def find_statement_end(lines: Sequence[str], start_index: int) -> int:
    """Pick the span finder that suits the opener line at *start_index*."""
    if start_index < len(lines) and lines[start_index].rstrip().endswith(":"):
        return find_indent_end(lines, start_index)
    return find_block_end(lines, start_index)


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def extract_snippet(lines: Sequence[str], start: int, end: int, max_lines: int = 6) -> str:
    """Join ``lines[start:end]``, capped at *max_lines* lines."""
    actual_end = min(start + max_lines, end)
    return "\n".join(lines[start:actual_end])


def is_empty_or_comment(line: str) -> bool:
    trimmed = line.strip()
    return (
        trimmed == ""
        or trimmed.startswith("//")
        or trimmed.startswith("/*")
        or trimmed.startswith("*")
        or trimmed.startswith("#")
    )


def split_camel(name: str) -> str:
    """``isLoggedIn`` -> ``is logged in``."""
    return re.sub(r"([A-Z])", r" \1", name).lower().strip()


def extract_if_condition(line: str) -> Optional[str]:
    """Return the text between the parens of the first ``if (`` on *line*.

    Parens are balanced so calls inside the condition survive; an unclosed
    condition yields everything after the opener.
    """
    match = re.search(r"\bif\s*\(", line)
    if not match:
        return None
    depth = 1
    start = match.end()
    for pos in range(start, len(line)):
        char = line[pos]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return line[start:pos].strip()
    return line[start:].strip()


def normalize_python_condition(condition: str) -> str:
    """Rewrite Python boolean syntax into the C-like form the translator reads."""
    c = condition.strip()
    c = re.sub(r"\s+is\s+not\s+None\b", " !== null", c)
    c = re.sub(r"\s+is\s+None\b", " === null", c)
    c = re.sub(r"\bnot\s+", "!", c)
    c = re.sub(r"\s+and\s+", " && ", c)
    c = re.sub(r"\s+or\s+", " || ", c)
    c = re.sub(r"\bTrue\b", "true", c)
    c = re.sub(r"\bFalse\b", "false", c)
    return c


# ---------------------------------------------------------------------------
# Condition Translator
# ---------------------------------------------------------------------------

_LITERALS = {"null", "undefined", "true", "false", "None"}
_LONG_COMPOUND = 40
_FALLBACK_LIMIT = 30

_NEGATED_NAMES = [
    ("token", "Is token missing?"),
    ("loading", "Is not loading?"),
    ("user", "Is user logged out?"),
    ("data", "Is data missing?"),
    ("error", "No error?"),
    ("valid", "Is it invalid?"),
    ("auth", "Not authenticated?"),
]

_POSITIVE_NAMES = [
    ("token", "Has valid token?"),
    ("loading", "Is loading?"),
    ("user", "Is user logged in?"),
    ("data", "Is data available?"),
    ("error", "Has error?"),
    ("valid", "Is it valid?"),
    ("auth", "Is authenticated?"),
]


def _readable(expr: str) -> str:
    text = split_camel(expr.strip().replace("?.", " ").replace(".", " "))
    return re.sub(r"\s+", " ", text).strip()


def _is_literal(expr: str) -> bool:
    e = expr.strip()
    return (
        e in _LITERALS
        or bool(re.fullmatch(r"-?\d+(\.\d+)?", e))
        or bool(re.fullmatch(r"(['\"`]).*\1", e))
    )


def _strict_inequality(c: str) -> Optional[str]:
    m = re.fullmatch(r"([^=!<>&|]+?)\s*!==\s*([^=<>&|]+)", c)
    if not m or _is_literal(m.group(2)):
        return None
    left, right = m.group(1).strip(), m.group(2).strip()
    if "password" in left.lower() and "password" in right.lower():
        return "Do passwords match?"
    return f"Does {_readable(left)} equal {_readable(right)}?"


def _optional_chain(c: str) -> Optional[str]:
    m = re.fullmatch(r"(\w+)\?\.(\w+)", c)
    if not m:
        return None
    obj, prop = _readable(m.group(1)), m.group(2)
    lowered = prop.lower()
    if lowered == "id":
        return f"Does {obj} have an ID?"
    if lowered == "ok":
        return f"Is {obj} OK?"
    if "email" in lowered:
        return f"Does {obj} have an email?"
    if "name" in lowered:
        return f"Does {obj} have a name?"
    return f"Does {obj} have {split_camel(prop)}?"


def _negated_property(c: str) -> Optional[str]:
    m = re.fullmatch(r"!(\w+)\.(\w+)", c)
    if not m:
        return None
    obj, prop = m.group(1), m.group(2)
    readable_obj = _readable(obj)
    if prop == "ok":
        return "Did request fail?"
    if prop in ("valid", "isValid"):
        return f"Is {readable_obj} invalid?"
    if prop == "success":
        return f"Did {readable_obj} fail?"
    if prop == "length":
        return f"Is {readable_obj} empty?"
    return f"Is {obj}.{prop} false?"


def _positive_property(c: str) -> Optional[str]:
    m = re.fullmatch(r"(\w+)\.(\w+)", c)
    if not m:
        return None
    obj, prop = _readable(m.group(1)), m.group(2)
    if prop == "ok":
        return "Is response OK?"
    if prop == "success":
        return f"Did {obj} succeed?"
    flag = re.fullmatch(r"is([A-Z]\w*)", prop)
    if flag:
        return f"Is {obj} {split_camel(flag.group(1))}?"
    return f"Is {obj} {split_camel(prop)}?"


def _confirm_dialog(c: str) -> Optional[str]:
    m = re.fullmatch(r"(!)?\s*(?:window\.)?confirm\((.*)\)", c, re.DOTALL)
    if not m:
        return None
    message = m.group(2).strip().strip("'\"`")
    if len(message) > 30:
        message = message[:27] + "..."
    verb = "declined" if m.group(1) else "confirmed"
    return f'User {verb}: "{message}"?'


def _named_lookup(name: str, table: List[tuple]) -> Optional[str]:
    readable = split_camel(name)
    for key, phrase in table:
        if key in readable:
            return phrase
    return None


def _bare_negation(c: str) -> Optional[str]:
    m = re.fullmatch(r"!(\w+)", c)
    if not m:
        return None
    return _named_lookup(m.group(1), _NEGATED_NAMES) or f"Is {split_camel(m.group(1))} missing?"


def _bare_positive(c: str) -> Optional[str]:
    m = re.fullmatch(r"(\w+)", c)
    if not m:
        return None
    return _named_lookup(m.group(1), _POSITIVE_NAMES) or f"Is {split_camel(m.group(1))} true?"


def _targeted_checks(c: str) -> Optional[str]:
    if "&&" in c or "||" in c:
        return None

    trimmed = re.fullmatch(r"(!)?([\w.?]+?)\.trim\(\)(?:\s*(===|!==)\s*(?:''|\"\"|``))?", c)
    if trimmed:
        name = _readable(trimmed.group(2))
        op = trimmed.group(3)
        empty = op == "===" if op else bool(trimmed.group(1))
        return f"Is {name} empty?" if empty else f"Does {name} have text?"

    length = re.fullmatch(r"([\w.?]+?)\.length\s*(===|==|>|!==|<=)\s*0", c)
    if length:
        name = _readable(length.group(1))
        if length.group(2) in ("===", "==", "<="):
            return f"Is {name} empty?"
        return f"Does {name} have items?"

    compare = re.fullmatch(r"(.+?)\s*(===|!==|==|!=)\s*(.+)", c)
    if compare:
        left, op, right = compare.group(1).strip(), compare.group(2), compare.group(3).strip()
        negated = op.startswith("!")
        name = _readable(left)
        if right in ("null", "undefined", "None"):
            return f"Does {name} exist?" if negated else f"Is {name} empty?"
        if right == "true":
            return f"Is {name} not true?" if negated else f"Is {name} true?"
        if right == "false":
            return f"Is {name} true?" if negated else f"Is {name} false?"
        shown = right.strip("'\"`")
        return f"Is {name} different from {shown}?" if negated else f"Is {name} equal to {shown}?"
    return None


def _long_compound(c: str) -> Optional[str]:
    if len(c) <= _LONG_COMPOUND:
        return None
    m = re.search(r"&&|\|\|", c)
    if not m:
        return None
    first = c[: m.start()].strip().strip("()").strip()
    if not first:
        return None
    head = condition_to_english(first).rstrip("?")
    return f"{head} (+more)?"


def _fallback(c: str) -> str:
    readable = c.replace("&&", " and ").replace("||", " or ").replace("!", "not ")
    readable = readable.replace(".", " ")
    readable = re.sub(r"([A-Z])", r" \1", readable).lower()
    readable = re.sub(r"\s+", " ", readable).strip()
    if len(readable) > _FALLBACK_LIMIT:
        readable = readable[: _FALLBACK_LIMIT - 3].rstrip() + "..."
    return readable or "condition"


_RULES: List[Callable[[str], Optional[str]]] = [
    _strict_inequality,
    _optional_chain,
    _negated_property,
    _positive_property,
    _confirm_dialog,
    _bare_negation,
    _bare_positive,
    _targeted_checks,
    _long_compound,
]


def condition_to_english(condition: str) -> str:
    """Translate a raw boolean expression into a plain-English yes/no question.

    Rules are tried in order and the first one that recognises the
    expression wins; anything unrecognised is cleaned up textually. The
    result is always capitalised and ends in ``?``.
    """
    c = (condition or "").strip()
    while c.startswith("(") and c.endswith(")") and _wraps(c):
        c = c[1:-1].strip()

    text: Optional[str] = None
    for rule in _RULES:
        text = rule(c)
        if text:
            break
    if not text:
        text = _fallback(c)

    text = text.strip()
    if not text.endswith("?"):
        text += "?"
    return text[0].upper() + text[1:]


def _wraps(c: str) -> bool:
    """True when the outer parens of *c* enclose the whole expression."""
    depth = 0
    for pos, char in enumerate(c):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and pos != len(c) - 1:
                return False
    return depth == 0
