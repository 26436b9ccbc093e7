"""Optional LLM post-processor for parser results.

The enhancer may only rewrite cosmetic fields (label, subtitle, narrative,
logic table). Every response is checked against the parser's result; any
change to node count, ids, line ranges, shapes, colors, or edges rejects the
response and the last accepted result is kept.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_TIMEOUT, normalize_mode
from .llm import LocalLLM
from .models import AnalysisResult, LogicStep
from .prompts import build_system_prompt, build_user_message, build_verifier_prompt

logger = logging.getLogger(__name__)

LOCKED_NODE_FIELDS = ("id", "lineStart", "lineEnd", "shape", "color")
LOGIC_STEP_FIELDS = ("trigger", "action", "output")


class EnhancementRejected(ValueError):
    """The LLM response broke the parser's structural contract."""


def extract_json(text: str) -> Dict[str, Any]:
    """Pull the JSON object out of a fenced or prose-wrapped reply."""
    content = text.strip()
    fenced = re.search(r"```(?:json)?\s*(.*?)```", content, re.DOTALL)
    if fenced:
        content = fenced.group(1).strip()
    elif "{" in content:
        content = content[content.index("{"):content.rindex("}") + 1]
    data = json.loads(content)
    if not isinstance(data, dict):
        raise EnhancementRejected("response is not a JSON object")
    return data


def _edge_key(edge: Dict[str, Any]) -> Tuple[str, str, str]:
    return (str(edge.get("source")), str(edge.get("target")), str(edge.get("label") or ""))


def validate_enhancement(original: AnalysisResult, candidate: Dict[str, Any]) -> None:
    """Raise :class:`EnhancementRejected` if *candidate* alters the structure."""
    nodes = candidate.get("nodes")
    if not isinstance(nodes, list) or not nodes:
        raise EnhancementRejected("no nodes in response")
    if len(nodes) != len(original.nodes):
        raise EnhancementRejected(f"node count changed: {len(original.nodes)} -> {len(nodes)}")

    for before, after in zip(original.to_dict()["nodes"], nodes):
        if not isinstance(after, dict):
            raise EnhancementRejected("node is not an object")
        if not str(after.get("label") or "").strip():
            raise EnhancementRejected(f"node {before['id']} lost its label")
        for key in LOCKED_NODE_FIELDS:
            if key not in after:
                raise EnhancementRejected(f"node {before['id']} missing {key}")
            if str(after[key]) != str(before[key]):
                raise EnhancementRejected(f"node {before['id']} changed {key}")
        if bool(after.get("isDecision", False)) != bool(before.get("isDecision", False)):
            raise EnhancementRejected(f"node {before['id']} changed isDecision")

    edges = candidate.get("edges")
    if edges is not None:
        if not isinstance(edges, list) or not all(isinstance(e, dict) for e in edges):
            raise EnhancementRejected("edges malformed")
        if sorted(_edge_key(e) for e in edges) != sorted(_edge_key(e.to_dict()) for e in original.edges):
            raise EnhancementRejected("edge topology changed")


def _merge_logic_table(rows: Any) -> Optional[List[LogicStep]]:
    if not isinstance(rows, list) or not rows:
        return None
    steps: List[LogicStep] = []
    for number, row in enumerate(rows, start=1):
        if not isinstance(row, dict) or not all(row.get(k) for k in LOGIC_STEP_FIELDS):
            return None
        step = LogicStep.from_dict(row)
        step.step = step.step or str(number)
        steps.append(step)
    return steps


def merge_cosmetics(original: AnalysisResult, candidate: Dict[str, Any]) -> AnalysisResult:
    """Copy *original* and apply only the cosmetic fields from *candidate*."""
    merged = copy.deepcopy(original)
    for node, after in zip(merged.nodes, candidate["nodes"]):
        node.label = str(after["label"]).strip()
        if after.get("subtitle"):
            node.subtitle = str(after["subtitle"])
        if after.get("narrative"):
            node.narrative = str(after["narrative"])
        steps = _merge_logic_table(after.get("logicTable"))
        if steps is not None:
            node.logic_table = steps
    return merged


class FlowEnhancer:
    """Wraps the core result with LLM enhancement and optional verification."""

    def __init__(
        self,
        llm: LocalLLM,
        mode: str = "standard",
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ) -> None:
        self.llm = llm
        self.mode = normalize_mode(mode)
        self.timeout = timeout
        self.verify = verify

    def enhance(self, result: AnalysisResult, source: str) -> AnalysisResult:
        """Return an enhanced copy of *result*, or *result* itself on any failure."""
        passes = [("enhance", build_system_prompt(self.mode))]
        if self.verify:
            passes.append(("verify", build_verifier_prompt()))

        current = result
        for name, system_prompt in passes:
            updated = self._run_pass(name, system_prompt, result, current, source)
            if updated is None:
                break
            current = updated
        return current

    def _run_pass(
        self,
        name: str,
        system_prompt: str,
        baseline: AnalysisResult,
        current: AnalysisResult,
        source: str,
    ) -> Optional[AnalysisResult]:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": build_user_message(
                source,
                current.file_name,
                current.language,
                json.dumps(current.to_dict(), indent=2),
            )},
        ]

        reply = self._call_with_timeout(messages)
        if not reply:
            logger.warning("LLM %s pass returned nothing; keeping parser result", name)
            return None

        try:
            candidate = extract_json(reply)
            validate_enhancement(baseline, candidate)
        except (ValueError, KeyError) as exc:
            logger.warning("LLM %s pass rejected: %s", name, exc)
            return None

        logger.info("LLM %s pass accepted (%d nodes)", name, len(baseline.nodes))
        return merge_cosmetics(current, candidate)

    def _call_with_timeout(self, messages: List[Dict[str, str]]) -> Optional[str]:
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(
            self.llm.chat_completion,
            messages,
            max_tokens=8000,
            temperature=0.3,
            timeout=self.timeout,
        )
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            logger.warning("LLM call timed out after %.1fs", self.timeout)
            return None
        except Exception as exc:
            logger.warning("LLM call failed: %s", exc)
            return None
        finally:
            executor.shutdown(wait=False)
