"""Knowledge-ledger helpers used when compacting session context."""
from __future__ import annotations

import re
from typing import List, Sequence, Tuple

LEDGER_OPEN = "[knowledge-ledger]"
LEDGER_CLOSE = "[/knowledge-ledger]"

_LEDGER_BLOCK = re.compile(re.escape(LEDGER_OPEN) + r".*?" + re.escape(LEDGER_CLOSE), re.DOTALL)


def needs_compaction(context: str, budget: int) -> bool:
    """Compaction applies only when the context is strictly over budget."""

    return len(context) > budget


def target_length(context: str, ratio: float) -> int:
    return int(len(context) * ratio)


def strip_ledger(text: str) -> str:
    return _LEDGER_BLOCK.sub("", text).strip()


def render_ledger(skills: Sequence[str], workflows: Sequence[str]) -> str:
    lines = [LEDGER_OPEN]
    lines.extend(f"skill: {item}" for item in skills)
    lines.extend(f"workflow: {item}" for item in workflows)
    lines.append(LEDGER_CLOSE)
    return "\n".join(lines)


def with_ledger(body: str, skills: Sequence[str], workflows: Sequence[str]) -> str:
    """Replace any ledger in ``body`` with a fresh one listing every entity verbatim."""

    narrative = strip_ledger(body)
    ledger = render_ledger(skills, workflows)
    return f"{narrative}\n\n{ledger}" if narrative else ledger


def preserved_entities(text: str) -> Tuple[List[str], List[str]]:
    """Parse the skills and workflows back out of the last ledger in ``text``."""

    blocks = _LEDGER_BLOCK.findall(text)
    if not blocks:
        return [], []
    skills: List[str] = []
    workflows: List[str] = []
    for line in blocks[-1].splitlines():
        entry = line.strip()
        if entry.startswith("skill: "):
            skills.append(entry[len("skill: "):])
        elif entry.startswith("workflow: "):
            workflows.append(entry[len("workflow: "):])
    return skills, workflows


__all__ = [
    "LEDGER_CLOSE",
    "LEDGER_OPEN",
    "needs_compaction",
    "preserved_entities",
    "render_ledger",
    "strip_ledger",
    "target_length",
    "with_ledger",
]
