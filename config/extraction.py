"""YAML-driven skill, workflow and topic extraction helpers."""
from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from .settings import settings

DEFAULT_PATH = Path(__file__).with_name("extraction.yaml")


@dataclass
class WorkflowRule:
    """Phrase rule that identifies a workflow label in free text."""

    label: str
    all_of: List[str] = field(default_factory=list)
    any_of: List[str] = field(default_factory=list)

    def matches(self, lowered: str) -> bool:
        if not self.all_of and not self.any_of:
            return False
        if any(phrase not in lowered for phrase in self.all_of):
            return False
        if self.any_of and not any(phrase in lowered for phrase in self.any_of):
            return False
        return True


def _load_yaml(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _vocabulary_pattern(terms: Iterable[str]) -> Optional[re.Pattern[str]]:
    cleaned = sorted({term.strip().lower() for term in terms if term and term.strip()}, key=len, reverse=True)
    if not cleaned:
        return None
    alternation = "|".join(re.escape(term) for term in cleaned)
    return re.compile(rf"(?<![\w.+#/-])(?:{alternation})(?![\w+#/-])", re.IGNORECASE)


def _ordered_matches(pattern: Optional[re.Pattern[str]], text: str) -> List[Tuple[int, str]]:
    if pattern is None:
        return []
    return [(match.start(), match.group(0).lower()) for match in pattern.finditer(text)]


def _dedupe_by_position(hits: Sequence[Tuple[int, str]]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for _, term in sorted(hits, key=lambda item: item[0]):
        if term not in seen:
            seen.add(term)
            ordered.append(term)
    return ordered


class ExtractionEngine:
    """Compile and evaluate extraction vocabularies from YAML."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.EXTRACTION_CONFIG or str(DEFAULT_PATH)
        self._mtime = 0.0
        self._skills: Dict[str, re.Pattern[str]] = {}
        self._topics: Optional[re.Pattern[str]] = None
        self._workflows: List[WorkflowRule] = []
        self.reload_if_changed(force=True)

    def reload_if_changed(self, force: bool = False) -> None:
        """Reload YAML configuration when the file timestamp changes."""

        try:
            stat = os.stat(self.path)
            if not force and stat.st_mtime <= self._mtime:
                return
            cfg = _load_yaml(self.path)
            self._mtime = stat.st_mtime
        except FileNotFoundError:
            cfg = {"version": 1, "skills": {}, "workflows": [], "topics": {}}
            self._mtime = time.time()

        self._skills = {}
        for category, terms in (cfg.get("skills") or {}).items():
            pattern = _vocabulary_pattern(terms or [])
            if pattern is not None:
                self._skills[category] = pattern
        topic_terms: List[str] = []
        for terms in (cfg.get("topics") or {}).values():
            topic_terms.extend(terms or [])
        self._topics = _vocabulary_pattern(topic_terms)
        self._workflows = [
            WorkflowRule(
                label=str(entry["label"]).strip(),
                all_of=[str(item).lower() for item in entry.get("all_of", []) or []],
                any_of=[str(item).lower() for item in entry.get("any_of", []) or []],
            )
            for entry in cfg.get("workflows") or []
            if entry.get("label")
        ]

    def skills(self, text: str) -> List[str]:
        """Return vocabulary skills mentioned in ``text`` in order of first mention."""

        self.reload_if_changed()
        hits: List[Tuple[int, str]] = []
        for pattern in self._skills.values():
            hits.extend(_ordered_matches(pattern, text or ""))
        return _dedupe_by_position(hits)

    def workflows(self, text: str) -> List[str]:
        """Return workflow labels whose indicator phrases occur in ``text``."""

        self.reload_if_changed()
        lowered = (text or "").lower()
        return [rule.label for rule in self._workflows if rule.matches(lowered)]

    def topics(self, texts: Iterable[str]) -> List[str]:
        """Return key topics across ``texts`` in order of first mention."""

        self.reload_if_changed()
        ordered: List[str] = []
        seen: set[str] = set()
        for text in texts:
            for term in _dedupe_by_position(_ordered_matches(self._topics, text or "")):
                if term not in seen:
                    seen.add(term)
                    ordered.append(term)
        return ordered


_engine: Optional[ExtractionEngine] = None


def extraction_engine() -> ExtractionEngine:
    global _engine
    if _engine is None:
        _engine = ExtractionEngine()
    return _engine


def extract_skills(text: str) -> List[str]:
    """Convenience wrapper returning skills found by the shared engine."""

    return extraction_engine().skills(text)


def extract_workflows(text: str) -> List[str]:
    """Convenience wrapper returning workflows found by the shared engine."""

    return extraction_engine().workflows(text)


def extract_topics(texts: Iterable[str]) -> List[str]:
    return extraction_engine().topics(texts)


__all__ = [
    "ExtractionEngine",
    "WorkflowRule",
    "extract_skills",
    "extract_topics",
    "extract_workflows",
    "extraction_engine",
]
