"""Parsing, validation and quality scoring for generated instances."""
from __future__ import annotations

import json
import uuid
from typing import Any, Dict, List, Sequence

from llm_gateway import strip_code_fences
from workflow.errors import ParseFailure
from workflow.models import GeneratedInstance, InstanceProvenance

MIN_QUESTION_CHARS = 20
MIN_ANSWER_CHARS = 100
RICH_ANSWER_CHARS = 150
MIN_RICH_TAGS = 3


def parse_candidates(raw: str) -> List[Dict[str, Any]]:
    """Decode provider output into a list of candidate dicts.

    Accepts a bare JSON array, optionally wrapped in code fences or surrounded
    by prose, or an object holding the array under ``instances``.

    Raises:
        ParseFailure: If the output is not a well-formed list of objects.
    """

    text = strip_code_fences(raw or "")
    data = _decode(text)
    if isinstance(data, dict) and isinstance(data.get("instances"), list):
        data = data["instances"]
    if not isinstance(data, list):
        raise ParseFailure("Generated content is not a JSON array of instances")
    if not all(isinstance(item, dict) for item in data):
        raise ParseFailure("Generated instances must be JSON objects")
    return data


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start = text.find("[")
        end = text.rfind("]")
        if start == -1 or end <= start:
            raise ParseFailure("Failed to parse generated instances: no JSON array found") from None
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError as exc:
            raise ParseFailure(f"Failed to parse generated instances: {exc.msg}") from exc


def is_valid_candidate(candidate: Dict[str, Any]) -> bool:
    """Question over 20 chars, answer over 100 chars and a non-empty tag list."""

    question = candidate.get("question")
    answer = candidate.get("answer")
    tags = candidate.get("tags")
    if not isinstance(question, str) or not isinstance(answer, str):
        return False
    if len(question.strip()) <= MIN_QUESTION_CHARS or len(answer.strip()) <= MIN_ANSWER_CHARS:
        return False
    if not isinstance(tags, list):
        return False
    return any(isinstance(tag, str) and tag.strip() for tag in tags)


def quality_score(candidate: Dict[str, Any]) -> float:
    """Score a validated candidate from fixed weights, capped at 100."""

    score = 0.0
    if len(str(candidate.get("question", "")).strip()) > MIN_QUESTION_CHARS:
        score += 20
    if len(str(candidate.get("answer", "")).strip()) > RICH_ANSWER_CHARS:
        score += 30
    if len(_clean_tags(candidate.get("tags"))) >= MIN_RICH_TAGS:
        score += 20
    if _optional_text(candidate.get("difficulty")):
        score += 10
    if _optional_text(candidate.get("category")):
        score += 10
    confidence = _confidence(candidate.get("confidence_score", candidate.get("confidence")))
    if confidence > 0:
        score += min(confidence / 10, 10)
    return min(score, 100.0)


def referenced(entities: Sequence[str], text: str) -> List[str]:
    """Return the entities mentioned in ``text`` (case-insensitive), in input order."""

    lowered = text.lower()
    return [entity for entity in entities if entity and entity.lower() in lowered]


def build_instances(
    candidates: Sequence[Dict[str, Any]],
    *,
    session_id: str,
    skills: Sequence[str],
    workflows: Sequence[str],
    limit: int,
) -> List[GeneratedInstance]:
    """Drop invalid candidates, score the rest and keep at most ``limit``."""

    built: List[GeneratedInstance] = []
    for candidate in candidates:
        if len(built) >= limit:
            break
        if not is_valid_candidate(candidate):
            continue
        question = candidate["question"].strip()
        answer = candidate["answer"].strip()
        tags = _clean_tags(candidate.get("tags"))
        body = f"{question}\n{answer}\n{' '.join(tags)}"
        built.append(
            GeneratedInstance(
                id=str(uuid.uuid4()),
                question=question,
                answer=answer,
                tags=tuple(tags),
                category=_optional_text(candidate.get("category")),
                difficulty=_optional_text(candidate.get("difficulty")),
                quality_score=quality_score(candidate),
                provenance=InstanceProvenance(
                    session_id=session_id,
                    skills_referenced=tuple(referenced(skills, body)),
                    workflows_referenced=tuple(referenced(workflows, body)),
                ),
            )
        )
    return built


def _clean_tags(tags: Any) -> List[str]:
    if not isinstance(tags, list):
        return []
    return [tag.strip() for tag in tags if isinstance(tag, str) and tag.strip()]


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _confidence(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


__all__ = [
    "build_instances",
    "is_valid_candidate",
    "parse_candidates",
    "quality_score",
    "referenced",
]
