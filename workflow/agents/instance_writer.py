from __future__ import annotations  # Instance writer agent with bounded parse retries

import logging
import time
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from llm_gateway import TextGenerator
from observability import log_event
from services.instances import parse_candidates
from ..errors import GenerationFailure, ParseFailure
from ..models import InterviewSession
from .toolkit import joined_or, text_runnable


WRITER_GUIDANCE = (  # Generation requirements shared with the writer
    "Generate high-quality question-answer pairs for a professional dataset based on the interview. "
    "Each pair captures specific, actionable professional knowledge. Questions are clear and practical; "
    "answers are detailed but concise (150-400 words) with concrete examples. Include relevant tags, "
    "a primary category and a difficulty level."
)

OUTPUT_FORMAT = (  # Literal braces are escaped for the prompt template
    '[{{"question": "Clear, specific professional question", '
    '"answer": "Detailed, actionable answer with concrete examples", '
    '"tags": ["tag1", "tag2", "tag3"], "category": "primary_skill_area", '
    '"difficulty": "beginner|intermediate|advanced", "confidence_score": 85}}]'
)

GenerationStatus = Literal["success", "parse_error", "provider_error"]


class GenerationOutcome(BaseModel):  # Typed result of a generation attempt sequence
    status: GenerationStatus
    candidates: List[Dict[str, Any]] = Field(default_factory=list)
    attempts: int = 0
    error: Optional[str] = None

    def raise_for_status(self) -> List[Dict[str, Any]]:  # Convert failures to workflow errors
        if self.status == "provider_error":
            raise GenerationFailure(f"Instance generation failed: {self.error}")
        if self.status == "parse_error":
            raise ParseFailure(f"Instance generation failed after {self.attempts} attempts: {self.error}")
        return self.candidates


class InstanceWriter:  # Agent producing candidate instances as JSON
    def __init__(
        self,
        generator: TextGenerator,
        *,
        max_retries: int = 2,
        backoff_s: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._max_retries = max_retries
        self._backoff_s = backoff_s
        self._sleep = sleep
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "Generate exactly {instance_count} question-answer pairs.\n\n"
                        "Interview Context:\n{full_context}\n\n"
                        "Extracted Knowledge:\n"
                        "Skills: {skills}\n"
                        "Workflows: {workflows}\n"
                        "Key Topics: {key_topics}\n\n"
                        "{retry_hint}"
                        "Respond with a valid JSON array only, in this format:\n" + OUTPUT_FORMAT
                    ),
                ),
            ]
        )
        self._chain = self._prompt | text_runnable(generator)

    def write(self, session: InterviewSession, *, count: int, key_topics: Sequence[str]) -> GenerationOutcome:
        """Request candidates, retrying only when the output cannot be parsed."""

        attempts = self._max_retries + 1
        last_error: Optional[str] = None
        for attempt in range(1, attempts + 1):
            hint = ""
            if last_error:
                hint = f"The previous response could not be parsed ({last_error}). Return only the JSON array.\n\n"
            try:
                raw = self._chain.invoke(
                    {
                        "instructions": WRITER_GUIDANCE,
                        "instance_count": count,
                        "full_context": session.context,
                        "skills": joined_or(session.skills, "None"),
                        "workflows": joined_or(session.workflows, "None"),
                        "key_topics": joined_or(list(key_topics), "None"),
                        "retry_hint": hint,
                    }
                )
            except GenerationFailure as exc:
                return GenerationOutcome(status="provider_error", attempts=attempt, error=exc.message)
            try:
                candidates = parse_candidates(raw)
            except ParseFailure as exc:
                last_error = exc.message
                log_event(
                    "generation.parse_error",
                    session.id,
                    level=logging.WARNING,
                    user_id=session.user_id,
                    attempt=attempt,
                    error=exc.message,
                )
                if attempt < attempts:
                    self._sleep(self._backoff_s * (2 ** (attempt - 1)))
                continue
            return GenerationOutcome(status="success", candidates=candidates, attempts=attempt)
        return GenerationOutcome(status="parse_error", attempts=attempts, error=last_error)


__all__ = ["GenerationOutcome", "GenerationStatus", "InstanceWriter"]
