from __future__ import annotations  # Advisory agent recommending ready/continue near the threshold

import re
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate

from llm_gateway import TextGenerator
from ..models import AdvisoryRecommendation, InterviewSession, ThresholdMetrics
from .toolkit import format_recent_exchanges, text_runnable


ADVISOR_GUIDANCE = (  # Evaluation criteria shared with the advisor
    "Analyze the interview session to determine if sufficient knowledge has been captured "
    "for high-quality dataset generation. Weigh conversation depth, skill diversity, "
    "workflow complexity and context richness."
)

_LEADING_WORD = re.compile(r"\W*(\w+)")
_CONTINUE = re.compile(r"\b(continue|not\s+ready)\b", re.IGNORECASE)
_READY = re.compile(r"\b(ready|generate)\b", re.IGNORECASE)


def parse_recommendation(text: str) -> Optional[AdvisoryRecommendation]:  # Map free text to a recommendation
    leading = _LEADING_WORD.match(text or "")
    if leading and leading.group(1).lower() in ("ready", "continue"):
        return leading.group(1).lower()  # type: ignore[return-value]
    if _CONTINUE.search(text or ""):
        return "continue"
    if _READY.search(text or ""):
        return "ready"
    return None


class ThresholdAdvisor:  # Advisory pass used only inside the configured score band
    def __init__(self, generator: TextGenerator, *, history_window: int = 5) -> None:
        self._window = history_window
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "Conversation History:\n{conversation}\n\n"
                        "Current Metrics:\n"
                        "- Questions Asked: {questions}\n"
                        "- Skills Identified: {skills}\n"
                        "- Workflows Captured: {workflows}\n"
                        "- Context Length: {context_length} characters\n"
                        "- Deterministic Score: {score}\n\n"
                        "Answer READY if the session should move to instance generation,"
                        " otherwise CONTINUE, followed by a one-sentence reason."
                    ),
                ),
            ]
        )
        self._chain = self._prompt | text_runnable(generator)

    def invoke(self, session: InterviewSession, metrics: ThresholdMetrics) -> Optional[AdvisoryRecommendation]:
        raw = self._chain.invoke(
            {
                "instructions": ADVISOR_GUIDANCE,
                "conversation": format_recent_exchanges(session.exchanges, self._window),
                "questions": len(session.exchanges),
                "skills": len(session.skills),
                "workflows": len(session.workflows),
                "context_length": len(session.context),
                "score": f"{metrics.overall_score:.1f}",
            }
        )
        return parse_recommendation(raw)


__all__ = ["ThresholdAdvisor", "parse_recommendation"]
