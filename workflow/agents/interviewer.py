from __future__ import annotations  # Interviewer agent producing the next question

from textwrap import dedent
from typing import List

from langchain_core.prompts import ChatPromptTemplate

from llm_gateway import TextGenerator, strip_code_fences
from ..errors import GenerationFailure
from ..models import InterviewSession
from .toolkit import clamp_text, format_recent_exchanges, joined_or, text_runnable


INTERVIEW_GUIDANCE = dedent(  # Interviewer strategy supplied with every question request
    """
    You are an expert knowledge interviewer. Your goal is to extract valuable, specific
    professional knowledge through strategic questioning.
    Build on previous discoveries and do not repeat covered ground.
    Dive deeper into processes and methodologies, ask for concrete step-by-step examples,
    and explore decision-making criteria, tools, edge cases and problem-solving approaches.
    """
).strip()

DEEP_DIVE = "Deep dive into existing topics"


def focus_areas(session: InterviewSession) -> List[str]:  # Under-covered areas for the next question
    areas: List[str] = []
    if len(session.skills) < 3:
        areas.append("Technical skills and tools")
    if len(session.workflows) < 2:
        areas.append("Step-by-step processes")
    if len(session.exchanges) < 3:
        areas.append("Concrete examples and scenarios")
    return areas or [DEEP_DIVE]


def session_progress(session: InterviewSession) -> str:  # Progress block shown to the interviewer
    return (
        f"Questions: {len(session.exchanges)}\n"
        f"Skills Found: {len(session.skills)}\n"
        f"Workflows: {len(session.workflows)}\n"
        f"Context Length: {len(session.context)} chars"
    )


class InterviewerAgent:  # Agent asking one question per round
    def __init__(self, generator: TextGenerator, *, recent_exchanges: int = 3) -> None:
        self._recent = recent_exchanges
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "User Profile:\n{user_profile}\n\n"
                        "Session Progress:\n{session_progress}\n\n"
                        "Previously Identified Skills: {skills}\n"
                        "Captured Workflows: {workflows}\n\n"
                        "Recent Conversation:\n{recent_conversation}\n\n"
                        "Current Focus Areas: {focus_areas}\n\n"
                        "Reply with only the next question, specific and building naturally on the conversation."
                    ),
                ),
            ]
        )
        self._chain = self._prompt | text_runnable(generator)

    def invoke(self, session: InterviewSession) -> str:  # Produce the next interview question
        raw = self._chain.invoke(
            {
                "instructions": INTERVIEW_GUIDANCE,
                "user_profile": session.profile_summary or "New user profile",
                "session_progress": session_progress(session),
                "skills": joined_or(session.skills),
                "workflows": joined_or(session.workflows),
                "recent_conversation": format_recent_exchanges(session.exchanges, self._recent),
                "focus_areas": ", ".join(focus_areas(session)),
            }
        )
        question = _clean_question(raw)
        if not question:
            raise GenerationFailure("Interview generation failed: provider returned an empty question")
        return question


def _clean_question(raw: str) -> str:
    text = strip_code_fences(raw or "")
    for prefix in ("next question:", "question:"):
        if text.lower().startswith(prefix):
            text = text[len(prefix):]
            break
    return clamp_text(text.strip().strip('"').strip(), limit=1000)


__all__ = ["DEEP_DIVE", "INTERVIEW_GUIDANCE", "InterviewerAgent", "focus_areas", "session_progress"]
