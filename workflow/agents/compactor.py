from __future__ import annotations  # Context compactor agent preserving skills and workflows

from typing import Sequence

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel

from llm_gateway import TextGenerator, strip_code_fences
from services.compaction import strip_ledger, target_length, with_ledger
from ..errors import GenerationFailure
from .toolkit import joined_or, text_runnable


COMPACTOR_GUIDANCE = (  # Compression goals shared with the compactor
    "Compress and optimize the conversation context while preserving all critical knowledge. "
    "Keep every listed skill and workflow verbatim, concrete examples, specific processes, "
    "decision-making criteria and best practices. Drop redundancy and small talk."
)


class CompactionResult(BaseModel):  # Compacted text plus the lengths used for audit
    text: str
    original_length: int
    compacted_length: int

    @property
    def compression_ratio(self) -> float:
        return self.compacted_length / self.original_length if self.original_length else 1.0


class ContextCompactor:  # Agent summarizing context down to a target length
    def __init__(self, generator: TextGenerator) -> None:
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "Original Context ({original_length} chars):\n{original_context}\n\n"
                        "Target length: {target_length} characters\n"
                        "Skills to preserve: {skills}\n"
                        "Workflows to preserve: {workflows}\n\n"
                        "Optimized Context:"
                    ),
                ),
            ]
        )
        self._chain = self._prompt | text_runnable(generator)

    def compact(self, context: str, *, skills: Sequence[str], workflows: Sequence[str], ratio: float) -> CompactionResult:
        body = strip_ledger(context)
        raw = self._chain.invoke(
            {
                "instructions": COMPACTOR_GUIDANCE,
                "original_length": len(context),
                "original_context": body,
                "target_length": target_length(context, ratio),
                "skills": joined_or(list(skills), "None"),
                "workflows": joined_or(list(workflows), "None"),
            }
        )
        summary = strip_code_fences(raw or "")
        if not summary:
            raise GenerationFailure("Context compaction returned empty text")
        compacted = with_ledger(summary, skills, workflows)
        return CompactionResult(text=compacted, original_length=len(context), compacted_length=len(compacted))


__all__ = ["COMPACTOR_GUIDANCE", "CompactionResult", "ContextCompactor"]
