from __future__ import annotations  # Shared LangChain helpers for workflow agents

from typing import Any, Sequence

from langchain_core.runnables import RunnableLambda

from llm_gateway import TextGenerator
from ..errors import GenerationFailure, WorkflowError
from ..models import Exchange


def clamp_text(text: str, limit: int = 600) -> str:  # Compact whitespace and clip length
    compact = " ".join(text.split())
    if len(compact) <= limit:
        return compact
    return compact[: limit - 1].rstrip() + "…"


def joined_or(entries: Sequence[str], fallback: str = "None yet") -> str:  # Comma-join or fallback
    return ", ".join(entries) if entries else fallback


def format_recent_exchanges(exchanges: Sequence[Exchange], count: int) -> str:  # Last ``count`` Q/A pairs
    recent = list(exchanges)[-count:] if count > 0 else []
    if not recent:
        return "No conversation yet."
    return "\n\n".join(f"Q: {item.question}\nA: {item.answer}" for item in recent)


def text_runnable(generator: TextGenerator) -> RunnableLambda:  # Pipe rendered prompts into a TextGenerator
    def _invoke(payload: Any) -> str:
        prompt = _prompt_text(payload)
        try:
            return generator.generate(prompt)
        except WorkflowError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise GenerationFailure(f"Text generation failed: {exc}") from exc

    return RunnableLambda(_invoke)


def _prompt_text(payload: Any) -> str:  # Flatten LangChain prompt values into one prompt string
    if hasattr(payload, "to_messages"):
        parts = [str(message.content).strip() for message in payload.to_messages()]
        return "\n\n".join(part for part in parts if part)
    if hasattr(payload, "to_string"):
        return payload.to_string()
    if isinstance(payload, str):
        return payload
    raise TypeError("Unsupported prompt payload for text runnable")


__all__ = ["clamp_text", "format_recent_exchanges", "joined_or", "text_runnable"]
