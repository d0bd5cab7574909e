"""Pydantic schemas for the knowledge interview API."""
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from config.settings import settings


class StartReq(BaseModel):
    tab_id: str = Field(min_length=1)


class AnswerReq(BaseModel):
    session_id: str = Field(min_length=1)
    tab_id: str = Field(min_length=1)
    answer: str

    @field_validator("answer")
    @classmethod
    def _long_enough(cls, value: str) -> str:
        text = value.strip()
        if len(text) < settings.MIN_ANSWER_CHARS:
            raise ValueError(
                f"Please provide a more detailed answer (at least {settings.MIN_ANSWER_CHARS} characters)"
            )
        return text


class CloseReq(BaseModel):
    session_id: str = Field(min_length=1)
    tab_id: str = Field(min_length=1)


class AckResp(BaseModel):
    ok: bool = True
