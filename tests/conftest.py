import json
import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import WorkflowSettings
from config.registry import EMBEDDING_INDEX_KEY, QUOTA_SERVICE_KEY, TEXT_GENERATOR_KEY, unbind_model
from config.settings import settings
from llm_gateway import LlmGatewayError
from storage.migrate import migrate
from storage.store import SqliteStore
from workflow.orchestrator import InterviewWorkflow, WorkflowDeps
from workflow.ports import QuotaDecision


FILLER = "I keep the service small and measure latency under load every week. "


def padded(text: str, length: int) -> str:
    """Pad ``text`` with neutral filler to exactly ``length`` characters."""
    body = text
    while len(body) < length:
        body += FILLER
    return body[:length]


def candidate(index: int, **overrides):
    item = {
        "question": f"How would you structure deployment item number {index} for a growing team?",
        "answer": padded(f"For item {index} I describe the concrete steps with python and docker. ", 180),
        "tags": ["python", "docker", "operations"],
        "category": "engineering",
        "difficulty": "intermediate",
        "confidence_score": 85,
    }
    item.update(overrides)
    return item


def classify(prompt: str) -> str:
    if "Reply with only the next question" in prompt:
        return "interview"
    if "Answer READY" in prompt:
        return "advisory"
    if "Respond with a valid JSON array" in prompt:
        return "generate"
    if "Optimized Context:" in prompt:
        return "compact"
    return "unknown"


class ScriptedGenerator:
    """TextGenerator fake that answers by prompt kind and records every call."""

    def __init__(self):
        self.prompts = []
        self.fail_on = set()
        self.advisory = "CONTINUE - keep exploring."
        self.instance_replies = [json.dumps([candidate(i) for i in range(12)])]
        self.compaction = "Condensed narrative of the interview."
        self._questions = 0

    def generate(self, prompt: str) -> str:
        kind = classify(prompt)
        self.prompts.append((kind, prompt))
        if kind in self.fail_on:
            raise LlmGatewayError(f"{kind} provider unavailable")
        if kind == "interview":
            self._questions += 1
            return f"Question {self._questions}: tell me more about how you approach your work."
        if kind == "advisory":
            return self.advisory
        if kind == "generate":
            if len(self.instance_replies) > 1:
                return self.instance_replies.pop(0)
            return self.instance_replies[0]
        if kind == "compact":
            return self.compaction
        raise AssertionError(f"Unexpected prompt: {prompt[:80]}")

    def calls(self, kind: str) -> int:
        return sum(1 for item, _ in self.prompts if item == kind)


class FakeQuota:
    def __init__(self, remaining: int = 100):
        self.remaining = remaining
        self.calls = []

    def check_and_consume(self, user_id: str, amount: int) -> QuotaDecision:
        self.calls.append((user_id, amount))
        if amount > self.remaining:
            return QuotaDecision(allowed=False, remaining=self.remaining, limit=20)
        self.remaining -= amount
        return QuotaDecision(allowed=True, remaining=self.remaining, limit=20)


class RecordingEmbeddings:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.batches = []

    def embed_batch(self, instances) -> None:
        if self.fail:
            raise RuntimeError("vector index offline")
        self.batches.append(list(instances))


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def clean_registry():
    yield
    for key in (TEXT_GENERATOR_KEY, QUOTA_SERVICE_KEY, EMBEDDING_INDEX_KEY):
        unbind_model(key)


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def quota():
    return FakeQuota()


@pytest.fixture
def embeddings():
    return RecordingEmbeddings()


@pytest.fixture
def store():
    return SqliteStore()


@pytest.fixture
def make_workflow(generator, quota, embeddings, store):
    created = []

    def _make(**overrides):
        cfg = WorkflowSettings(**overrides)
        workflow = InterviewWorkflow(
            WorkflowDeps(
                generator=generator,
                quota=quota,
                store=store,
                embeddings=embeddings,
                settings=cfg,
                sleep=lambda _: None,
            )
        )
        created.append(workflow)
        return workflow

    yield _make
    for workflow in created:
        workflow.shutdown()


@pytest.fixture
def pad():
    return padded


@pytest.fixture
def make_candidate():
    return candidate
