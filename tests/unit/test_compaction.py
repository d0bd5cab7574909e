import sqlite3

import pytest

from services.compaction import (
    LEDGER_OPEN,
    needs_compaction,
    preserved_entities,
    strip_ledger,
    target_length,
    with_ledger,
)
from workflow.agents import ContextCompactor
from workflow.errors import GenerationFailure
from workflow.models import CompletedAnswer


def test_budget_is_strict():
    assert not needs_compaction("x" * 100, 100)
    assert needs_compaction("x" * 101, 100)


def test_target_length_uses_ratio():
    assert target_length("x" * 1000, 0.7) == 700


def test_ledger_round_trip_and_replacement():
    first = with_ledger("Narrative.", ["python"], ["Code review workflow"])
    second = with_ledger(first, ["python", "c++"], ["Code review workflow"])
    assert second.count(LEDGER_OPEN) == 1
    assert strip_ledger(second) == "Narrative."
    assert preserved_entities(second) == (["python", "c++"], ["Code review workflow"])


def test_preserved_entities_without_ledger():
    assert preserved_entities("plain text") == ([], [])


class _FixedGenerator:
    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.reply


def test_compactor_keeps_every_entity_even_when_summary_drops_them():
    generator = _FixedGenerator("A short summary that forgets the tools.")
    context = "Q: what do you use?\nA: python, node.js and docker.\n" * 40
    result = ContextCompactor(generator).compact(
        context, skills=["python", "node.js", "docker"], workflows=["Code review workflow"], ratio=0.5
    )
    assert preserved_entities(result.text) == (["python", "node.js", "docker"], ["Code review workflow"])
    assert result.original_length == len(context)
    assert result.compacted_length == len(result.text)
    assert result.compression_ratio < 1
    assert "Target length: " + str(int(len(context) * 0.5)) in generator.prompts[0]


def test_compactor_rejects_empty_summary():
    with pytest.raises(GenerationFailure):
        ContextCompactor(_FixedGenerator("   ")).compact("some context", skills=[], workflows=[], ratio=0.7)


def test_completion_compacts_over_budget_context(make_workflow, generator, pad, tmp_db):
    workflow = make_workflow(max_exchanges=2, context_budget=300)
    start = workflow.start_session("u1", "tab-c")
    workflow.submit_answer("u1", start.session_id, "tab-c", pad("I use python and docker daily. ", 200))
    result = workflow.submit_answer("u1", start.session_id, "tab-c", pad("Our team keeps redis around. ", 200))

    assert isinstance(result, CompletedAnswer)
    assert generator.calls("compact") == 1
    context = workflow.merger.snapshot("u1")
    assert context.text.startswith("Condensed narrative of the interview.")
    assert preserved_entities(context.text) == (["python", "docker", "redis"], [])

    conn = sqlite3.connect(tmp_db)
    try:
        row = conn.execute(
            "SELECT original_length, compacted_length, compression_ratio, skills_preserved FROM context_compactions"
        ).fetchone()
    finally:
        conn.close()
    assert row[0] > 300
    assert row[1] == len(context.text)
    assert row[2] == pytest.approx(row[1] / row[0])
    assert row[3] == 3


def test_under_budget_context_is_left_alone(make_workflow, generator, pad):
    workflow = make_workflow(max_exchanges=1)
    start = workflow.start_session("u1", "tab-c")
    workflow.submit_answer("u1", start.session_id, "tab-c", pad("I use python daily. ", 120))
    assert generator.calls("compact") == 0
