"""End-to-end engine scenarios driven through the public workflow API."""
import json

import pytest

from storage.instances import count_instances_for_session
from workflow.errors import QuotaExceeded
from workflow.models import CompletedAnswer, PendingAnswer, SessionStatus

SKILL_PAIRS = [
    ("python", "django"),
    ("docker", "kubernetes"),
    ("postgresql", "redis"),
    ("aws", "terraform"),
    ("react", "typescript"),
]


def test_scenario_a_diversity_and_depth_saturate(make_workflow, pad):
    workflow = make_workflow()
    start = workflow.start_session("u1", "tab-a")
    session_id = start.session_id

    result = None
    for first, second in SKILL_PAIRS:
        result = workflow.submit_answer("u1", session_id, "tab-a", pad(f"I use {first} and {second} daily. ", 300))
        assert isinstance(result, PendingAnswer)
        assert result.new_skills == [first, second]

    assert result.progress.questions_answered == 5
    assert result.progress.skills_identified == 10
    assert result.threshold_metrics.skill_diversity == 25
    assert result.threshold_metrics.conversation_depth == 30
    assert result.threshold_metrics.overall_score < 75


def test_exchange_count_grows_by_one_per_answer(make_workflow, pad):
    workflow = make_workflow()
    start = workflow.start_session("u1", "tab-a")
    assert start.progress.questions_answered == 0
    for expected in range(1, 4):
        result = workflow.submit_answer("u1", start.session_id, "tab-a", pad("A measured answer. ", 90))
        assert result.progress.questions_answered == expected


def test_scenario_b_exchange_cap_forces_generation(make_workflow, generator, pad):
    workflow = make_workflow()
    start = workflow.start_session("u1", "tab-b")

    for round_no in range(1, 20):
        result = workflow.submit_answer("u1", start.session_id, "tab-b", pad("A plain answer. ", 120))
        assert isinstance(result, PendingAnswer), f"round {round_no} completed early"
        assert result.threshold_metrics.overall_score < 60
    assert generator.calls("generate") == 0

    final = workflow.submit_answer("u1", start.session_id, "tab-b", pad("A plain answer. ", 120))
    assert isinstance(final, CompletedAnswer)
    assert final.session_summary.questions_answered == 20
    assert final.session_summary.final_score < 75
    assert final.instances_generated == 10
    assert generator.calls("generate") == 1


def test_scenario_c_quota_refusal_blocks_generation(make_workflow, generator, quota, store, pad):
    quota.remaining = 5
    workflow = make_workflow(max_exchanges=1)
    start = workflow.start_session("u1", "tab-c")

    with pytest.raises(QuotaExceeded) as excinfo:
        workflow.submit_answer("u1", start.session_id, "tab-c", pad("Short but valid answer. ", 60))

    assert "5 instances remaining" in str(excinfo.value)
    assert quota.calls == [("u1", 10)]
    assert quota.remaining == 5
    assert generator.calls("generate") == 0
    assert count_instances_for_session(start.session_id) == 0
    assert workflow.sessions.count_for("u1") == 0
    stored = store.load_session(start.session_id)
    assert stored.status is SessionStatus.ERROR
    assert stored.last_error.kind == "quota_exceeded"


def test_scenario_d_close_merges_into_global_context(make_workflow, store, pad):
    workflow = make_workflow()
    start = workflow.start_session("u1", "tab-d")
    answers = [
        "I mostly write python services for billing. ",
        "First I sketch the change, then I ship it with docker. ",
        "Our team keeps everything in postgresql. ",
    ]
    for text in answers:
        workflow.submit_answer("u1", start.session_id, "tab-d", pad(text, 100))

    workflow.close_session("u1", start.session_id, "tab-d")

    context = store.load_global_context("u1")
    assert context is not None
    assert context.skills == ["python", "docker", "postgresql"]
    assert context.workflows == ["Step-by-step process methodology"]
    assert "Q: " in context.text
    assert workflow.sessions.count_for("u1") == 0


def test_completion_persists_dataset_and_dispatches_embeddings(make_workflow, embeddings, store, pad):
    workflow = make_workflow(max_exchanges=1)
    start = workflow.start_session("u1", "tab-e")
    result = workflow.submit_answer("u1", start.session_id, "tab-e", pad("I use python and docker daily. ", 200))

    assert isinstance(result, CompletedAnswer)
    assert result.instances_generated == 10
    assert count_instances_for_session(start.session_id) == 10
    workflow.wait_for_embeddings(timeout=5)
    assert len(embeddings.batches) == 1
    assert len(embeddings.batches[0]) == 10
    context = store.load_global_context("u1")
    assert context.last_session_id == start.session_id
    assert store.load_session(start.session_id).status is SessionStatus.COMPLETED


def test_embedding_failure_never_fails_round(make_workflow, embeddings, pad):
    embeddings.fail = True
    workflow = make_workflow(max_exchanges=1)
    start = workflow.start_session("u1", "tab-f")
    result = workflow.submit_answer("u1", start.session_id, "tab-f", pad("I use python and docker daily. ", 200))
    workflow.wait_for_embeddings(timeout=5)
    assert isinstance(result, CompletedAnswer)
    assert result.instances_generated == 10


def test_completion_with_no_valid_instances_is_allowed(make_workflow, generator, make_candidate, pad):
    generator.instance_replies = [json.dumps([make_candidate(0, tags=[]), make_candidate(1, answer="too short")])]
    workflow = make_workflow(max_exchanges=1)
    start = workflow.start_session("u1", "tab-g")
    result = workflow.submit_answer("u1", start.session_id, "tab-g", pad("An answer with detail. ", 80))
    assert isinstance(result, CompletedAnswer)
    assert result.instances_generated == 0
    assert count_instances_for_session(start.session_id) == 0


def test_new_session_is_seeded_from_shared_context(make_workflow, pad):
    workflow = make_workflow()
    first = workflow.start_session("u1", "tab-1")
    workflow.submit_answer("u1", first.session_id, "tab-1", pad("I rely on kubernetes and terraform. ", 100))

    second = workflow.start_session("u1", "tab-2")
    assert second.context_snapshot.skills == ["kubernetes", "terraform"]
    assert second.context_snapshot.has_global_context is True
    assert second.progress.skills_identified == 2
