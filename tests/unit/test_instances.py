import json

import pytest

from services.instances import build_instances, is_valid_candidate, parse_candidates, quality_score, referenced
from workflow.errors import ParseFailure


def test_parse_plain_fenced_and_wrapped(make_candidate):
    items = [make_candidate(0), make_candidate(1)]
    raw = json.dumps(items)
    assert parse_candidates(raw) == items
    assert parse_candidates(f"```json\n{raw}\n```") == items
    assert parse_candidates(f"Here you go:\n{raw}\nHope it helps.") == items
    assert parse_candidates(json.dumps({"instances": items})) == items


@pytest.mark.parametrize("raw", ["", "not json at all", "[1, 2, 3]", '{"question": "x"}', "[{\"question\": "])
def test_parse_rejects_malformed_output(raw):
    with pytest.raises(ParseFailure):
        parse_candidates(raw)


def test_validation_thresholds(make_candidate):
    assert is_valid_candidate(make_candidate(0))
    assert not is_valid_candidate(make_candidate(0, question="Too short question?"))
    assert not is_valid_candidate(make_candidate(0, answer="x" * 100))
    assert is_valid_candidate(make_candidate(0, answer="x" * 101))
    assert not is_valid_candidate(make_candidate(0, tags=[]))
    assert not is_valid_candidate(make_candidate(0, tags=["  "]))
    assert not is_valid_candidate(make_candidate(0, tags="python"))


def test_quality_score_weights(make_candidate):
    assert quality_score(make_candidate(0)) == pytest.approx(98.5)
    bare = make_candidate(0, answer="y" * 120, tags=["python"], category=None, difficulty=None, confidence_score=None)
    assert quality_score(bare) == pytest.approx(20.0)
    assert quality_score(make_candidate(0, confidence_score=250)) == pytest.approx(100.0)


def test_confidence_alias_is_accepted(make_candidate):
    item = make_candidate(0)
    del item["confidence_score"]
    item["confidence"] = 40
    assert quality_score(item) == pytest.approx(94.0)


def test_build_keeps_valid_and_truncates(make_candidate):
    candidates = [make_candidate(i) for i in range(12)]
    candidates.insert(3, make_candidate(99, tags=[]))
    built = build_instances(candidates, session_id="s1", skills=["python"], workflows=[], limit=10)
    assert len(built) == 10
    assert all(item.quality_score == pytest.approx(98.5) for item in built)
    assert len({item.id for item in built}) == 10


def test_provenance_records_referenced_entities(make_candidate):
    built = build_instances(
        [make_candidate(0)],
        session_id="s1",
        skills=["Python", "Kubernetes", "Docker"],
        workflows=["Code review workflow"],
        limit=10,
    )
    provenance = built[0].provenance
    assert provenance.session_id == "s1"
    assert provenance.skills_referenced == ("Python", "Docker")
    assert provenance.workflows_referenced == ()


def test_referenced_is_case_insensitive():
    assert referenced(["React", "SQL"], "we use react every day") == ["React"]
