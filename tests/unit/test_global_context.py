import threading

from services.global_context import GlobalContextMerger, merge_context
from workflow.models import GlobalContext, InterviewSession, SessionStatus


def _session(session_id, skills=(), workflows=(), context="", status=SessionStatus.ACTIVE):
    return InterviewSession(
        id=session_id,
        user_id="u1",
        tab_id=f"tab-{session_id}",
        skills=list(skills),
        workflows=list(workflows),
        context=context,
        status=status,
    )


def test_merge_unions_entities_and_replaces_text():
    current = GlobalContext(user_id="u1", text="old", skills=["python", "docker"], workflows=["A"], version=4)
    merged = merge_context(current, _session("s1", skills=["Docker", "redis"], workflows=["B"], context="new"))
    assert merged.text == "new"
    assert merged.skills == ["python", "docker", "redis"]
    assert merged.workflows == ["A", "B"]
    assert merged.version == 5
    assert merged.last_session_id is None


def test_finished_sessions_become_last_session():
    current = GlobalContext(user_id="u1", last_session_id="older")
    assert merge_context(current, _session("s1", status=SessionStatus.COMPLETED)).last_session_id == "s1"
    assert merge_context(current, _session("s2", status=SessionStatus.ERROR)).last_session_id == "s2"
    assert merge_context(current, _session("s3")).last_session_id == "older"


def test_merger_persists_and_reloads(store):
    merger = GlobalContextMerger(store)
    assert merger.snapshot("u1").version == 0
    assert store.load_global_context("u1") is None

    merger.merge(_session("s1", skills=["python"], context="first"))
    merger.merge(_session("s2", skills=["docker"], context="second"))

    stored = store.load_global_context("u1")
    assert stored.version == 2
    assert stored.skills == ["python", "docker"]
    assert stored.text == "second"
    assert GlobalContextMerger(store).snapshot("u1").skills == ["python", "docker"]


def test_snapshot_is_a_copy(store):
    merger = GlobalContextMerger(store)
    merger.merge(_session("s1", skills=["python"]))
    snap = merger.snapshot("u1")
    snap.skills.append("docker")
    assert merger.snapshot("u1").skills == ["python"]


def test_concurrent_merges_lose_nothing(store):
    merger = GlobalContextMerger(store)
    skills = [f"skill-{index}" for index in range(12)]
    barrier = threading.Barrier(len(skills))

    def run(index):
        barrier.wait()
        merger.merge(_session(f"s{index}", skills=[skills[index]], context=f"text {index}"))

    threads = [threading.Thread(target=run, args=(index,)) for index in range(len(skills))]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = store.load_global_context("u1")
    assert sorted(final.skills) == sorted(skills)
    assert final.version == len(skills)


def test_merger_reads_store_and_releases_user_locks(store):
    merger = GlobalContextMerger(store)
    for index in range(3):
        merger.merge(_session(f"s{index}", skills=["python"]))
    assert len(merger._locks) == 0

    store.save_global_context(GlobalContext(user_id="u1", text="edited", skills=["go"], version=9))
    snap = merger.snapshot("u1")
    assert snap.skills == ["go"]
    assert snap.version == 9
    assert merger.merge(_session("s9", skills=["rust"])).skills == ["go", "rust"]
