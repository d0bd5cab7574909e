from observability import admin_cli
from observability.logger import summarize
from services.quota import SqliteQuotaService


def test_tail_views_read_audit_rows(store, capsys):
    store.record_execution(
        user_id="u1", session_id="s1", node_name="interview", next_node="threshold_check", execution_ms=7, output={}
    )
    store.record_execution(
        user_id="u2",
        session_id="s2",
        node_name="generate_instances",
        next_node="error",
        execution_ms=3,
        output={},
        error_message="Insufficient quota",
    )
    store.record_compaction(
        user_id="u1", session_id="s1", original_length=200, compacted_length=50, skills_preserved=3, workflows_preserved=1
    )

    lines = admin_cli.tail_executions(10)
    assert len(lines) == 2
    assert lines[0].endswith("error=Insufficient quota")
    assert admin_cli.tail_executions(10, "u1") == [lines[1]]
    assert "ratio=0.25 skills=3 workflows=1" in admin_cli.tail_compactions(5)[0]

    admin_cli.main(["--tail-executions", "1"])
    assert "generate_instances -> error" in capsys.readouterr().out


def test_summary_line_skips_missing_fields():
    line = summarize({"session_id": "s1", "kind": "node.end", "node": "interview", "error_kind": None, "ms": 4})
    assert line == "session=s1 kind=node.end node=interview ms=4"


def test_user_report_lists_sessions_and_quota(make_workflow, pad, capsys):
    workflow = make_workflow()
    start = workflow.start_session("u1", "t1")
    workflow.submit_answer("u1", start.session_id, "t1", pad("I use python and docker daily. ", 120))
    SqliteQuotaService().check_and_consume("u1", 4)

    lines = admin_cli.user_report("u1")
    assert len(lines) == 2
    assert lines[0].startswith(f"{start.session_id} tab=t1 status=active stage=threshold_check exchanges=1")
    assert lines[1].startswith("quota remaining=16/20")

    admin_cli.main(["--user-report", "u1"])
    assert "quota remaining=16/20" in capsys.readouterr().out
