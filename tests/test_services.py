import json
import pytest
from runledger.core.errors import InvalidRunStatusError, PathTraversalError
from runledger.ledger import create_ledger

# Runs

def test_start_run_returns_running_row(ledger):
    run_id = ledger.runs.start_run()
    assert isinstance(run_id, str) and run_id
    run = ledger.runs.get_run(run_id)
    assert run.status == "running"
    assert run.finished_at is None
    assert run.trace_id == ""


def test_start_run_keeps_trace_id(ledger):
    run_id = ledger.runs.start_run("abc-trace")
    assert ledger.runs.get_run(run_id).trace_id == "abc-trace"


@pytest.mark.parametrize("status", ["success", "error", "cancelled"])
def test_finish_run_with_terminal_status(ledger, status):
    run_id = ledger.runs.start_run()
    ledger.runs.finish_run(run_id, status)
    run = ledger.runs.get_run(run_id)
    assert run.status == status
    assert run.finished_at is not None


def test_finish_run_rejects_non_terminal_status(ledger):
    run_id = ledger.runs.start_run()
    with pytest.raises(InvalidRunStatusError):
        ledger.runs.finish_run(run_id, "running")
    assert ledger.runs.get_run(run_id).status == "running"


def test_get_unknown_run_returns_none(ledger):
    assert ledger.runs.get_run("does-not-exist") is None


def test_list_runs_newest_first(ledger):
    a = ledger.runs.start_run()
    b = ledger.runs.start_run()
    c = ledger.runs.start_run()
    assert [r.id for r in ledger.runs.list_runs()] == [c, b, a]


def test_list_runs_status_filter(ledger):
    a = ledger.runs.start_run()
    b = ledger.runs.start_run()
    ledger.runs.finish_run(a, "error")
    assert [r.id for r in ledger.runs.list_runs(status="error")] == [a]
    assert [r.id for r in ledger.runs.list_runs(status="running")] == [b]
    assert len(ledger.runs.list_runs(status="all")) == 2

# Logs

def test_append_and_list_logs_in_append_order(ledger):
    run_id = ledger.runs.start_run("t")
    for i in range(20):
        ledger.logs.append_log(run_id=run_id, trace_id="t", level="info", message=f"line {i}")
    entries = ledger.logs.list_logs(run_id)
    assert [e.message for e in entries] == [f"line {i}" for i in range(20)]
    assert all(e.trace_id == "t" and e.run_id == run_id for e in entries)


def test_logs_are_scoped_to_run(ledger):
    a = ledger.runs.start_run()
    b = ledger.runs.start_run()
    ledger.logs.append_log(run_id=a, trace_id="", level="info", message="for a")
    assert ledger.logs.list_logs(b) == []


def test_subscribe_receives_only_later_entries(ledger):
    run_id = ledger.runs.start_run()
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="before")
    received = []
    ledger.logs.subscribe(run_id, lambda e: received.append(e.message))
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="one")
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="two")
    assert received == ["one", "two"]


def test_subscriber_gets_persisted_entry(ledger):
    run_id = ledger.runs.start_run()
    received = []
    ledger.logs.subscribe(run_id, received.append)
    entry = ledger.logs.append_log(run_id=run_id, trace_id="x", level="warn", message="m")
    assert received[0].id == entry.id
    assert received[0].created_at is not None
    assert ledger.logs.list_logs(run_id)[0].id == entry.id


def test_unsubscribe_stops_delivery(ledger):
    run_id = ledger.runs.start_run()
    received = []
    unsubscribe = ledger.logs.subscribe(run_id, lambda e: received.append(e.message))
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="one")
    unsubscribe()
    unsubscribe()  # harmless twice
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="two")
    assert received == ["one"]


def test_same_handler_subscribed_twice_is_independent(ledger):
    run_id = ledger.runs.start_run()
    received = []
    first = ledger.logs.subscribe(run_id, received.append)
    ledger.logs.subscribe(run_id, received.append)
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="a")
    assert len(received) == 2
    first()
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="b")
    assert len(received) == 3


def test_failing_subscriber_does_not_block_others(ledger):
    run_id = ledger.runs.start_run()
    order = []

    def broken(entry):
        order.append("broken")
        raise RuntimeError("boom")

    ledger.logs.subscribe(run_id, broken)
    ledger.logs.subscribe(run_id, lambda e: order.append("ok"))
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="x")
    assert order == ["broken", "ok"]
    assert len(ledger.logs.list_logs(run_id)) == 1


def test_clear_subscriptions_keeps_persisted_logs(ledger):
    run_id = ledger.runs.start_run()
    received = []
    ledger.logs.subscribe(run_id, received.append)
    ledger.logs.clear_subscriptions()
    ledger.logs.append_log(run_id=run_id, trace_id="", level="info", message="x")
    assert received == []
    assert ledger.logs.subscriber_count(run_id) == 0
    assert len(ledger.logs.list_logs(run_id)) == 1

# Artifacts

def test_write_artifact_to_run_scoped_path(ledger, workspace_root):
    run_id = ledger.runs.start_run()
    artifact = ledger.artifacts.write_artifact(
        run_id=run_id, trace_id="t", path="out.json", content='{"x":1}', job_key="test", input_hash="abc123"
    )
    file_path = workspace_root / ".runledger" / "artifacts" / run_id / "out.json"
    assert file_path.read_text(encoding="utf-8") == '{"x":1}'
    assert artifact.id and artifact.created_at is not None
    assert (artifact.run_id, artifact.path, artifact.job_key, artifact.input_hash, artifact.trace_id) == (
        run_id, "out.json", "test", "abc123", "t"
    )


def test_artifacts_indexed_in_write_order(ledger):
    run_id = ledger.runs.start_run()
    for name in ["x", "sub/y", "a"]:
        ledger.artifacts.write_artifact(run_id=run_id, trace_id="", path=name, content=name, job_key="test", input_hash="h")
    assert [a.path for a in ledger.artifacts.list_artifacts(run_id)] == ["x", "sub/y", "a"]
    assert ledger.artifacts.read_artifact(run_id, "sub/y") == "sub/y"


def test_artifact_path_cannot_escape_run_dir(ledger):
    run_id = ledger.runs.start_run()
    with pytest.raises(PathTraversalError):
        ledger.artifacts.write_artifact(run_id=run_id, trace_id="", path="../other/evil.txt", content="x")
    assert ledger.artifacts.list_artifacts(run_id) == []

# Tokens + validation

def test_load_tokens_missing_file_returns_empty(ledger):
    assert ledger.tokens.load_tokens() == {}


def test_load_and_save_tokens(ledger):
    ledger.workspace.mkdirp("tokens")
    ledger.workspace.write_text("tokens/tokens.json", '{"color": "red"}')
    assert ledger.tokens.load_tokens()["color"] == "red"

    ledger.tokens.save_tokens({"size": 16})
    assert json.loads(ledger.workspace.read_text("tokens/tokens.json")) == {"size": 16}


def test_load_tokens_unparsable_returns_empty(ledger):
    ledger.workspace.write_text("tokens/tokens.json", "{not json")
    assert ledger.tokens.load_tokens() == {}


def test_tokens_path_must_be_inside_workspace(workspace_root, tmp_path):
    with pytest.raises(PathTraversalError):
        create_ledger(workspace_root, tokens_path=tmp_path / "outside.json")


def test_absolute_tokens_path_inside_workspace(workspace_root):
    ledger = create_ledger(workspace_root, tokens_path=workspace_root / "design" / "t.json")
    try:
        ledger.tokens.save_tokens({"a": 1})
        assert (workspace_root / "design" / "t.json").exists()
    finally:
        ledger.shutdown()


def test_diff_tokens(ledger):
    a = {"keep": 1, "gone": 2, "nested": {"x": 1}, "swap": {"x": 1}}
    b = {"keep": 1, "new": 3, "nested": {"x": 1}, "swap": {"x": 2}}
    diff = ledger.tokens.diff_tokens(a, b)
    assert diff.added == ["new"]
    assert diff.removed == ["gone"]
    assert diff.changed == ["swap"]


def test_validate_tokens(ledger):
    assert ledger.validation.validate_tokens({}).ok is True
    bad = ledger.validation.validate_tokens("not an object")
    assert bad.ok is False
    assert bad.issues


def test_validation_issue_format(ledger):
    result = ledger.validation.validate_tokens(123)
    assert result.ok is False
    for issue in result.issues:
        assert issue.path == "(root)"
        assert issue.message
