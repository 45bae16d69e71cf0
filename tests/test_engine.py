import json

import pytest

from closure_audit import (
    BatchInput,
    BatchInputError,
    FindingStatus,
    RuleRegistry,
    SourceFile,
    default_registry,
    run_batch,
)
from tests.conftest import (
    category_line,
    closure_files,
    file_name,
    summary_content,
    ticket_content,
)


def _by_stage(result, stage):
    return [f for f in result.findings if f.stage == stage]


def test_clean_batch_is_certified(clean_files):
    result = run_batch(clean_files)
    assert result.certified is True
    assert all(f.status == FindingStatus.OK for f in result.findings)
    assert [f.stage for f in result.findings] == ["SYNTAX", "COHERENCE", "SEQUENCE"]
    assert len(_by_stage(result, "COHERENCE")) == 1
    assert result.summary_counts == {"totalFiles": 6, "errors": 0, "warnings": 0}


def test_sale_count_mismatch_single_error():
    files = closure_files(summary=summary_content(sale_count=2, categories=[
        category_line(10, 3, 15000, 12396),
    ]))
    result = run_batch(files)
    assert result.certified is False
    errors = [f for f in result.findings if f.status == FindingStatus.ERROR]
    assert len(errors) == 1
    detail = errors[0].details[0]
    assert (detail.field, detail.expected, detail.actual) == ("N_VENTAS", 3, 2)


def test_ticket_header_gross_mismatch_names_ticket():
    tickets = [
        ticket_content(ticket=1, time="100100"),
        ticket_content(ticket=2, time="100200", gross=6000, payments=[6000]),
        ticket_content(ticket=3, time="100300"),
    ]
    result = run_batch(closure_files(tickets=tickets))
    messages = [f.message for f in result.findings if f.status == FindingStatus.ERROR]
    assert "Ticket Internal Math Error: 2" in messages


def test_gap_is_warning_while_boundaries_pass():
    tickets = [ticket_content(ticket=n, time=f"10{i:02d}00") for i, n in enumerate((100, 101, 103))]
    summary = summary_content(first=100, last=103)
    result = run_batch(closure_files(tickets=tickets, summary=summary))

    assert result.certified is True
    sequence = _by_stage(result, "SEQUENCE")
    assert [f.status for f in sequence] == [FindingStatus.WARNING]
    assert "102" in sequence[0].details[0].actual
    coherence = _by_stage(result, "COHERENCE")
    assert [f.status for f in coherence] == [FindingStatus.OK]
    assert result.summary_counts["warnings"] == 1


def test_missing_payments_is_structural_error_even_when_totals_balance():
    tickets = [
        ticket_content(ticket=1, time="100100"),
        ticket_content(ticket=2, time="100200", payments=[]),
        ticket_content(ticket=3, time="100300"),
    ]
    result = run_batch(closure_files(tickets=tickets))
    assert result.certified is False
    syntax = _by_stage(result, "SYNTAX")
    assert len(syntax) == 1
    assert syntax[0].status == FindingStatus.ERROR
    assert any(d.field == "Structure" for d in syntax[0].details)
    assert [f.status for f in _by_stage(result, "COHERENCE")] == [FindingStatus.OK]


def test_missing_summary_is_fatal():
    files = [f for f in closure_files() if "11008" not in f.name]
    with pytest.raises(BatchInputError, match="summary"):
        run_batch(files)


def test_missing_tickets_is_fatal():
    files = [f for f in closure_files() if "11004" not in f.name]
    with pytest.raises(BatchInputError, match="ticket"):
        run_batch(files)


def test_empty_ticket_file_is_reported_and_the_run_continues():
    empty_name = file_name("11004", 7)
    result = run_batch(closure_files() + [SourceFile(empty_name, "")])

    assert result.certified is False
    assert [f.stage for f in result.findings] == ["PARSE", "SYNTAX", "COHERENCE", "SEQUENCE"]
    unreadable = result.findings[0]
    assert unreadable.status == FindingStatus.ERROR
    assert unreadable.message == f"Unreadable File: {empty_name}"
    assert unreadable.details[0].actual == "EMPTY"
    assert result.summary_counts == {"totalFiles": 7, "errors": 1, "warnings": 0}


def test_truncated_day_close_is_reported():
    files = [f for f in closure_files() if "11002" not in f.name]
    files.append(SourceFile(file_name("11002"), "11002|20240115\n"))
    result = run_batch(files)

    unreadable = _by_stage(result, "PARSE")
    assert len(unreadable) == 1
    detail = unreadable[0].details[0]
    assert (detail.expected, detail.actual) == (">=4 fields", "2 fields")
    assert result.certified is False


def test_unreadable_summary_is_fatal():
    files = [f for f in closure_files() if "11008" not in f.name]
    files.append(SourceFile(file_name("11008"), "\n"))
    with pytest.raises(BatchInputError, match="summary"):
        run_batch(files)


def test_unrecognized_files_are_listed_not_reported(clean_files):
    result = run_batch(clean_files + [SourceFile("readme.txt", "nothing here")])
    assert result.unrecognized_files == ["readme.txt"]
    assert result.certified is True


def test_accepts_plain_mappings():
    files = [{"name": f.name, "content": f.content} for f in closure_files()]
    batch = BatchInput.from_files(files)
    assert isinstance(batch.files, tuple)
    assert run_batch(batch).certified is True


def test_result_is_json_serializable(clean_files):
    payload = run_batch(clean_files).to_dict()
    decoded = json.loads(json.dumps(payload))
    assert decoded["certified"] is True
    assert decoded["results"][0]["status"] == "ok"
    assert decoded["totals"]["global"]["sale_count"] == 3
    assert len(decoded["discounts"]) == 3
    assert decoded["category_matrix"][0]["category"] == 10
    assert decoded["category_matrix"][0]["has_error"] is False
    assert decoded["discount_files"] == {"sale": [], "return": []}


def test_runs_are_independent(clean_files):
    first = run_batch(clean_files)
    second = run_batch(list(reversed(clean_files)))
    assert first.totals == second.totals
    assert [f.to_dict() for f in first.findings] == [f.to_dict() for f in second.findings]
    assert first.run_id != second.run_id


def test_custom_registry_runs_only_registered_rules(clean_files):
    registry = RuleRegistry()
    registry.register(default_registry.get_rule("SEQUENCE"))
    result = run_batch(clean_files, registry=registry)
    assert [f.stage for f in result.findings] == ["SEQUENCE"]
    assert default_registry.get_rule("MISSING") is None


def test_discount_files_list_contributing_tickets():
    tickets = [
        ticket_content(ticket=1, time="100100", pcts=(1000, 0, 0)),
        ticket_content(ticket=2, time="100200"),
        ticket_content(ticket=3, time="100300", pcts=(2000, 0, 0)),
    ]
    result = run_batch(closure_files(tickets=tickets))
    sale = result.discount_files["sale"]
    assert [(c.ticket_id, c.discount) for c in sale] == [("1", 500.0), ("3", 1000.0)]
    assert result.discount_files["return"] == []
