import pytest

from closure_audit import RecordKind, RecordParseError, RecordTokenizer
from closure_audit.io import parse_amount, parse_int
from closure_audit.parser import parse_file, parse_summary, parse_system_event, parse_ticket
from tests.conftest import (
    category_line,
    event_content,
    file_name,
    item,
    summary_content,
    ticket_content,
)


def test_identify_from_file_name_slice():
    tokenizer = RecordTokenizer()
    assert tokenizer.identify(file_name("11004"), "garbage") == RecordKind.SALE
    assert tokenizer.identify(file_name("11008"), "") == RecordKind.SUMMARY


def test_identify_falls_back_to_first_field():
    tokenizer = RecordTokenizer()
    assert tokenizer.identify("ticket.txt", ticket_content()) == RecordKind.SALE
    assert tokenizer.identify("open.txt", event_content("11001")) == RecordKind.DAY_OPEN
    assert tokenizer.identify("close.txt", event_content("11002")) == RecordKind.DAY_CLOSE


def test_identify_unknown_returns_none():
    assert RecordTokenizer().identify("notes.txt", "hello|world") is None


def test_parse_int_leading_digits():
    assert parse_int("0042") == 42
    assert parse_int("12ab") == 12
    assert parse_int("abc") is None
    assert parse_amount("") == 0
    assert parse_amount("  ") == 0
    assert parse_amount("x1") == 0


def test_parse_ticket_header_positions():
    content = ticket_content(
        ticket=57, kind=2, time="134501", discount=250, pcts=(1000, 500, 0),
        items=[item(net=826, gross=1000, units=2, base=1000)],
    )
    ticket = parse_ticket("t.txt", content)
    header = ticket.header
    assert header.code == "11004"
    assert header.date == "20240115"
    assert header.time == "134501"
    assert header.closure_id == "000123"
    assert header.ticket_id == "57"
    assert ticket.ticket_number == 57
    assert header.kind == 2
    assert header.is_return and not header.is_sale
    assert header.net == 826
    assert header.gross == 1000
    assert header.tax == 174
    assert header.discount == 250
    assert header.discount_percentages == (1000, 500, 0)
    assert header.item_count == 1
    assert header.unit_count == 2


def test_parse_ticket_body_lines():
    content = ticket_content(
        items=[item(category=10, d1=10, d2=20, d3=30), item(category=22, code="ART002", record_id="502")],
        payments=[6000, 4000],
        gross=10000,
    )
    ticket = parse_ticket("t.txt", content + "850|ignored|line\n")
    assert len(ticket.items) == 2
    assert len(ticket.payments) == 2
    assert len(ticket.taxes) == 1

    first = ticket.items[0]
    assert first.article_code == "ART001"
    assert first.category == 10
    assert first.net == 4132
    assert first.gross == 5000
    assert first.units == 1
    assert first.base_amount == 5000
    assert (first.line_discount_1, first.line_discount_2, first.line_discount_3) == (10, 20, 30)
    assert first.line_discount_total == 60
    assert first.fiscal_type == 1
    assert first.tax_rate == 2100
    assert ticket.items[1].category == 22

    assert [p.amount for p in ticket.payments] == [6000, 4000]
    assert ticket.taxes[0].tax_type == 1
    assert ticket.taxes[0].base == 8264
    assert ticket.taxes[0].amount == 1736


def test_short_lines_default_to_zero():
    ticket = parse_ticket("t.txt", "11004|20240115|101500|000123|9\n501|ART\n")
    assert ticket.header.gross == 0
    assert ticket.header.discount_pct_3 == 0
    assert ticket.items[0].category == 0
    assert ticket.items[0].base_amount == 0


def test_windows_line_endings():
    content = ticket_content().replace("\n", "\r\n")
    ticket = parse_ticket("t.txt", content)
    assert len(ticket.items) == 1
    assert ticket.header.time == "101500"


def test_empty_file_raises():
    with pytest.raises(RecordParseError):
        parse_ticket("empty.txt", "   \n")


def test_truncated_event_raises():
    with pytest.raises(RecordParseError):
        parse_system_event("open.txt", "11001|20240115", RecordKind.DAY_OPEN)


def test_parse_summary_skips_zero_id_lines():
    content = summary_content(categories=[
        "0|header continuation",
        category_line(10, 3, 15000, 12396, 120, 1, 5000, 4132, 40),
        category_line(11, 1, 2000, 1652, record_id=2),
    ])
    summary = parse_summary("s.txt", content)
    assert summary.header.closure_id == "000123"
    assert summary.header.first_ticket_id == "1"
    assert summary.header.last_ticket_id == "3"
    assert summary.header.sale_count == 3
    assert summary.header.sale_gross == 15000
    assert len(summary.aggregations) == 2

    line = summary.aggregations[0]
    assert line.category == 10
    assert (line.sale_units, line.sale_gross, line.sale_net, line.sale_discount) == (3, 15000, 12396, 120)
    assert (line.return_units, line.return_gross, line.return_net, line.return_discount) == (1, 5000, 4132, 40)


def test_parse_file_dispatch():
    event = parse_file("open.txt", event_content("11001", z="000777"), RecordKind.DAY_OPEN)
    assert event.kind == RecordKind.DAY_OPEN
    assert event.header.closure_id == "000777"
