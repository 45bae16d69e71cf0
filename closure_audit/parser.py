"""
Positional parsing of closure files into typed records.

Field extraction is driven entirely by the tables in canonical_fields.py.
Missing or out-of-range positions default to 0 / "" so that semantic
validation, not parsing, reports missing data.
"""
import logging
from dataclasses import fields
from typing import Dict, List, Type, TypeVar

from .canonical_fields import (
    CATEGORY_LINE_SPEC,
    EVENT_HEADER_SPEC,
    ITEM_LINE_SPEC,
    PAYMENT_LINE_SPEC,
    SUMMARY_HEADER_SPEC,
    TAX_LINE_SPEC,
    TICKET_HEADER_SPEC,
    FieldTable,
    RecordKind,
    spec_by_attr,
)
from .io import RecordTokenizer, field_at, line_record_id, parse_amount, split_fields, split_lines
from .schemas import (
    CategoryAggregationLine,
    EventHeader,
    LineItem,
    ParsedRecord,
    PaymentLine,
    SummaryHeader,
    SummaryRecord,
    SystemEventRecord,
    TaxLine,
    TicketHeader,
    TicketRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Day events carry the closure id at position 3
MIN_EVENT_FIELDS = 4


class RecordParseError(ValueError):
    """A file cannot be parsed at all (empty or truncated first line)."""

    def __init__(self, file_name: str, reason: str, expected: str = "", actual: str = ""):
        self.file_name = file_name
        self.reason = reason
        self.expected = expected
        self.actual = actual
        super().__init__(f"{file_name}: {reason}")


def build_record(cls: Type[T], table: FieldTable, parts: List[str]) -> T:
    """
    Populate a record dataclass from a split line using a field table.

    Integer attributes are parsed as mills/counts; everything else keeps the
    raw string.
    """
    specs = spec_by_attr(table)
    values: Dict[str, object] = {}
    for f in fields(cls):
        spec = specs.get(f.name)
        if spec is None:
            continue
        raw = field_at(parts, spec.index)
        values[f.name] = parse_amount(raw) if f.type is int else raw
    return cls(**values)


def _header_parts(file_name: str, content: str, min_fields: int) -> List[str]:
    lines = split_lines(content)
    if not lines or not lines[0].strip():
        raise RecordParseError(file_name, "file is empty", "Header line", "EMPTY")
    parts = split_fields(lines[0])
    if len(parts) < min_fields:
        raise RecordParseError(
            file_name,
            f"header has {len(parts)} fields, at least {min_fields} required",
            f">={min_fields} fields",
            f"{len(parts)} fields",
        )
    return parts


def parse_ticket(file_name: str, content: str) -> TicketRecord:
    """Parse a sale ticket (11004) file."""
    tokenizer = RecordTokenizer()
    header_parts = _header_parts(file_name, content, 2)
    header = build_record(TicketHeader, TICKET_HEADER_SPEC, header_parts)

    items: List[LineItem] = []
    taxes: List[TaxLine] = []
    payments: List[PaymentLine] = []

    for line in split_lines(content)[1:]:
        if not line.strip():
            continue
        parts = split_fields(line)
        line_kind = tokenizer.classify_body_line(parts)
        if line_kind == "item":
            items.append(build_record(LineItem, ITEM_LINE_SPEC, parts))
        elif line_kind == "payment":
            payments.append(build_record(PaymentLine, PAYMENT_LINE_SPEC, parts))
        elif line_kind == "tax":
            taxes.append(build_record(TaxLine, TAX_LINE_SPEC, parts))

    logger.debug(
        f"[PARSER] {file_name}: ticket {header.ticket_id} "
        f"items={len(items)} taxes={len(taxes)} payments={len(payments)}"
    )
    return TicketRecord(
        file_name=file_name,
        raw_content=content,
        header=header,
        items=tuple(items),
        taxes=tuple(taxes),
        payments=tuple(payments),
    )


def parse_summary(file_name: str, content: str) -> SummaryRecord:
    """Parse a closure summary (11008) file."""
    header_parts = _header_parts(file_name, content, 2)
    header = build_record(SummaryHeader, SUMMARY_HEADER_SPEC, header_parts)

    aggregations: List[CategoryAggregationLine] = []
    for line in split_lines(content)[1:]:
        if not line.strip():
            continue
        parts = split_fields(line)
        record_id = line_record_id(parts)
        if record_id is not None and record_id > 0:
            aggregations.append(build_record(CategoryAggregationLine, CATEGORY_LINE_SPEC, parts))

    logger.debug(f"[PARSER] {file_name}: summary Z {header.closure_id} with {len(aggregations)} category lines")
    return SummaryRecord(file_name=file_name, header=header, aggregations=tuple(aggregations))


def parse_system_event(file_name: str, content: str, kind: RecordKind) -> SystemEventRecord:
    """Parse a day-open (11001) or day-close (11002) file."""
    parts = _header_parts(file_name, content, MIN_EVENT_FIELDS)
    header = build_record(EventHeader, EVENT_HEADER_SPEC, parts)
    return SystemEventRecord(file_name=file_name, kind=kind, header=header)


def parse_file(file_name: str, content: str, kind: RecordKind) -> ParsedRecord:
    """Dispatch to the parser for an already identified record kind."""
    if kind == RecordKind.SALE:
        return parse_ticket(file_name, content)
    if kind == RecordKind.SUMMARY:
        return parse_summary(file_name, content)
    return parse_system_event(file_name, content, kind)
