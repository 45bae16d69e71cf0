"""
Syntax and semantic validation of sale ticket files.

Re-walks the raw lines of each ticket and checks, per field table:
- mandatory fields are non-blank
- numeric fields hold a non-negative integer (digits only)
- FIXED fields have exactly the given length, MAX fields do not exceed it
plus structural completeness (at least one item, tax and payment line).
"""
import logging
import re
from typing import List

from config import config
from .canonical_fields import (
    ITEM_LINE_SPEC,
    PAYMENT_LINE_SPEC,
    TAX_LINE_SPEC,
    TICKET_HEADER_SPEC,
    FieldMode,
    FieldTable,
    length_fields,
    numeric_fields,
    required_fields,
)
from .findings import DetailRow, Finding, finding_for, ok
from .io import RecordTokenizer, split_fields, split_lines
from .schemas import TicketRecord

logger = logging.getLogger(__name__)

_STRICT_INTEGER = re.compile(r"^\d+$")

LINE_TABLES = {
    "item": ITEM_LINE_SPEC,
    "payment": PAYMENT_LINE_SPEC,
    "tax": TAX_LINE_SPEC,
}

STRUCTURE_LABELS = {
    "item": ">0 Item Lines (5xx)",
    "tax": ">0 Tax Lines (7xx)",
    "payment": ">0 Payment Lines (6xx)",
}


def is_blank(value: str) -> bool:
    return value is None or value.strip() == ""


def is_strict_integer(value: str) -> bool:
    return bool(_STRICT_INTEGER.match(value))


def check_fields(parts: List[str], table: FieldTable, context: str) -> List[DetailRow]:
    """Mandatory, numeric and length checks of one line against its table."""
    def value_at(i: int) -> str:
        return parts[i].strip() if i < len(parts) else ""

    violations: List[DetailRow] = []

    for spec in required_fields(table):
        if is_blank(value_at(spec.index)):
            violations.append(DetailRow(context, spec.required, "Not Empty", "EMPTY"))

    for spec in numeric_fields(table):
        value = value_at(spec.index)
        if not is_blank(value) and not is_strict_integer(value):
            violations.append(DetailRow(context, spec.label, "Positive Integer", f'"{value}"'))

    for spec in length_fields(table):
        value = value_at(spec.index)
        if spec.mode == FieldMode.FIXED and len(value) != spec.length:
            violations.append(DetailRow(
                context, spec.label, f"Fixed {spec.length} chars", f'{len(value)} chars ("{value}")'
            ))
        elif spec.mode == FieldMode.MAX and len(value) > spec.length:
            violations.append(DetailRow(
                context, spec.label, f"Max {spec.length} chars", f'{len(value)} chars ("{value}")'
            ))

    return violations


class TicketSyntaxReport:
    """Violations and line counts of one ticket file."""

    def __init__(self, ticket: TicketRecord):
        self.file_name = ticket.file_name
        self.details: List[DetailRow] = []
        self.structure_details: List[DetailRow] = []
        self.line_counts = {"item": 0, "tax": 0, "payment": 0}
        self.total_lines = 0
        self._walk(ticket.raw_content)

    @property
    def has_errors(self) -> bool:
        return bool(self.details or self.structure_details)

    @property
    def kind(self) -> str:
        # field violations outrank a purely structural failure
        return "syntax" if self.details else "structure"

    @property
    def violations(self) -> List[DetailRow]:
        return self.details + self.structure_details

    def _walk(self, content: str) -> None:
        tokenizer = RecordTokenizer()
        lines = split_lines(content)
        self.total_lines = len(lines)

        for idx, line in enumerate(lines):
            if not line.strip():
                continue
            parts = split_fields(line)

            if idx == 0:
                min_fields = config.records.min_ticket_header_fields
                if len(parts) < min_fields:
                    self.details.append(DetailRow(
                        f"Line {idx + 1}", "Header Length", f">={min_fields} fields", str(len(parts))
                    ))
                self.details.extend(check_fields(parts, TICKET_HEADER_SPEC, "Header"))
                continue

            line_kind = tokenizer.classify_body_line(parts)
            if line_kind is None:
                continue
            self.line_counts[line_kind] += 1
            self.details.extend(check_fields(parts, LINE_TABLES[line_kind], f"Line {idx + 1}"))

        for line_kind in ("item", "tax", "payment"):
            if self.line_counts[line_kind] == 0:
                self.structure_details.append(
                    DetailRow("File Structure", "Structure", STRUCTURE_LABELS[line_kind], "0")
                )


def validate_syntax(tickets: List[TicketRecord]) -> List[Finding]:
    """
    Validate every ticket file.

    Each failing file yields one error finding aggregating all of its
    violations; if every file passes, one combined ok finding is returned.
    """
    findings: List[Finding] = []
    reports = [TicketSyntaxReport(t) for t in tickets]

    for report in reports:
        if report.has_errors:
            violations = report.violations
            logger.info(f"[SYNTAX] {report.file_name}: {len(violations)} violations")
            findings.append(finding_for(
                report.kind,
                f"Syntax/Semantic Error: {report.file_name}",
                violations,
            ))

    if findings or not reports:
        return findings

    total_lines = sum(r.total_lines for r in reports)
    total_items = sum(r.line_counts["item"] for r in reports)
    total_taxes = sum(r.line_counts["tax"] for r in reports)
    total_payments = sum(r.line_counts["payment"] for r in reports)
    n = len(reports)
    logger.info(f"[SYNTAX] All {n} ticket files passed ({total_lines} lines)")
    return [ok(
        f"Syntax & Semantics: All {n} files passed strict validation.",
        [
            DetailRow("Parser", "File Formatting", "Pipe (|) Delimiter, UTF-8/ASCII", f"Checked {n} Files"),
            DetailRow("Syntax", "Field Lengths", "Fixed/Max Lengths", f"Verified {total_lines} Rows"),
            DetailRow("Semantic", "Data Types", "Numeric fields must be Integers (Mill format)", "100% Valid"),
            DetailRow("Header", "Header Integrity", "Date, Time, Z, Ticket present", "Confirmed"),
            DetailRow("Structure", "Detail Lines", "Items (5xx) present", f"{total_items} Lines Verified"),
            DetailRow("Structure", "Tax Lines", "Taxes (7xx) present", f"{total_taxes} Lines Verified"),
            DetailRow("Structure", "Payment Lines", "Payments (6xx) present", f"{total_payments} Lines Verified"),
        ],
    )]
