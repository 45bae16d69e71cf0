"""
Ticket sequence and timing analysis.

Single pass over tickets sorted by ticket number, tracking the previous
ticket number and time. Gaps, duplicates and time inversions are ordering
anomalies, so no tolerance applies.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .findings import DetailRow, Finding, finding_for, ok
from .schemas import TicketRecord

logger = logging.getLogger(__name__)

_COLON_TIME = re.compile(r"^(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?$")
_COMPACT_TIME = re.compile(r"^(\d{2})(\d{2})(\d{2})?$")


def time_to_minutes(value: str) -> Optional[int]:
    """
    Minutes since midnight for HHMMSS, HHMM or HH:MM[:SS].

    Returns None when the value is blank or unreadable.
    """
    value = (value or "").strip()
    if not value:
        return None
    match = _COLON_TIME.match(value) or _COMPACT_TIME.match(value)
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


@dataclass(frozen=True)
class SequenceAnomaly:
    kind: str  # gap | duplicate | time_inversion
    ticket_number: int
    file_name: str = ""
    gap_start: int = 0
    gap_end: int = 0
    previous_time: str = ""
    current_time: str = ""

    @property
    def gap_size(self) -> int:
        return self.gap_end - self.gap_start + 1 if self.kind == "gap" else 0


def sort_tickets(tickets: List[TicketRecord]) -> List[TicketRecord]:
    """Sort by numeric ticket number; unnumbered tickets go last."""
    return sorted(tickets, key=lambda t: t.sort_key)


def find_anomalies(tickets: List[TicketRecord]) -> List[SequenceAnomaly]:
    """Walk tickets sorted by number and collect every anomaly."""
    anomalies: List[SequenceAnomaly] = []
    prev_ticket: Optional[int] = None
    prev_minutes: Optional[int] = None
    prev_time = ""

    for ticket in sort_tickets(tickets):
        current = ticket.ticket_number
        if current is None:
            logger.debug(f"[SEQUENCE] Skipping {ticket.file_name}: no ticket number")
            continue

        if current == prev_ticket:
            anomalies.append(SequenceAnomaly("duplicate", current, ticket.file_name))
            continue

        if prev_ticket is not None and current > prev_ticket + 1:
            anomalies.append(SequenceAnomaly(
                "gap", current, ticket.file_name,
                gap_start=prev_ticket + 1, gap_end=current - 1,
            ))

        minutes = time_to_minutes(ticket.header.time)
        if prev_minutes is not None and minutes is not None and minutes < prev_minutes:
            anomalies.append(SequenceAnomaly(
                "time_inversion", current, ticket.file_name,
                previous_time=prev_time, current_time=ticket.header.time,
            ))

        prev_ticket = current
        if minutes is not None:
            prev_minutes = minutes
            prev_time = ticket.header.time

    return anomalies


def _anomaly_finding(anomaly: SequenceAnomaly) -> Finding:
    if anomaly.kind == "gap":
        if anomaly.gap_size == 1:
            missing = str(anomaly.gap_start)
        else:
            missing = f"{anomaly.gap_start}-{anomaly.gap_end}"
        return finding_for(
            "sequence_gap",
            f"Sequence Gap detected: Ticket {anomaly.gap_start - 1} -> {anomaly.ticket_number}",
            [DetailRow("Ticket Sequence", "NUM_TICKET", f"{anomaly.gap_start - 1} + 1",
                       f"missing {missing} ({anomaly.gap_size} tickets)")],
        )
    if anomaly.kind == "duplicate":
        return finding_for(
            "sequence_duplicate",
            f"Duplicate Ticket Number: {anomaly.ticket_number}",
            [DetailRow(anomaly.file_name, "NUM_TICKET", "Unique", anomaly.ticket_number)],
        )
    return finding_for(
        "sequence_time",
        f"Time Inversion: Ticket {anomaly.ticket_number} is earlier than the previous ticket",
        [DetailRow(anomaly.file_name, "HORA_REAL", f">= {anomaly.previous_time}", anomaly.current_time)],
    )


def analyze_sequence(tickets: List[TicketRecord]) -> List[Finding]:
    """
    Report gaps, duplicates and time inversions in ticket numbering.

    Returns one finding per anomaly, or a single ok finding when the
    sequence is clean.
    """
    anomalies = find_anomalies(tickets)
    logger.info(f"[SEQUENCE] {len(tickets)} tickets checked, {len(anomalies)} anomalies")
    if anomalies:
        return [_anomaly_finding(a) for a in anomalies]

    numbered = [t.ticket_number for t in tickets if t.ticket_number is not None]
    checked = f"{min(numbered)}..{max(numbered)}" if numbered else "none"
    return [ok(
        f"Ticket sequence is contiguous and chronological ({len(numbered)} tickets).",
        [DetailRow("Ticket Sequence", "NUM_TICKET", "Contiguous, no duplicates", checked),
         DetailRow("Ticket Sequence", "HORA_REAL", "Non-decreasing", "Verified")],
    )]
