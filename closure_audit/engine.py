"""
Batch entry point: raw files in, findings and totals out.

run_batch is a pure function of its input. It identifies and parses every
file, then evaluates the rule registry over one RuleContext. The only fatal
outcome is a batch without a readable summary or without readable tickets.
"""
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from .aggregate import AggregatedTotals, aggregate_tickets
from .canonical_fields import RecordKind
from .discounts import DiscountContributor, FileDiscountBreakdown, discount_breakdown, discount_contributors
from .findings import DetailRow, Finding, count_by_status, finding_for
from .io import RecordTokenizer, SourceFile
from .parser import RecordParseError, parse_file
from .reconcile import coherence_matrix
from .rules import RuleContext, RuleRegistry, default_registry
from .schemas import SummaryRecord, SystemEventRecord, TicketRecord
from .sequence import sort_tickets

logger = logging.getLogger(__name__)

PARSE_STAGE = "PARSE"


class BatchInputError(ValueError):
    """The batch cannot be reconciled at all."""


@dataclass(frozen=True)
class BatchInput:
    """Immutable set of decoded files for one run."""
    files: Tuple[SourceFile, ...]

    @classmethod
    def from_files(cls, files: Iterable[Union[SourceFile, Mapping[str, str]]]) -> "BatchInput":
        normalized = []
        for f in files:
            if isinstance(f, SourceFile):
                normalized.append(f)
            else:
                normalized.append(SourceFile(name=f["name"], content=f["content"]))
        return cls(files=tuple(normalized))


@dataclass
class ParsedBatch:
    tickets: List[TicketRecord] = field(default_factory=list)
    summary: Optional[SummaryRecord] = None
    day_open: Optional[SystemEventRecord] = None
    day_close: Optional[SystemEventRecord] = None
    unrecognized_files: List[str] = field(default_factory=list)
    unreadable: List[RecordParseError] = field(default_factory=list)


@dataclass
class BatchResult:
    run_id: str
    timestamp: str
    total_files: int
    findings: List[Finding]
    totals: AggregatedTotals
    summary: SummaryRecord
    tickets: List[TicketRecord]
    discount_breakdown: List[FileDiscountBreakdown]
    unrecognized_files: List[str] = field(default_factory=list)
    category_matrix: pd.DataFrame = field(default_factory=pd.DataFrame)
    discount_files: Dict[str, List[DiscountContributor]] = field(default_factory=dict)

    @property
    def certified(self) -> bool:
        return not any(f.is_error for f in self.findings)

    @property
    def summary_counts(self) -> Dict[str, int]:
        counts = count_by_status(self.findings)
        return {
            "totalFiles": self.total_files,
            "errors": counts["error"],
            "warnings": counts["warning"],
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation."""
        return {
            "run_id": self.run_id,
            "certified": self.certified,
            "timestamp": self.timestamp,
            "summary": self.summary_counts,
            "results": [f.to_dict() for f in self.findings],
            "totals": self.totals.to_dict(),
            "discounts": [b.to_dict() for b in self.discount_breakdown],
            "unrecognized_files": list(self.unrecognized_files),
            "category_matrix": self.category_matrix.to_dict(orient="records"),
            "discount_files": {
                side: [asdict(c) for c in contributors]
                for side, contributors in self.discount_files.items()
            },
        }


def parse_batch(batch: BatchInput) -> ParsedBatch:
    """Identify and parse every file. Later duplicates of a singleton kind win."""
    tokenizer = RecordTokenizer()
    parsed = ParsedBatch()

    for source in batch.files:
        kind = tokenizer.identify(source.name, source.content)
        if kind is None:
            parsed.unrecognized_files.append(source.name)
            continue

        try:
            record = parse_file(source.name, source.content, kind)
        except RecordParseError as e:
            logger.warning(f"[ENGINE] Unreadable {kind.value} file: {e}")
            parsed.unreadable.append(e)
            continue

        if kind == RecordKind.SALE:
            parsed.tickets.append(record)
        elif kind == RecordKind.SUMMARY:
            if parsed.summary is not None:
                logger.warning(f"[ENGINE] Multiple summary files; using '{source.name}'")
            parsed.summary = record
        elif kind == RecordKind.DAY_OPEN:
            parsed.day_open = record
        elif kind == RecordKind.DAY_CLOSE:
            parsed.day_close = record

    return parsed


def unreadable_findings(errors: List[RecordParseError]) -> List[Finding]:
    """One error per recognized file whose first line could not be parsed."""
    return [
        finding_for(
            "parse",
            f"Unreadable File: {e.file_name}",
            [DetailRow(e.file_name, "Header", e.expected, e.actual)],
            stage=PARSE_STAGE,
        )
        for e in errors
    ]


def run_batch(
    files: Union[BatchInput, Iterable[Union[SourceFile, Mapping[str, str]]]],
    registry: Optional[RuleRegistry] = None,
) -> BatchResult:
    """
    Run the full audit over one closure batch.

    Recognized files whose first line cannot be parsed are reported as
    PARSE error findings ahead of the rule stages; the run continues.

    Args:
        files: BatchInput, SourceFile objects, or {name, content} mappings
        registry: Rule registry to evaluate (defaults to default_registry)

    Returns:
        BatchResult; ``certified`` is True iff no finding has status error

    Raises:
        BatchInputError: no summary file or no ticket files in the batch
    """
    batch = files if isinstance(files, BatchInput) else BatchInput.from_files(files)
    registry = registry or default_registry
    run_id = str(uuid.uuid4())

    logger.info(f"[ENGINE] Run {run_id}: {len(batch.files)} files received")
    parsed = parse_batch(batch)

    missing = []
    if parsed.summary is None:
        missing.append("no summary (11008) file")
    if not parsed.tickets:
        missing.append("no ticket (11004) files")
    if missing:
        raise BatchInputError(
            f"Missing mandatory files (11004 and 11008 required): {', '.join(missing)}."
        )

    tickets = sort_tickets(parsed.tickets)
    aggregated = aggregate_tickets(tickets)

    context = RuleContext(
        run_id=run_id,
        tickets=tickets,
        summary=parsed.summary,
        aggregated=aggregated,
        day_open=parsed.day_open,
        day_close=parsed.day_close,
    )
    findings = unreadable_findings(parsed.unreadable) + registry.evaluate_all(context)

    result = BatchResult(
        run_id=run_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        total_files=len(batch.files),
        findings=findings,
        totals=aggregated,
        summary=parsed.summary,
        tickets=tickets,
        discount_breakdown=discount_breakdown(tickets),
        unrecognized_files=parsed.unrecognized_files,
        category_matrix=coherence_matrix(aggregated, parsed.summary),
        discount_files={
            "sale": discount_contributors(tickets),
            "return": discount_contributors(tickets, returns=True),
        },
    )
    counts = result.summary_counts
    logger.info(
        f"[ENGINE] Run {run_id}: certified={result.certified} "
        f"errors={counts['errors']} warnings={counts['warnings']}"
    )
    return result
