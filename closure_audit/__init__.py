"""
Closure Audit Engine - parsing and reconciliation of POS closure exports.
"""
from .io import RecordTokenizer, SourceFile
from .parser import RecordParseError, parse_file, parse_ticket, parse_summary, parse_system_event
from .syntax import validate_syntax
from .discounts import effective_discount, discount_breakdown, discount_contributors
from .aggregate import AggregatedTotals, aggregate_tickets
from .reconcile import coherence_matrix, reconcile_closure
from .sequence import analyze_sequence
from .inspection import inspect_ticket, inspect_batch
from .rules import RuleContext, Rule, RuleRegistry, default_registry
from .findings import Finding, FindingStatus, DetailRow, findings_to_frame, fmt_money
from .metrics import calculate_kpis, item_consistency
from .canonical_fields import RecordKind, TicketKind, FieldSpec
from .engine import BatchInput, BatchInputError, BatchResult, run_batch

__all__ = [
    "RecordTokenizer",
    "SourceFile",
    "RecordParseError",
    "parse_file",
    "parse_ticket",
    "parse_summary",
    "parse_system_event",
    "validate_syntax",
    "effective_discount",
    "discount_breakdown",
    "discount_contributors",
    "AggregatedTotals",
    "aggregate_tickets",
    "coherence_matrix",
    "reconcile_closure",
    "analyze_sequence",
    "inspect_ticket",
    "inspect_batch",
    "RuleContext",
    "Rule",
    "RuleRegistry",
    "default_registry",
    "Finding",
    "FindingStatus",
    "DetailRow",
    "findings_to_frame",
    "fmt_money",
    "calculate_kpis",
    "item_consistency",
    "RecordKind",
    "TicketKind",
    "FieldSpec",
    "BatchInput",
    "BatchInputError",
    "BatchResult",
    "run_batch",
]
