"""
Coherence reconciliation - compare aggregated ticket totals against the
closure summary and the day open/close markers.

Checks run in a fixed order and never short-circuit:
1. Closure id (Z number) across summary, day open and day close
2. Summary internal consistency (header vs sum of category lines)
3. Ticket internal consistency (header vs sum of item lines)
4. Global counters (sale/return counts and gross totals)
5. Ticket range (first/last ticket id)
6. Global discount totals (tolerance band)
7. Per-category units, gross, net (exact) and discount (tolerance band)
8. Date consistency

Every failed check is its own error finding. When nothing fails a single ok
finding lists every check that passed.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import pandas as pd

from config import ReconciliationConfig, config
from .aggregate import AggregatedTotals, CategoryTotals
from .findings import DetailRow, Finding, finding_for, fmt_money, ok
from .io import parse_int
from .schemas import SummaryRecord, SystemEventRecord, TicketRecord

logger = logging.getLogger(__name__)

Number = Union[int, float]

SUMMARY_CATEGORY_COLUMNS = [
    "sale_units", "sale_gross", "sale_net", "sale_discount",
    "return_units", "return_gross", "return_net", "return_discount",
]


def exact_match(computed: Number, declared: Number) -> bool:
    """Exact equality; no rounding drift is accepted."""
    return computed == declared


def within_tolerance(computed: Number, declared: Number, tolerance: Number) -> bool:
    """Tolerance-banded equality: |computed - declared| must stay below tolerance."""
    return abs(computed - declared) < tolerance


def summarize_summary_categories(summary: SummaryRecord) -> pd.DataFrame:
    """
    Sum the summary's category lines per category id.

    Several lines may share a category (different family or fiscal type).
    """
    rows = [
        {"category": line.category, **{c: getattr(line, c) for c in SUMMARY_CATEGORY_COLUMNS}}
        for line in summary.aggregations
    ]
    df = pd.DataFrame(rows, columns=["category"] + SUMMARY_CATEGORY_COLUMNS)
    if df.empty:
        return df.set_index("category")
    return df.groupby("category")[SUMMARY_CATEGORY_COLUMNS].sum()


MATRIX_COLUMNS = ["category", "in_tickets", "in_summary"] + [
    f"{prefix}_{column}"
    for column in SUMMARY_CATEGORY_COLUMNS
    for prefix in ("computed", "declared", "diff")
] + ["has_error"]


def coherence_matrix(
    aggregated: AggregatedTotals,
    summary: SummaryRecord,
    recon_config: Optional[ReconciliationConfig] = None,
) -> pd.DataFrame:
    """
    Side-by-side category comparison of ticket totals vs the summary.

    One row per category id found on either side. A side missing the
    category contributes zeros. ``has_error`` follows the same equality
    rules as the per-category coherence check.

    Returns:
        DataFrame with MATRIX_COLUMNS, sorted by category id
    """
    recon_config = recon_config or config.reconciliation
    declared = summarize_summary_categories(summary)
    declared_ids = {int(c) for c in declared.index}
    computed = aggregated.categories

    rows = []
    for category in sorted(set(computed) | declared_ids):
        totals = computed.get(category, CategoryTotals(category))
        in_tickets = category in computed
        in_summary = category in declared_ids
        row = {"category": category, "in_tickets": in_tickets, "in_summary": in_summary}
        has_error = not (in_tickets and in_summary)

        for column in SUMMARY_CATEGORY_COLUMNS:
            calc = getattr(totals, column)
            decl = int(declared.loc[category, column]) if in_summary else 0
            row[f"computed_{column}"] = calc
            row[f"declared_{column}"] = decl
            row[f"diff_{column}"] = calc - decl
            if column.endswith("_discount"):
                has_error = has_error or not within_tolerance(calc, decl, recon_config.discount_tolerance)
            else:
                has_error = has_error or not exact_match(calc, decl)

        row["has_error"] = has_error
        rows.append(row)

    return pd.DataFrame(rows, columns=MATRIX_COLUMNS)


@dataclass
class CoherenceChecker:
    """
    Runs every coherence check for one closure.

    Failed checks accumulate in ``failures``; passed checks accumulate as
    detail rows in ``passed`` for the combined ok finding.
    """
    aggregated: AggregatedTotals
    summary: SummaryRecord
    day_open: Optional[SystemEventRecord] = None
    day_close: Optional[SystemEventRecord] = None
    tickets: Optional[List[TicketRecord]] = None
    recon_config: Optional[ReconciliationConfig] = None

    def __post_init__(self):
        if self.recon_config is None:
            self.recon_config = config.reconciliation
        self.failures: List[Finding] = []
        self.passed: List[DetailRow] = []

    def _fail(self, message: str, details: List[DetailRow], kind: str = "coherence") -> None:
        self.failures.append(finding_for(kind, message, details))

    def _pass(self, context: str, field: str, expected, actual) -> None:
        self.passed.append(DetailRow(context, field, expected, actual))

    # ---------------------------------------------------------------- checks

    def check_closure_id(self) -> None:
        candidates = [("Summary (11008)", self.summary.header.closure_id)]
        if self.day_open is not None:
            candidates.append(("Start Day (11001)", self.day_open.header.closure_id))
        if self.day_close is not None:
            candidates.append(("End Day (11002)", self.day_close.header.closure_id))
        if len(candidates) < 2:
            return

        reference = candidates[0][1]
        if all(value == reference for _, value in candidates):
            self._pass(f"Across {len(candidates)} Files", "NUM_Z", reference, "Consistent")
            return
        self._fail("Z Number Mismatch across files", [
            DetailRow(name, "NUM_Z", reference, value) for name, value in candidates
        ])

    def check_summary_internal(self) -> None:
        header = self.summary.header
        sum_sale = sum(line.sale_gross for line in self.summary.aggregations)
        sum_return = sum(line.return_gross for line in self.summary.aggregations)

        consistent = True
        if not exact_match(sum_sale, header.sale_gross):
            self._fail(
                "11008 Internal Inconsistency: Sum of Subfamilies (Sales) != Header Total",
                [DetailRow("11008 Internal", "IMPBRUTO_V", fmt_money(sum_sale), fmt_money(header.sale_gross))],
                "internal",
            )
            consistent = False
        if not exact_match(sum_return, header.return_gross):
            self._fail(
                "11008 Internal Inconsistency: Sum of Subfamilies (Returns) != Header Total",
                [DetailRow("11008 Internal", "IMPBRUTO_D", fmt_money(sum_return), fmt_money(header.return_gross))],
                "internal",
            )
            consistent = False
        if consistent:
            self._pass("11008 Internal Integrity", "Structure", "Header == Sum(Body)", "Verified")

    def check_ticket_internal(self) -> None:
        if self.tickets is None:
            return
        errors = 0
        for ticket in self.tickets:
            item_gross = sum(item.gross for item in ticket.items)
            item_net = sum(item.net for item in ticket.items)
            details = []
            if not exact_match(item_gross, ticket.header.gross):
                details.append(DetailRow(
                    ticket.file_name, "IMPBRUTO_T", fmt_money(item_gross), fmt_money(ticket.header.gross)
                ))
            if not exact_match(item_net, ticket.header.net):
                details.append(DetailRow(
                    ticket.file_name, "IMPNETO_T", fmt_money(item_net), fmt_money(ticket.header.net)
                ))
            if details:
                errors += 1
                self._fail(f"Ticket Internal Math Error: {ticket.header.ticket_id}", details, "internal")

        if errors == 0 and self.tickets:
            self._pass("11004 Internal Integrity", "Ticket Math", "Header == Sum(Lines)",
                       f"{len(self.tickets)} Tickets OK")

    def check_global_counters(self) -> None:
        totals = self.aggregated.totals
        header = self.summary.header
        checks = [
            ("N_VENTAS", "Sales Count", totals.sale_count, header.sale_count, False),
            ("IMPBRUTO_V", "Gross Sales", totals.sale_gross, header.sale_gross, True),
            ("N_DEVOLUCIONES", "Returns Count", totals.return_count, header.return_count, False),
            ("IMPBRUTO_D", "Gross Returns", totals.return_gross, header.return_gross, True),
        ]
        for field, label, computed, declared, is_money in checks:
            show = fmt_money if is_money else (lambda v: v)
            if exact_match(computed, declared):
                self._pass("Global Counters", field, show(declared), "Match")
            else:
                self._fail(f"Global Mismatch: {label}", [
                    DetailRow("11004 vs 11008", field, show(computed), show(declared))
                ])

    def check_ticket_range(self) -> None:
        totals = self.aggregated.totals
        header = self.summary.header
        declared_first = parse_int(header.first_ticket_id)
        declared_last = parse_int(header.last_ticket_id)

        if exact_match(totals.min_ticket, declared_first):
            self._pass("Ticket Range Start", "CD_TICKET_I", declared_first, totals.min_ticket)
        else:
            self._fail("Initial Ticket Mismatch (CD_TICKET_I)", [
                DetailRow("Boundary Check (First Found)", "CD_TICKET_I",
                          header.first_ticket_id if declared_first is None else declared_first,
                          totals.min_ticket)
            ])

        if exact_match(totals.max_ticket, declared_last):
            self._pass("Ticket Range End", "CD_TICKET_F", declared_last, totals.max_ticket)
        else:
            self._fail("Final Ticket Mismatch (CD_TICKET_F)", [
                DetailRow("Boundary Check (Last Found)", "CD_TICKET_F",
                          header.last_ticket_id if declared_last is None else declared_last,
                          totals.max_ticket)
            ])

    def check_global_discounts(self) -> None:
        totals = self.aggregated.totals
        header = self.summary.header
        tolerance = self.recon_config.discount_tolerance
        checks = [
            ("IMPDESCUENTO_V", "Total Discount Sales", totals.sale_discount, header.sale_discount),
            ("IMPDESCUENTO_D", "Total Discount Returns", totals.return_discount, header.return_discount),
        ]
        for field, label, computed, declared in checks:
            if within_tolerance(computed, declared, tolerance):
                self._pass("Global Discounts", field, fmt_money(declared), "Match")
            else:
                self._fail(f"Global Mismatch: {label}", [
                    DetailRow("11004 vs 11008 (Global)", field, fmt_money(declared), fmt_money(computed))
                ])

    def check_categories(self) -> None:
        declared = summarize_summary_categories(self.summary)
        declared_ids = {int(c) for c in declared.index}
        computed = self.aggregated.categories
        tolerance = self.recon_config.discount_tolerance
        failed = False

        for category in sorted(computed):
            totals: CategoryTotals = computed[category]
            context = f"SubFamily {category}"
            if category not in declared_ids:
                failed = True
                self._fail(
                    f"SubFamily Mismatch: ID {category} found in Sales but missing in Summary",
                    [DetailRow(context, "SubFamily", "Present in 11008", "Missing")],
                )
                continue

            row = declared.loc[category]
            exact_checks = [
                ("UDS", totals.sale_units, int(row["sale_units"]), False),
                ("IMPBRUTO", totals.sale_gross, int(row["sale_gross"]), True),
                ("IMPNETO", totals.sale_net, int(row["sale_net"]), True),
                ("UDS_D", totals.return_units, int(row["return_units"]), False),
                ("IMPBRUTO_D", totals.return_gross, int(row["return_gross"]), True),
                ("IMPNETO_D", totals.return_net, int(row["return_net"]), True),
            ]
            for name, calc, decl, is_money in exact_checks:
                if not exact_match(calc, decl):
                    failed = True
                    show = fmt_money if is_money else (lambda v: v)
                    self._fail(f"{name} Mismatch SubFamily {category}", [
                        DetailRow(context, name, show(calc), show(decl))
                    ])

            discount_checks = [
                ("IMPDESCUENTO_VSFZ", "Discount Sales", totals.sale_discount, int(row["sale_discount"])),
                ("IMPDESCUENTO_DSFZ", "Discount Returns", totals.return_discount, int(row["return_discount"])),
            ]
            for name, label, calc, decl in discount_checks:
                if not within_tolerance(calc, decl, tolerance):
                    failed = True
                    self._fail(f"{label} Mismatch SubFamily {category}", [
                        DetailRow(f"{context} (Exp: 11008 Line vs Act: 11004 Sum)", name,
                                  fmt_money(decl), fmt_money(calc))
                    ])

        for category in sorted(declared_ids - set(computed)):
            failed = True
            self._fail(
                f"SubFamily Mismatch: ID {category} found in Summary but no Sales detected (Ghost Data)",
                [DetailRow(f"SubFamily {category}", "SubFamily", "Present in 11004", "Missing")],
            )

        if not failed and computed:
            self._pass("Detailed Aggregation", "Subfamilies", "Full Match", f"{len(computed)} Groups Verified")

    def check_dates(self) -> None:
        if self.tickets is None:
            return
        master_date = self.summary.header.date
        mismatched = [t for t in self.tickets if t.header.date != master_date]
        if not mismatched:
            self._pass("All Files Date Check", "FECHA_REAL", master_date, "Match")
            return
        limit = self.recon_config.date_mismatch_detail_limit
        self._fail(
            f"Date Mismatch: {len(mismatched)} files have a different date than the Summary ({master_date})",
            [DetailRow(t.file_name, "FECHA_REAL", master_date, t.header.date) for t in mismatched[:limit]],
        )

    # ------------------------------------------------------------------ run

    def run(self) -> List[Finding]:
        self.check_closure_id()
        self.check_summary_internal()
        self.check_ticket_internal()
        self.check_global_counters()
        self.check_ticket_range()
        self.check_global_discounts()
        self.check_categories()
        self.check_dates()

        logger.info(
            f"[RECONCILE] {len(self.failures)} failed checks, {len(self.passed)} passed checks"
        )
        if self.failures:
            return list(self.failures)
        return [ok("All coherence checks passed successfully.", list(self.passed))]


def reconcile_closure(
    aggregated: AggregatedTotals,
    summary: SummaryRecord,
    day_open: Optional[SystemEventRecord] = None,
    day_close: Optional[SystemEventRecord] = None,
    tickets: Optional[List[TicketRecord]] = None,
    recon_config: Optional[ReconciliationConfig] = None,
) -> List[Finding]:
    """
    Cross-check aggregated ticket totals against the closure summary.

    Args:
        aggregated: Totals built from the closure's tickets
        summary: Parsed closure summary
        day_open: Optional day-open marker
        day_close: Optional day-close marker
        tickets: Tickets sorted by number, for per-ticket and date checks
        recon_config: Tolerances (defaults to the global config)

    Returns:
        One error finding per failed check, or a single ok finding
    """
    checker = CoherenceChecker(aggregated, summary, day_open, day_close, tickets, recon_config)
    return checker.run()
