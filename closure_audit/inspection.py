"""
Single-ticket inspection: header totals vs the ticket's own body lines.

Informational view used to diagnose one file; it does not affect
certification.
"""
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Union

from config import ReconciliationConfig, config
from .discounts import ticket_discount
from .findings import fmt_money
from .schemas import TicketRecord


@dataclass(frozen=True)
class InspectionCheck:
    label: str
    header_value: Union[str, int]
    calc_value: Union[str, int]
    diff: Union[str, int]
    is_ok: bool
    is_warning: bool = False


@dataclass(frozen=True)
class TicketInspection:
    file_name: str
    ticket_id: str
    checks: List[InspectionCheck]

    @property
    def is_ok(self) -> bool:
        return all(check.is_ok for check in self.checks)

    def to_dict(self) -> Dict:
        return {
            "file_name": self.file_name,
            "ticket_id": self.ticket_id,
            "checks": [asdict(c) for c in self.checks],
        }


def _money_check(label: str, declared: int, computed, is_ok: bool, is_warning: bool = False) -> InspectionCheck:
    return InspectionCheck(
        label=label,
        header_value=fmt_money(declared),
        calc_value=fmt_money(computed),
        diff=fmt_money(declared - computed),
        is_ok=is_ok,
        is_warning=is_warning,
    )


def inspect_ticket(ticket: TicketRecord, recon_config: Optional[ReconciliationConfig] = None) -> TicketInspection:
    """
    Cross-foot one ticket.

    Gross, net and units must match exactly. Tax and payment totals use the
    inspection tolerance. The discount row never fails; it is flagged as a
    warning when outside the discount tolerance.
    """
    recon_config = recon_config or config.reconciliation
    header = ticket.header

    sum_gross = sum(item.gross for item in ticket.items)
    sum_net = sum(item.net for item in ticket.items)
    sum_units = sum(item.units for item in ticket.items)
    sum_taxes = sum(tax.amount for tax in ticket.taxes)
    sum_payments = sum(payment.amount for payment in ticket.payments)
    sum_discount = ticket_discount(ticket)

    band = recon_config.inspection_tolerance
    checks = [
        _money_check("Total Gross Amount (IMPBRUTO)", header.gross, sum_gross, header.gross == sum_gross),
        _money_check("Total Net Amount (IMPNETO)", header.net, sum_net, header.net == sum_net),
        _money_check("Total Tax (7xx vs Header)", header.tax, sum_taxes, abs(header.tax - sum_taxes) < band),
        _money_check("Total Payments (6xx vs Gross)", header.gross, sum_payments,
                     abs(header.gross - sum_payments) < band),
        InspectionCheck(
            label="Total Units (N_UDS vs Sum UDS_A)",
            header_value=header.unit_count,
            calc_value=sum_units,
            diff=header.unit_count - sum_units,
            is_ok=header.unit_count == sum_units,
        ),
        _money_check(
            "Total Discount (Informational)", header.discount, sum_discount, True,
            is_warning=abs(header.discount - sum_discount) >= recon_config.discount_tolerance,
        ),
    ]
    return TicketInspection(ticket.file_name, header.ticket_id, checks)


def inspect_batch(tickets: List[TicketRecord]) -> List[TicketInspection]:
    return [inspect_ticket(t) for t in tickets]
