"""
Discount proration.

Line discounts are summed directly; header percentages cascade against the
item's base sale amount net of those line discounts, in order 1 -> 2 -> 3,
each applied to the base left by the previous one. A zero percentage is not
applied.
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from config import config
from .schemas import LineItem, TicketHeader, TicketRecord


def cascade_header_discounts(base: float, percentages: Tuple[int, ...]) -> List[float]:
    """Return the discount taken by each non-zero percentage in cascade order."""
    scale = config.reconciliation.percent_scale
    taken = []
    for pct in percentages:
        if not pct:
            continue
        d = base * (pct / scale)
        base = base - d
        taken.append(d)
    return taken


def effective_discount(item: LineItem, header: TicketHeader) -> float:
    """
    Total discount attributable to one line item.

    Example:
        base_amount=10000, header percentages 1000/0/0, no line discounts
        -> 1000.0
    """
    line_discount = item.line_discount_total
    base = item.base_amount - line_discount
    prorated = cascade_header_discounts(base, header.discount_percentages)
    return line_discount + sum(prorated)


def ticket_discount(ticket: TicketRecord) -> float:
    """Sum of effective discounts over a ticket's items."""
    return math.fsum(effective_discount(item, ticket.header) for item in ticket.items)


@dataclass(frozen=True)
class CategoryDiscount:
    category: int
    discount: float
    gross: int
    base: int


@dataclass(frozen=True)
class FileDiscountBreakdown:
    """Per-category discount breakdown of one ticket file."""
    file_name: str
    ticket_id: str
    is_return: bool
    categories: Tuple[CategoryDiscount, ...]

    def to_dict(self) -> Dict:
        return {
            "file_name": self.file_name,
            "ticket_id": self.ticket_id,
            "is_return": self.is_return,
            "categories": [
                {"id": c.category, "discount": c.discount, "gross": c.gross, "base": c.base}
                for c in self.categories
            ],
        }


def discount_breakdown(tickets: List[TicketRecord]) -> List[FileDiscountBreakdown]:
    """Group each ticket's effective discounts, gross and base by category."""
    breakdowns = []
    for ticket in tickets:
        discounts: Dict[int, List[float]] = {}
        gross: Dict[int, int] = {}
        base: Dict[int, int] = {}
        for item in ticket.items:
            key = item.category
            discounts.setdefault(key, []).append(effective_discount(item, ticket.header))
            gross[key] = gross.get(key, 0) + item.gross
            base[key] = base.get(key, 0) + item.base_amount

        categories = tuple(
            CategoryDiscount(key, math.fsum(discounts[key]), gross[key], base[key])
            for key in sorted(discounts)
        )
        breakdowns.append(FileDiscountBreakdown(
            file_name=ticket.file_name,
            ticket_id=ticket.header.ticket_id,
            is_return=ticket.header.is_return,
            categories=categories,
        ))
    return breakdowns


@dataclass(frozen=True)
class DiscountContributor:
    """One ticket file making up a side's global discount total."""
    file_name: str
    ticket_id: str
    discount: float


def discount_contributors(tickets: List[TicketRecord], returns: bool = False) -> List[DiscountContributor]:
    """
    Tickets of one side whose effective discount is non-zero.

    Args:
        tickets: Parsed tickets of the closure
        returns: Select return tickets instead of sale tickets

    Returns:
        Contributors ordered by ticket number
    """
    side = [t for t in tickets if (t.header.is_return if returns else t.header.is_sale)]
    contributors = []
    for ticket in sorted(side, key=lambda t: t.sort_key):
        discount = ticket_discount(ticket)
        if discount != 0:
            contributors.append(DiscountContributor(ticket.file_name, ticket.header.ticket_id, discount))
    return contributors
