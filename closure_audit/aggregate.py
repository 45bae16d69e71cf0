"""
Aggregation of ticket records into per-category and global totals.

Integer columns are summed exactly by pandas; discount columns hold floats
from the proration cascade and are summed with math.fsum so the totals do not
depend on ticket order.
"""
import logging
import math
from dataclasses import dataclass, asdict
from typing import Dict, List, Any

import pandas as pd

from .discounts import effective_discount
from .schemas import TicketRecord

logger = logging.getLogger(__name__)

SIDE_SALE = "sale"
SIDE_RETURN = "return"
SIDE_OTHER = "other"

ITEM_FRAME_COLUMNS = ["ticket_id", "category", "side", "units", "gross", "net", "discount"]
HEADER_FRAME_COLUMNS = ["ticket_id", "ticket_number", "side", "gross", "net"]


@dataclass(frozen=True)
class CategoryTotals:
    """Summed item amounts of one category, split by sale and return side."""
    category: int
    sale_units: int = 0
    sale_gross: int = 0
    sale_net: int = 0
    sale_discount: float = 0.0
    return_units: int = 0
    return_gross: int = 0
    return_net: int = 0
    return_discount: float = 0.0


@dataclass(frozen=True)
class GlobalTotals:
    sale_count: int = 0
    sale_gross: int = 0
    sale_net: int = 0
    sale_discount: float = 0.0
    return_count: int = 0
    return_gross: int = 0
    return_net: int = 0
    return_discount: float = 0.0
    min_ticket: int = 0
    max_ticket: int = 0


@dataclass(frozen=True)
class AggregatedTotals:
    """Derived totals for one closure. Rebuilt per run, never patched."""
    categories: Dict[int, CategoryTotals]
    totals: GlobalTotals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": {str(k): asdict(v) for k, v in sorted(self.categories.items())},
            "global": asdict(self.totals),
        }


def _side(ticket: TicketRecord) -> str:
    if ticket.header.is_sale:
        return SIDE_SALE
    if ticket.header.is_return:
        return SIDE_RETURN
    return SIDE_OTHER


def build_item_frame(tickets: List[TicketRecord]) -> pd.DataFrame:
    """One row per line item with its side and effective discount."""
    rows = []
    for ticket in tickets:
        side = _side(ticket)
        for item in ticket.items:
            rows.append({
                "ticket_id": ticket.header.ticket_id,
                "category": item.category,
                "side": side,
                "units": item.units,
                "gross": item.gross,
                "net": item.net,
                "discount": effective_discount(item, ticket.header),
            })
    df = pd.DataFrame(rows, columns=ITEM_FRAME_COLUMNS)
    return df.astype({"category": "int64", "units": "int64", "gross": "int64",
                      "net": "int64", "discount": "float64"})


def build_header_frame(tickets: List[TicketRecord]) -> pd.DataFrame:
    """One row per ticket with the header-declared totals."""
    rows = [{
        "ticket_id": t.header.ticket_id,
        "ticket_number": t.ticket_number,
        "side": _side(t),
        "gross": t.header.gross,
        "net": t.header.net,
    } for t in tickets]
    return pd.DataFrame(rows, columns=HEADER_FRAME_COLUMNS)


def _fsum(values: pd.Series) -> float:
    return math.fsum(values.tolist())


def _category_totals(items: pd.DataFrame) -> Dict[int, CategoryTotals]:
    if items.empty:
        return {}

    grouped = items.groupby(["category", "side"]).agg(
        units=("units", "sum"),
        gross=("gross", "sum"),
        net=("net", "sum"),
        discount=("discount", _fsum),
    )

    categories: Dict[int, CategoryTotals] = {}
    for category in sorted(items["category"].unique()):
        values: Dict[str, Any] = {}
        for side in (SIDE_SALE, SIDE_RETURN):
            key = (category, side)
            if key not in grouped.index:
                continue
            row = grouped.loc[key]
            values[f"{side}_units"] = int(row["units"])
            values[f"{side}_gross"] = int(row["gross"])
            values[f"{side}_net"] = int(row["net"])
            values[f"{side}_discount"] = float(row["discount"])
        categories[int(category)] = CategoryTotals(category=int(category), **values)
    return categories


def _global_totals(headers: pd.DataFrame, items: pd.DataFrame) -> GlobalTotals:
    values: Dict[str, Any] = {}
    for side in (SIDE_SALE, SIDE_RETURN):
        side_headers = headers[headers["side"] == side]
        side_items = items[items["side"] == side]
        values[f"{side}_count"] = int(len(side_headers))
        values[f"{side}_gross"] = int(side_headers["gross"].sum())
        values[f"{side}_net"] = int(side_headers["net"].sum())
        values[f"{side}_discount"] = _fsum(side_items["discount"])

    numbers = headers["ticket_number"].dropna()
    if numbers.empty:
        values["min_ticket"] = 0
        values["max_ticket"] = 0
    else:
        values["min_ticket"] = int(numbers.min())
        values["max_ticket"] = int(numbers.max())
    return GlobalTotals(**values)


def aggregate_tickets(tickets: List[TicketRecord]) -> AggregatedTotals:
    """
    Fold a closure's tickets into AggregatedTotals.

    Header gross/net feed the global counters; item lines feed the category
    buckets; effective discounts feed both. Tickets of any other declared
    kind still open a category bucket for their items but add to neither side.

    Args:
        tickets: Parsed ticket records of one closure, in any order

    Returns:
        AggregatedTotals
    """
    items = build_item_frame(tickets)
    headers = build_header_frame(tickets)

    aggregated = AggregatedTotals(
        categories=_category_totals(items),
        totals=_global_totals(headers, items),
    )
    logger.info(
        f"[AGGREGATE] {len(tickets)} tickets, {len(items)} item lines, "
        f"{len(aggregated.categories)} categories, "
        f"tickets {aggregated.totals.min_ticket}..{aggregated.totals.max_ticket}"
    )
    return aggregated
