"""
KPI and metrics calculation.
"""
import math
import pandas as pd
from typing import Dict, Any, List

from .findings import Finding, count_by_status
from .schemas import TicketRecord

ITEM_CONSISTENCY_COLUMNS = [
    "article_code", "categories", "prices", "min_price", "max_price",
    "total_units", "occurrences", "example_ticket", "issue_rank",
]


def calculate_kpis(
    findings: List[Finding],
    tickets: List[TicketRecord],
    total_files: int,
) -> Dict[str, Any]:
    """
    Calculate KPIs for one batch.

    Args:
        findings: All findings of the run
        tickets: Parsed tickets
        total_files: Number of files received (recognized or not)

    Returns:
        Dictionary with KPI values
    """
    counts = count_by_status(findings)
    return {
        "total_files": int(total_files),
        "total_tickets": len(tickets),
        "sale_tickets": sum(1 for t in tickets if t.header.is_sale),
        "return_tickets": sum(1 for t in tickets if t.header.is_return),
        "errors": counts["error"],
        "warnings": counts["warning"],
        "certified": counts["error"] == 0,
    }


def _unit_price(base_amount: int, units: int) -> float:
    # half-up rounding to 2 decimals
    if units == 0:
        return 0.0
    return math.floor(base_amount / units * 100 + 0.5) / 100


def item_consistency(tickets: List[TicketRecord]) -> pd.DataFrame:
    """
    Per article code: the categories and unit prices it was sold with.

    Articles seen under several categories rank first (issue_rank 2), then
    articles with several unit prices (issue_rank 1), then by occurrences.

    Returns:
        DataFrame with ITEM_CONSISTENCY_COLUMNS, one row per article code
    """
    rows = [{
        "article_code": item.article_code,
        "category": item.category,
        "price": _unit_price(item.base_amount, item.units),
        "units": item.units,
        "ticket_id": ticket.header.ticket_id,
    } for ticket in tickets for item in ticket.items]

    if not rows:
        return pd.DataFrame(columns=ITEM_CONSISTENCY_COLUMNS)

    df = pd.DataFrame(rows)
    grouped = df.groupby("article_code", sort=False).agg(
        min_price=("price", "min"),
        max_price=("price", "max"),
        total_units=("units", "sum"),
        occurrences=("units", "size"),
        example_ticket=("ticket_id", "first"),
    ).reset_index()

    categories = {code: tuple(sorted(set(s.tolist()))) for code, s in df.groupby("article_code")["category"]}
    prices = {code: tuple(sorted(set(s.tolist()))) for code, s in df.groupby("article_code")["price"]}
    grouped["categories"] = grouped["article_code"].map(categories)
    grouped["prices"] = grouped["article_code"].map(prices)

    grouped["issue_rank"] = grouped.apply(
        lambda row: 2 if len(row["categories"]) > 1 else (1 if len(row["prices"]) > 1 else 0),
        axis=1
    )
    grouped = grouped.sort_values(
        ["issue_rank", "occurrences"], ascending=[False, False], kind="stable"
    ).reset_index(drop=True)
    return grouped[ITEM_CONSISTENCY_COLUMNS]
