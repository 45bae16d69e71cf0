"""
Typed record containers for parsed closure files.

Each record kind is a frozen dataclass populated once by the parser. Monetary
and percentage attributes are integers in mills (1/1000 of a currency unit)
or in 1/10000 percentage units.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .canonical_fields import RecordKind, TicketKind
from .io import parse_int


@dataclass(frozen=True)
class LineItem:
    """One 5xx item line of a ticket."""
    record_id: str = ""
    article_code: str = ""
    category: int = 0
    net: int = 0
    gross: int = 0
    units: int = 0
    base_amount: int = 0
    line_discount_1: int = 0
    fiscal_type: int = 0
    tax_rate: int = 0
    line_discount_2: int = 0
    line_discount_3: int = 0

    @property
    def line_discount_total(self) -> int:
        return self.line_discount_1 + self.line_discount_2 + self.line_discount_3


@dataclass(frozen=True)
class PaymentLine:
    """One 6xx payment line of a ticket."""
    record_id: str = ""
    method: int = 0
    amount: int = 0


@dataclass(frozen=True)
class TaxLine:
    """One 7xx tax line of a ticket."""
    record_id: str = ""
    tax_type: int = 0
    base: int = 0
    amount: int = 0


@dataclass(frozen=True)
class TicketHeader:
    """Header line of a sale ticket (11004)."""
    code: str = ""
    date: str = ""
    time: str = ""
    closure_id: str = ""
    ticket_id: str = ""
    kind: int = 0
    net: int = 0
    gross: int = 0
    tax: int = 0
    discount: int = 0
    discount_pct_1: int = 0
    item_count: int = 0
    unit_count: int = 0
    discount_pct_2: int = 0
    discount_pct_3: int = 0

    @property
    def ticket_number(self) -> Optional[int]:
        return parse_int(self.ticket_id)

    @property
    def is_sale(self) -> bool:
        return self.kind == TicketKind.SALE

    @property
    def is_return(self) -> bool:
        return self.kind == TicketKind.RETURN

    @property
    def discount_percentages(self) -> Tuple[int, int, int]:
        return (self.discount_pct_1, self.discount_pct_2, self.discount_pct_3)


@dataclass(frozen=True)
class TicketRecord:
    """
    A parsed sale ticket file.

    Identified by ticket number + closure id. ``raw_content`` is kept because
    the syntax validator re-walks the raw lines rather than the typed record.
    """
    file_name: str
    raw_content: str
    header: TicketHeader
    items: Tuple[LineItem, ...] = ()
    taxes: Tuple[TaxLine, ...] = ()
    payments: Tuple[PaymentLine, ...] = ()

    kind = RecordKind.SALE

    @property
    def ticket_number(self) -> Optional[int]:
        return self.header.ticket_number

    @property
    def sort_key(self) -> Tuple[bool, int]:
        number = self.ticket_number
        return (number is None, number if number is not None else 0)


@dataclass(frozen=True)
class SummaryHeader:
    """Header line of a closure summary (11008)."""
    code: str = ""
    date: str = ""
    closure_id: str = ""
    first_ticket_id: str = ""
    last_ticket_id: str = ""
    sale_count: int = 0
    sale_gross: int = 0
    sale_net: int = 0
    sale_discount: int = 0
    return_count: int = 0
    return_gross: int = 0
    return_net: int = 0
    return_discount: int = 0


@dataclass(frozen=True)
class CategoryAggregationLine:
    """Per-category body line of a closure summary."""
    record_id: str = ""
    family: int = 0
    category: int = 0
    fiscal_type: int = 0
    sale_units: int = 0
    sale_gross: int = 0
    sale_net: int = 0
    sale_discount: int = 0
    return_units: int = 0
    return_gross: int = 0
    return_net: int = 0
    return_discount: int = 0


@dataclass(frozen=True)
class SummaryRecord:
    """A parsed closure summary file. One per closure."""
    file_name: str
    header: SummaryHeader
    aggregations: Tuple[CategoryAggregationLine, ...] = ()

    kind = RecordKind.SUMMARY


@dataclass(frozen=True)
class EventHeader:
    code: str = ""
    closure_id: str = ""


@dataclass(frozen=True)
class SystemEventRecord:
    """Day-open or day-close marker; used only for closure-id cross-checks."""
    file_name: str
    kind: RecordKind
    header: EventHeader = field(default_factory=EventHeader)


ParsedRecord = Union[TicketRecord, SummaryRecord, SystemEventRecord]
