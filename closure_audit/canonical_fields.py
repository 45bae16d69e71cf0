"""
Canonical field definitions for the Closure Audit engine.

This module is the single source of truth for the positional layout of every
record kind. Both the parser and the syntax validator read these tables, so a
pipe-field index never appears anywhere else in the engine.
"""
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple


class RecordKind(str, Enum):
    """
    Transaction codes identifying the four file kinds of a closure batch.

    Inheriting from str makes these directly comparable with the code found
    in a file name or in field 0 of a header line.
    """
    DAY_OPEN = "11001"
    DAY_CLOSE = "11002"
    SALE = "11004"
    SUMMARY = "11008"


class TicketKind(IntEnum):
    """Declared TIPO_VENTA of a ticket."""
    SALE = 1
    RETURN = 2


class FieldMode(str, Enum):
    """Length rule applied to a field."""
    FIXED = "F"
    MAX = "M"


@dataclass(frozen=True)
class FieldSpec:
    """
    Positional field definition.

    Attributes:
        index: Position in the pipe-split line
        name: Wire name of the field
        attr: Attribute populated on the typed record (None if not parsed)
        length: Required length, interpreted through ``mode``
        mode: FIXED (exact length) or MAX (upper bound)
        numeric: Value must be a non-negative integer when non-blank
        required: Label reported when a mandatory field is blank
    """
    index: int
    name: str
    attr: Optional[str] = None
    length: Optional[int] = None
    mode: Optional[FieldMode] = None
    numeric: bool = False
    required: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.name} [Pos {self.index}]"


FieldTable = Tuple[FieldSpec, ...]


# ==================== Sale ticket (11004) ====================

TICKET_HEADER_SPEC: FieldTable = (
    FieldSpec(0, "COD_TRANSACC", "code", 5, FieldMode.FIXED),
    FieldSpec(1, "FECHA_REAL", "date", 8, FieldMode.FIXED, required="Date"),
    FieldSpec(2, "HORA_REAL", "time", 6, FieldMode.FIXED, required="Time"),
    FieldSpec(3, "NUM_Z", "closure_id", 6, FieldMode.MAX, numeric=True, required="Z Number"),
    FieldSpec(4, "NUM_TICKET", "ticket_id", 12, FieldMode.MAX, numeric=True, required="Ticket Number"),
    FieldSpec(6, "TIPO_VENTA", "kind", 1, FieldMode.FIXED, numeric=True, required="Sale Type"),
    FieldSpec(11, "IMPNETO_T", "net", 12, FieldMode.MAX, numeric=True),
    FieldSpec(12, "IMPBRUTO_T", "gross", 12, FieldMode.MAX, numeric=True),
    FieldSpec(13, "IMPIMPUESTOS_T", "tax", 12, FieldMode.MAX, numeric=True),
    FieldSpec(14, "IMPDESCUENTO_T", "discount", 12, FieldMode.MAX, numeric=True),
    FieldSpec(15, "DTO_PORC_1", "discount_pct_1", numeric=True),
    FieldSpec(16, "N_ARTICULOS", "item_count", numeric=True),
    FieldSpec(19, "N_UDS", "unit_count", numeric=True),
    FieldSpec(30, "DTO_PORC_2", "discount_pct_2", numeric=True),
    FieldSpec(32, "DTO_PORC_3", "discount_pct_3", numeric=True),
)

ITEM_LINE_SPEC: FieldTable = (
    FieldSpec(0, "ID_REGISTRO", "record_id", 3, FieldMode.FIXED),
    FieldSpec(1, "CD_ARTICULO", "article_code", 20, FieldMode.MAX, required="Item Code"),
    FieldSpec(2, "DESCRIPCION", None, 50, FieldMode.MAX),
    FieldSpec(4, "TIPO_SUBFAMILIA", "category", 5, FieldMode.MAX, numeric=True, required="SubFamily"),
    FieldSpec(5, "IMPNETO_A", "net", 12, FieldMode.MAX, numeric=True),
    FieldSpec(6, "IMPBRUTO_A", "gross", 12, FieldMode.MAX, numeric=True),
    FieldSpec(8, "UDS_A", "units", 9, FieldMode.MAX, numeric=True, required="Units"),
    FieldSpec(9, "IMPVENTA_A", "base_amount", 12, FieldMode.MAX, numeric=True, required="Price"),
    FieldSpec(12, "IMPDESCUENTO_1", "line_discount_1", 12, FieldMode.MAX, numeric=True),
    FieldSpec(13, "TIPO_FISCAL", "fiscal_type", numeric=True),
    FieldSpec(14, "TAX_RATE", "tax_rate", numeric=True),
    FieldSpec(19, "IMPDESCUENTO_2", "line_discount_2", numeric=True),
    FieldSpec(21, "IMPDESCUENTO_3", "line_discount_3", numeric=True),
)

PAYMENT_LINE_SPEC: FieldTable = (
    FieldSpec(0, "ID_REGISTRO", "record_id", 3, FieldMode.FIXED),
    FieldSpec(1, "TIPO_MEDIO", "method", 2, FieldMode.MAX, numeric=True, required="Pay Type"),
    FieldSpec(2, "ID_MEDIO", None, numeric=True),
    FieldSpec(3, "IMPORTE", "amount", 12, FieldMode.MAX, numeric=True, required="Amount"),
)

TAX_LINE_SPEC: FieldTable = (
    FieldSpec(0, "ID_REGISTRO", "record_id", 3, FieldMode.FIXED),
    FieldSpec(1, "TIPO_IMPUESTO", "tax_type", 2, FieldMode.MAX, numeric=True, required="Tax Type"),
    FieldSpec(3, "BASE", "base", 12, FieldMode.MAX, numeric=True),
    FieldSpec(4, "CUOTA", "amount", 12, FieldMode.MAX, numeric=True, required="Amount"),
)


# ==================== Closure summary (11008) ====================

SUMMARY_HEADER_SPEC: FieldTable = (
    FieldSpec(0, "COD_TRANSACC", "code"),
    FieldSpec(1, "FECHA_REAL", "date"),
    FieldSpec(4, "NUM_Z", "closure_id"),
    FieldSpec(6, "CD_TICKET_I", "first_ticket_id"),
    FieldSpec(7, "CD_TICKET_F", "last_ticket_id"),
    FieldSpec(8, "N_VENTAS", "sale_count", numeric=True),
    FieldSpec(9, "IMPBRUTO_V", "sale_gross", numeric=True),
    FieldSpec(10, "IMPNETO_V", "sale_net", numeric=True),
    FieldSpec(11, "IMPDESCUENTO_V", "sale_discount", numeric=True),
    FieldSpec(12, "N_DEVOLUCIONES", "return_count", numeric=True),
    FieldSpec(13, "IMPBRUTO_D", "return_gross", numeric=True),
    FieldSpec(14, "IMPNETO_D", "return_net", numeric=True),
    FieldSpec(15, "IMPDESCUENTO_D", "return_discount", numeric=True),
)

CATEGORY_LINE_SPEC: FieldTable = (
    FieldSpec(0, "ID_REGISTRO", "record_id"),
    FieldSpec(1, "TIPO_FAMILIA", "family", numeric=True),
    FieldSpec(2, "TIPO_SUBFAMILIA", "category", numeric=True),
    FieldSpec(3, "TIPO_FISCAL", "fiscal_type", numeric=True),
    FieldSpec(4, "ARTICULOS_V", "sale_units", numeric=True),
    FieldSpec(5, "IMPBRUTO_VSFZ", "sale_gross", numeric=True),
    FieldSpec(6, "IMPNETO_VSFZ", "sale_net", numeric=True),
    FieldSpec(7, "IMPDESCUENTO_VSFZ", "sale_discount", numeric=True),
    FieldSpec(8, "ARTICULOS_D", "return_units", numeric=True),
    FieldSpec(9, "IMPBRUTO_DSFZ", "return_gross", numeric=True),
    FieldSpec(10, "IMPNETO_DSFZ", "return_net", numeric=True),
    FieldSpec(11, "IMPDESCUENTO_DSFZ", "return_discount", numeric=True),
)


# ==================== Day open / close (11001 / 11002) ====================

EVENT_HEADER_SPEC: FieldTable = (
    FieldSpec(0, "COD_TRANSACC", "code"),
    FieldSpec(3, "NUM_Z", "closure_id"),
)


def spec_by_attr(table: FieldTable) -> Dict[str, FieldSpec]:
    """Index a field table by the record attribute it populates."""
    return {spec.attr: spec for spec in table if spec.attr}


def required_fields(table: FieldTable) -> Tuple[FieldSpec, ...]:
    """Fields that must be non-blank."""
    return tuple(spec for spec in table if spec.required)


def numeric_fields(table: FieldTable) -> Tuple[FieldSpec, ...]:
    """Fields that must hold a non-negative integer when present."""
    return tuple(spec for spec in table if spec.numeric)


def length_fields(table: FieldTable) -> Tuple[FieldSpec, ...]:
    """Fields carrying a fixed or maximum length rule."""
    return tuple(spec for spec in table if spec.length is not None)
