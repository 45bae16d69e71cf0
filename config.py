"""
Centralized configuration for the Closure Audit application.
All record codes, line ranges, tolerances, and severity rules are defined here.
"""
from dataclasses import dataclass, field
from typing import Dict, Tuple
import os


@dataclass
class RecordCodeConfig:
    """Transaction codes and line-id ranges of the POS export protocol."""
    day_open: str = "11001"
    day_close: str = "11002"
    sale_ticket: str = "11004"
    closure_summary: str = "11008"

    # File names embed the transaction code at a fixed offset
    filename_code_slice: Tuple[int, int] = (18, 23)

    # Ticket body lines are tagged by a 3-digit record id
    item_line_range: Tuple[int, int] = (500, 599)
    payment_line_range: Tuple[int, int] = (600, 699)
    tax_line_range: Tuple[int, int] = (700, 799)

    # TIPO_VENTA values
    sale_kind_sale: int = 1
    sale_kind_return: int = 2

    # A well-formed ticket header carries at least this many fields
    min_ticket_header_fields: int = 20

    def known_codes(self) -> Tuple[str, ...]:
        return (self.day_open, self.day_close, self.sale_ticket, self.closure_summary)


@dataclass
class ReconciliationConfig:
    """Configuration for reconciliation tolerances and rules."""
    # Discount totals may drift through proration; differences >= this are mismatches
    discount_tolerance: int = 100
    # Single-ticket tax and payment cross-footing
    inspection_tolerance: int = 50
    percent_scale: int = 10000
    # Max offending files listed as detail rows on a date mismatch
    date_mismatch_detail_limit: int = 5


@dataclass
class SeverityMapping:
    """Map finding kind to status."""
    status_by_kind: Dict[str, str] = field(default_factory=lambda: {
        "parse": "error",
        "syntax": "error",
        "structure": "error",
        "internal": "error",
        "coherence": "error",
        "sequence_gap": "warning",
        "sequence_duplicate": "warning",
        "sequence_time": "warning",
    })

    def get_status(self, kind: str) -> str:
        return self.status_by_kind.get(kind, "error")


@dataclass
class WebConfig:
    """Configuration for the HTTP ingress adapter."""
    secret_key: str = field(default_factory=lambda: os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production'))
    max_upload_mb: int = field(default_factory=lambda: int(os.getenv('MAX_UPLOAD_MB', '50')))
    api_prefix: str = "/api"
    upload_field: str = "files"

    @property
    def max_content_length(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@dataclass
class AuditConfig:
    """Main audit configuration container."""
    records: RecordCodeConfig = field(default_factory=RecordCodeConfig)

    # Reconciliation settings
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)

    # Severity mapping
    severity: SeverityMapping = field(default_factory=SeverityMapping)

    # Web adapter settings
    web: WebConfig = field(default_factory=WebConfig)

    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO').upper())


# Global configuration instance
config = AuditConfig()
