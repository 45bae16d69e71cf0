"""
Raw file tokenizing and record-kind detection.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from config import RecordCodeConfig, config
from .canonical_fields import RecordKind

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

DELIMITER = "|"


@dataclass(frozen=True)
class SourceFile:
    """One uploaded file, already decoded to text."""
    name: str
    content: str


def parse_int(value: Optional[str]) -> Optional[int]:
    """
    Parse the leading integer of a field.

    Returns None when the value has no leading digits. Trailing garbage is
    ignored ("12ab" -> 12); reporting it is the syntax validator's job.
    """
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    if not match:
        return None
    return int(match.group(1))


def parse_amount(value: Optional[str]) -> int:
    """Parse a mills/percentage/count field; blank or unparsable becomes 0."""
    if value is None or value.strip() == "":
        return 0
    parsed = parse_int(value)
    return parsed if parsed is not None else 0


def split_lines(content: str) -> List[str]:
    """Split file content into lines, stripping the outer whitespace first."""
    return _LINE_BREAK.split(content.strip())


def split_fields(line: str) -> List[str]:
    """Split one line into its pipe-delimited fields."""
    return line.split(DELIMITER)


def field_at(parts: List[str], index: int) -> str:
    """Field at a position, or empty when the line is too short."""
    return parts[index] if index < len(parts) else ""


def line_record_id(parts: List[str]) -> Optional[int]:
    """Leading numeric record id of a body line."""
    return parse_int(parts[0]) if parts else None


class RecordTokenizer:
    """
    Classifies files and ticket body lines.

    A file's kind is read from a fixed slice of its name first, then from
    field 0 of its first line.
    """

    def __init__(self, codes: Optional[RecordCodeConfig] = None):
        self.codes = codes or config.records

    def identify(self, file_name: str, content: str) -> Optional[RecordKind]:
        start, end = self.codes.filename_code_slice
        code_in_name = file_name[start:end]
        if code_in_name in self.codes.known_codes():
            return RecordKind(code_in_name)

        first_line = content.split("\n")[0]
        parts = split_fields(first_line)
        if parts and parts[0] in self.codes.known_codes():
            return RecordKind(parts[0])

        logger.warning(f"[IO] Could not identify record kind for '{file_name}'")
        return None

    def classify_body_line(self, parts: List[str]) -> Optional[str]:
        """Return 'item', 'payment', 'tax', or None for a ticket body line."""
        record_id = line_record_id(parts)
        if record_id is None:
            return None
        for label, (low, high) in (
            ("item", self.codes.item_line_range),
            ("payment", self.codes.payment_line_range),
            ("tax", self.codes.tax_line_range),
        ):
            if low <= record_id <= high:
                return label
        return None
