"""
Findings generation and management.
"""
import pandas as pd
from typing import List, Dict, Any, Union
from dataclasses import dataclass, field, asdict
from enum import Enum

from config import config


class FindingStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DetailRow:
    """One field-level row explaining a finding."""
    context: str
    field: str
    expected: Union[str, int]
    actual: Union[str, int]


@dataclass
class Finding:
    """Structured finding record."""
    status: FindingStatus
    message: str
    details: List[DetailRow] = field(default_factory=list)
    stage: str = ""

    @property
    def is_error(self) -> bool:
        return self.status == FindingStatus.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        d["status"] = self.status.value
        return d


def fmt_money(mills: Union[int, float]) -> str:
    """Render a mills amount with the protocol's three decimals."""
    return f"{mills / 1000:.3f}"


def finding_for(kind: str, message: str, details: List[DetailRow], stage: str = "") -> Finding:
    """Build a failure finding whose status comes from the severity mapping."""
    return Finding(FindingStatus(config.severity.get_status(kind)), message, details, stage)


def ok(message: str, details: List[DetailRow], stage: str = "") -> Finding:
    return Finding(FindingStatus.OK, message, details, stage)


def count_by_status(findings: List[Finding]) -> Dict[str, int]:
    counts = {status.value: 0 for status in FindingStatus}
    for finding in findings:
        counts[finding.status.value] += 1
    return counts


FINDING_FRAME_COLUMNS = ["stage", "status", "message", "context", "field", "expected", "actual"]


def findings_to_frame(findings: List[Finding]) -> pd.DataFrame:
    """
    Flatten findings into a DataFrame with one row per detail row.

    Findings without detail rows still produce one row with empty
    context/field/expected/actual so that nothing is dropped on export.

    Args:
        findings: Findings in reporting order

    Returns:
        DataFrame with FINDING_FRAME_COLUMNS
    """
    if not findings:
        return pd.DataFrame(columns=FINDING_FRAME_COLUMNS)

    rows = []
    for finding in findings:
        base = {
            "stage": finding.stage,
            "status": finding.status.value,
            "message": finding.message,
        }
        if not finding.details:
            rows.append({**base, "context": "", "field": "", "expected": "", "actual": ""})
            continue
        for detail in finding.details:
            rows.append({**base, **asdict(detail)})

    df = pd.DataFrame(rows, columns=FINDING_FRAME_COLUMNS)
    # expected/actual mix counts and formatted money; keep them textual
    df["expected"] = df["expected"].astype(str)
    df["actual"] = df["actual"].astype(str)
    return df
