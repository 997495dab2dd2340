"""
Collection of non-fatal processing diagnostics.
"""

import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional

import structlog

from ..models import Diagnostic, DiagnosticCode, LiabilityType

logger = structlog.get_logger()


class DiagnosticLog:
    """
    Accumulates soft errors raised while processing a ledger.
    Every entry is mirrored to structlog at warning level.
    """

    def __init__(self, job_id: Optional[str] = None):
        self.job_id = job_id
        self.entries: List[Diagnostic] = []

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def log(self, entry: Diagnostic) -> Diagnostic:
        """Add a diagnostic entry."""
        self.entries.append(entry)

        logger.warning(
            entry.message,
            code=entry.code.value,
            liability_type=entry.liability_type.value if entry.liability_type else None,
            sr_nos=entry.sr_nos,
            job_id=self.job_id,
        )
        return entry

    def add(
        self,
        code: DiagnosticCode,
        message: str,
        liability_type: Optional[LiabilityType] = None,
        sr_nos: Iterable[str] = (),
        **details: Any,
    ) -> Diagnostic:
        """Create and add a diagnostic entry."""
        return self.log(Diagnostic(
            code=code,
            message=message,
            liability_type=liability_type,
            sr_nos=list(sr_nos),
            details=details,
        ))

    def extend(self, entries: Iterable[Diagnostic]) -> None:
        """Add multiple entries, e.g. from a branch-local log."""
        for entry in entries:
            self.log(entry)

    def get_entries(
        self,
        code: Optional[DiagnosticCode] = None,
        liability_type: Optional[LiabilityType] = None,
    ) -> List[Diagnostic]:
        """Get filtered diagnostic entries."""
        entries = self.entries

        if code is not None:
            entries = [e for e in entries if e.code == code]

        if liability_type is not None:
            entries = [e for e in entries if e.liability_type == liability_type]

        return entries

    def export_to_file(self, output_path: Path) -> Path:
        """Export diagnostics to a JSON file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "job_id": self.job_id,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "total_entries": len(self.entries),
            "entries": [e.to_dict() for e in self.entries],
        }

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        logger.info("Diagnostics exported", path=str(output_path))
        return output_path

    def summary(self) -> dict:
        """Get summary statistics of the collected diagnostics."""
        code_counts = Counter(e.code.value for e in self.entries)
        liability_counts = Counter(
            e.liability_type.value for e in self.entries if e.liability_type
        )

        return {
            "total_entries": len(self.entries),
            "code_counts": dict(code_counts),
            "liability_counts": dict(liability_counts),
        }
