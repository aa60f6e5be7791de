"""QC report persistence."""

from __future__ import annotations

from pathlib import Path

from ventas_clean.io import write_json
from ventas_clean.models import QCReport

QC_REPORT_NAME = "qc_report.json"


def write_qc_report(out_dir: Path, qc: QCReport) -> Path:
    """Write ``qc_report.json`` into *out_dir* and return the path."""
    return write_json(Path(out_dir) / QC_REPORT_NAME, qc.to_dict())
