"""CSV / JSON / optional Excel export of an audit report.

Default layout:
  out/<date>/<timestamp>/
    siteshield_audit.csv     # flat rows for the selected mode
    siteshield_audit.json    # nested partitions + summary stats
    run_metadata.json        # timing, environment, config snapshot
    errors.csv               # recoverable errors, only when there were any
    siteshield_audit.xlsx    # optional workbook

Explicit --csv / --json paths bypass the run directory entirely.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from shieldaudit.util.io import ensure_dir, write_csv, write_excel, write_json
from shieldaudit.util.time import date_str, timestamp_str
from shieldaudit.util.types import AuditMode

from ..assemble import export_document, export_rows, protected_rows, summary, unprotected_rows
from ..runner import AuditReport

logger = logging.getLogger(__name__)

ERROR_FIELDS = ['timestamp', 'context', 'message']


class OutputWriter:
    """Writes one report to disk."""

    def __init__(self, out_dir: str = "out", run_dir: Optional[Path] = None):
        if run_dir:
            self.run_dir = Path(run_dir)
        else:
            self.run_dir = Path(out_dir) / date_str() / timestamp_str()

    def write_all(self, report: AuditReport, enable_excel: bool = False) -> Dict[str, Path]:
        """Write every default artifact into the run directory."""
        ensure_dir(self.run_dir)
        written = {
            'csv': self.write_csv(report, self.run_dir / "siteshield_audit.csv"),
            'json': self.write_json(report, self.run_dir / "siteshield_audit.json"),
            'metadata': write_json(self.run_dir / "run_metadata.json", report.metadata),
        }
        if report.error_count:
            written['errors'] = self.write_errors(report, self.run_dir / "errors.csv")
        if enable_excel:
            written['excel'] = self.write_excel(report, self.run_dir / "siteshield_audit.xlsx")

        logger.info(f"Output written to {self.run_dir}")
        return written

    @staticmethod
    def write_csv(report: AuditReport, path: Path) -> Path:
        fieldnames, rows = export_rows(report.result, report.mode)
        write_csv(path, rows, fieldnames=fieldnames)
        logger.info(f"Wrote {len(rows)} rows to {path}")
        return Path(path)

    @staticmethod
    def write_json(report: AuditReport, path: Path) -> Path:
        document = export_document(report.result, report.mode, report.stats)
        write_json(path, document)
        logger.info(f"Wrote nested report to {path}")
        return Path(path)

    @staticmethod
    def write_errors(report: AuditReport, path: Path) -> Path:
        write_csv(path, report.errors.to_rows(), fieldnames=ERROR_FIELDS)
        return Path(path)

    @staticmethod
    def write_excel(report: AuditReport, path: Path) -> Path:
        """Workbook with Protected / Unprotected / Summary sheets (as the mode allows)."""
        sheets = {}
        if report.result.protected and report.mode is not AuditMode.UNPROTECTED_ONLY:
            sheets['Protected'] = pd.DataFrame(
                protected_rows(report.result), columns=['ShieldMap', 'PropertyName', 'Hostnames'])
        if report.result.unprotected and report.mode is not AuditMode.PROTECTED_ONLY:
            sheets['Unprotected'] = pd.DataFrame(
                unprotected_rows(report.result), columns=['PropertyName', 'Hostnames'])

        totals = summary(report.stats, report.mode)
        summary_rows = [{'Metric': k, 'Value': v} for k, v in totals.items() if k != 'maps']
        sheets['Summary'] = pd.DataFrame(summary_rows)
        if totals['maps']:
            sheets['Per Map'] = pd.DataFrame(totals['maps'])
        if report.error_count:
            sheets['Errors'] = pd.DataFrame(report.errors.to_rows(), columns=ERROR_FIELDS)

        write_excel(path, sheets)
        logger.info(f"Wrote workbook to {path}")
        return Path(path)
