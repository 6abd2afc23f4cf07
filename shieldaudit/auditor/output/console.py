"""Console summary for the three display modes."""

from typing import List

import pandas as pd

from shieldaudit.util.types import AuditMode

from ..assemble import assemble, unprotected_rows
from ..runner import AuditReport

RULE = "=" * 80


def _table(rows, columns) -> str:
    if not rows:
        return "  (none)"
    frame = pd.DataFrame(rows, columns=columns)
    return frame.to_string(index=False)


def _summary_lines(report: AuditReport) -> List[str]:
    stats = report.stats
    lines = ["", "Per-map coverage:"]
    lines.append(_table([(m.map_name, m.property_count, m.hostname_count) for m in stats.map_stats],
                        ['Shield Map', 'Properties', 'Hostnames']))
    lines.append("")
    lines.append(f"Protected:   {stats.total_protected_properties} properties, "
                 f"{stats.total_protected_hostnames} hostnames")
    if report.mode is not AuditMode.PROTECTED_ONLY:
        lines.append(f"Unprotected: {stats.total_unprotected_properties} properties, "
                     f"{stats.total_unprotected_hostnames} hostnames")
        lines.append(f"Total:       {stats.total_properties} properties, {stats.total_hostnames} hostnames")
        lines.append(f"Protection rate: {stats.protection_rate:.2f}%")
    return lines


def format_report(report: AuditReport) -> str:
    lines = [RULE, f"SiteShield audit - {report.metadata.get('environment', '')}", RULE]

    if report.mode is AuditMode.PROTECTED_ONLY:
        lines.append("Protected properties:")
        lines.append(_table(assemble(report.result, report.mode), ['Shield Map', 'Property', 'Hostnames']))
        lines.extend(_summary_lines(report))
    elif report.mode is AuditMode.UNPROTECTED_ONLY:
        lines.append("Unprotected properties:")
        lines.append(_table(assemble(report.result, report.mode), ['Property', 'Hostnames']))
        lines.append("")
        lines.append(f"Unprotected: {report.stats.total_unprotected_properties} properties, "
                     f"{report.stats.total_unprotected_hostnames} hostnames")
    else:
        lines.extend(_summary_lines(report))
        lines.append("")
        lines.append("Unprotected properties:")
        lines.append(_table(unprotected_rows(report.result), ['Property', 'Hostnames']))

    if report.metadata.get('universe_is_approximate'):
        lines.append("")
        lines.append(f"Note: unprotected set is limited to properties matching "
                     f"{report.metadata.get('universe_query')}")

    lines.append(RULE)
    lines.append(completion_line(report.error_count))
    return "\n".join(lines)


def completion_line(error_count: int) -> str:
    if error_count:
        return f"⚠️  Audit completed with {error_count} warnings"
    return "✅ Audit completed without errors"


def print_report(report: AuditReport) -> None:
    print(format_report(report))
