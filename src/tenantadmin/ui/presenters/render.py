# src/tenantadmin/ui/presenters/render.py
from __future__ import annotations
from typing import TYPE_CHECKING, Dict, Any, Iterable, List, Optional

from rich.markup import escape
from rich.table import Table

from tenantadmin.licensing.matrix import ComparisonMatrix, display_rows

if TYPE_CHECKING:
    from tenantadmin.apps.installed import InstalledApp
    from tenantadmin.apps.installer_meta import InstallerMetadata
    from tenantadmin.system.diagnostics import SystemReport

def _fmt_key(k: str) -> str:
    return k.replace("_", " ").title()

def _fmt_val(v: Any) -> str:
    if v is None or v == "":
        return "—"
    if isinstance(v, (list, tuple)):
        return ", ".join(map(str, v))
    return str(v)

def render_lines_from_dict(
    data: Dict[str, Any],
    wanted_fields: Optional[Iterable[str]],
    label_map: Optional[Dict[str, str]] = None
) -> List[str]:
    """
    Render lines in the ORDER specified by wanted_fields.
    If a key is missing in data, show an em dash for the value.
    """
    lines: List[str] = []
    wanted = list(wanted_fields or [])
    for k in wanted:
        label = (label_map or {}).get(k, _fmt_key(k))
        v = data.get(k, None)
        lines.append(f"{label}: {_fmt_val(v)}")
    return lines if lines else ["(No fields selected)"]

SYSTEM_FIELDS = [
    "hostname", "os_name", "os_release", "os_version", "architecture", "boot_time",
    "cpu_model", "cpu_physical_cores", "cpu_logical_cores", "cpu_percent",
    "memory_total_gb", "memory_available_gb", "memory_percent",
]
SYSTEM_LABELS = {
    "os_name": "OS", "os_release": "OS Release", "os_version": "OS Version",
    "cpu_model": "CPU", "cpu_physical_cores": "CPU Cores", "cpu_logical_cores": "CPU Threads",
    "cpu_percent": "CPU Usage %", "memory_total_gb": "Memory (GB)",
    "memory_available_gb": "Memory Available (GB)", "memory_percent": "Memory Usage %",
}

def render_system_report(report: SystemReport) -> List[str]:
    """
    Produces lines like:
      Hostname: WS-0142
      C:\\ (NTFS): 112.4/237.9 GB used (47.2%)
      Session: alice on console since 2025-01-02T08:00:00Z
    """
    lines = render_lines_from_dict(report.as_dict(), SYSTEM_FIELDS, SYSTEM_LABELS)
    lines.append("")
    lines.append("Disks:")
    for d in report.disks:
        lines.append(f"  {d.mountpoint} ({d.fstype or '?'}): {d.used_gb}/{d.total_gb} GB used ({d.percent}%)")
    if not report.disks:
        lines.append("  (No readable disks)")
    lines.append("")
    lines.append("Sessions:")
    for s in report.sessions:
        where = s.terminal or s.host or "?"
        lines.append(f"  {s.user} on {where} since {_fmt_val(s.started)}")
    if not report.sessions:
        lines.append("  (No logged-on sessions)")
    return lines

def render_matrix(matrix: ComparisonMatrix) -> Table:
    title = f"{matrix.row_header}s × {matrix.orientation.search_field}s matching '{escape(matrix.term)}'"
    table = Table(title=title, show_lines=False)
    table.add_column(matrix.row_header, no_wrap=True)
    for c in matrix.column_labels:
        table.add_column(escape(c), justify="center")
    for row in display_rows(matrix):
        table.add_row(*(escape(v) for v in row.as_list()))
    return table

def render_apps(apps: List[InstalledApp]) -> Table:
    table = Table(title=f"Installed applications ({len(apps)})")
    for col in ("Name", "Version", "Publisher", "Installed", "Source"):
        table.add_column(col)
    for a in apps:
        table.add_row(*(escape(v or "—") for v in (a.name, a.version, a.publisher, a.install_date, a.source)))
    return table

def render_installer(meta: InstallerMetadata) -> List[str]:
    lines = [f"File: {meta.path}", f"Type: {meta.kind.upper()}"]
    if not meta.properties:
        lines.append("(No metadata found)")
    for k, v in meta.properties.items():
        lines.append(f"{k}: {_fmt_val(v)}")
    return lines
