# src/tenantadmin/apps/installed.py
from __future__ import annotations
import csv
import json
import logging
import pathlib
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tenantadmin.core import registry
from tenantadmin.core.errors import PlatformNotSupported

_log = logging.getLogger(__name__)

UNINSTALL_PATH = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"
UNINSTALL_PATH_WOW64 = r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall"

APPX_QUERY = (
    "Get-AppxPackage | Select-Object Name, Version, Publisher, InstallLocation | "
    "ConvertTo-Json -Compress"
)

FIELDS = ["name", "version", "publisher", "install_date", "source", "install_location"]


@dataclass
class InstalledApp:
    name: str
    version: str = ""
    publisher: str = ""
    install_date: str = ""
    source: str = ""
    install_location: str = ""

    def as_dict(self) -> Dict[str, str]:
        return {f: getattr(self, f) for f in FIELDS}


def _uninstall_roots() -> List[Tuple[int, str, int]]:
    registry.ensure_winreg()
    wr = registry.winreg
    return [
        (wr.HKEY_LOCAL_MACHINE, UNINSTALL_PATH, wr.KEY_READ | wr.KEY_WOW64_64KEY),
        (wr.HKEY_LOCAL_MACHINE, UNINSTALL_PATH_WOW64, wr.KEY_READ),
        (wr.HKEY_CURRENT_USER, UNINSTALL_PATH, wr.KEY_READ),
    ]


def format_install_date(raw: Any) -> str:
    """YYYYMMDD → YYYY-MM-DD; anything else → ''."""
    s = str(raw or "").strip()
    if len(s) != 8 or not s.isdigit():
        return ""
    try:
        return datetime.strptime(s, "%Y%m%d").strftime("%Y-%m-%d")
    except ValueError:
        return ""


def app_from_values(values: Dict[str, Any], source: str, include_system: bool = False) -> Optional[InstalledApp]:
    name = str(values.get("DisplayName") or "").strip()
    if not name:
        return None
    if not include_system and values.get("SystemComponent") == 1:
        return None
    return InstalledApp(
        name=name,
        version=str(values.get("DisplayVersion") or "").strip(),
        publisher=str(values.get("Publisher") or "").strip(),
        install_date=format_install_date(values.get("InstallDate")),
        source=source,
        install_location=str(values.get("InstallLocation") or "").strip(),
    )


def scan_registry(include_system: bool = False) -> List[InstalledApp]:
    apps: List[InstalledApp] = []
    for hive, path, access in _uninstall_roots():
        source = f"{registry.hive_name(hive)}\\{path}"
        for sub in registry.iter_subkeys(hive, path, access):
            values = registry.read_values(hive, f"{path}\\{sub}", access)
            app = app_from_values(values, source, include_system=include_system)
            if app:
                apps.append(app)
    _log.debug("registry scan found %d entries", len(apps))
    return apps


def scan_store_packages(timeout: int = 120) -> List[InstalledApp]:
    try:
        result = subprocess.run(
            ["powershell", "-NoProfile", "-NonInteractive", "-Command", APPX_QUERY],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as ex:
        raise PlatformNotSupported("PowerShell is required to list Store packages") from ex

    if result.returncode != 0:
        _log.warning("Get-AppxPackage failed (%s): %s", result.returncode, result.stderr.strip())
        return []
    return parse_appx_json(result.stdout)


def parse_appx_json(text: str) -> List[InstalledApp]:
    text = (text or "").strip()
    if not text:
        return []
    data = json.loads(text)
    # ConvertTo-Json emits a bare object for a single package
    if isinstance(data, dict):
        data = [data]
    return [
        InstalledApp(
            name=str(p.get("Name") or ""),
            version=str(p.get("Version") or ""),
            publisher=str(p.get("Publisher") or ""),
            source="AppX",
            install_location=str(p.get("InstallLocation") or ""),
        )
        for p in data
        if p.get("Name")
    ]


def dedupe_and_sort(apps: Iterable[InstalledApp], name_filter: Optional[str] = None) -> List[InstalledApp]:
    needle = (name_filter or "").casefold()
    seen = set()
    out: List[InstalledApp] = []
    for a in apps:
        if needle and needle not in a.name.casefold():
            continue
        key = (a.name.casefold(), a.version)
        if key in seen:
            continue
        seen.add(key)
        out.append(a)
    out.sort(key=lambda a: (a.name.casefold(), a.version))
    return out


def list_installed_apps(
    name_filter: Optional[str] = None,
    *,
    include_system: bool = False,
    include_store: bool = False,
) -> List[InstalledApp]:
    """
    Installed applications from the Uninstall registry keys (64-bit, 32-bit, per-user),
    plus AppX packages when include_store=True.
    """
    apps = scan_registry(include_system=include_system)
    if include_store:
        apps.extend(scan_store_packages())
    return dedupe_and_sort(apps, name_filter)


def write_apps_csv(apps: Iterable[InstalledApp], path) -> pathlib.Path:
    p = pathlib.Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8", newline="") as fh:
        w = csv.DictWriter(fh, fieldnames=FIELDS)
        w.writeheader()
        for a in apps:
            w.writerow(a.as_dict())
    return p
