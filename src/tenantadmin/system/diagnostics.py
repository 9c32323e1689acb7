# src/tenantadmin/system/diagnostics.py
from __future__ import annotations
import logging
import platform
import socket
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil

_log = logging.getLogger(__name__)

_GB = 1024 ** 3


def _gb(n: int | float) -> float:
    return round(n / _GB, 2)


def _iso(ts: float | None) -> Optional[str]:
    if not ts:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class DiskInfo:
    device: str
    mountpoint: str
    fstype: str
    total_gb: float
    used_gb: float
    free_gb: float
    percent: float


@dataclass
class SessionInfo:
    user: str
    terminal: Optional[str]
    host: Optional[str]
    started: Optional[str]


@dataclass
class SystemReport:
    hostname: str
    os_name: str
    os_release: str
    os_version: str
    architecture: str
    boot_time: Optional[str]
    cpu_model: str
    cpu_physical_cores: Optional[int]
    cpu_logical_cores: Optional[int]
    cpu_percent: float
    memory_total_gb: float
    memory_available_gb: float
    memory_percent: float
    disks: List[DiskInfo] = field(default_factory=list)
    sessions: List[SessionInfo] = field(default_factory=list)
    collected_at: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def collect_disks() -> List[DiskInfo]:
    disks: List[DiskInfo] = []
    for part in psutil.disk_partitions(all=False):
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except (PermissionError, FileNotFoundError, OSError) as ex:
            # Removable drives with no media, locked volumes
            _log.debug("skipping %s: %s", part.mountpoint, ex)
            continue
        disks.append(DiskInfo(
            device=part.device,
            mountpoint=part.mountpoint,
            fstype=part.fstype,
            total_gb=_gb(usage.total),
            used_gb=_gb(usage.used),
            free_gb=_gb(usage.free),
            percent=usage.percent,
        ))
    return disks


def collect_sessions() -> List[SessionInfo]:
    return [
        SessionInfo(user=u.name, terminal=u.terminal, host=u.host, started=_iso(u.started))
        for u in psutil.users()
    ]


def collect_system_report(cpu_sample_seconds: float = 0.5) -> SystemReport:
    """Snapshot OS, CPU, memory, disks and logged-on sessions of this machine."""
    mem = psutil.virtual_memory()
    try:
        boot = _iso(psutil.boot_time())
    except OSError:
        boot = None

    report = SystemReport(
        hostname=socket.gethostname(),
        os_name=platform.system(),
        os_release=platform.release(),
        os_version=platform.version(),
        architecture=platform.machine(),
        boot_time=boot,
        cpu_model=platform.processor() or platform.machine(),
        cpu_physical_cores=psutil.cpu_count(logical=False),
        cpu_logical_cores=psutil.cpu_count(logical=True),
        cpu_percent=psutil.cpu_percent(interval=cpu_sample_seconds),
        memory_total_gb=_gb(mem.total),
        memory_available_gb=_gb(mem.available),
        memory_percent=mem.percent,
        disks=collect_disks(),
        sessions=collect_sessions(),
        collected_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    _log.info("collected diagnostics for %s (%d disks, %d sessions)",
              report.hostname, len(report.disks), len(report.sessions))
    return report
