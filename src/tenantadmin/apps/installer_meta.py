# src/tenantadmin/apps/installer_meta.py
from __future__ import annotations
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict

from tenantadmin.core.errors import PlatformNotSupported

_log = logging.getLogger(__name__)

MSI_PROPERTIES = (
    "ProductName", "ProductVersion", "Manufacturer",
    "ProductCode", "UpgradeCode", "ProductLanguage",
)
VERSION_STRINGS = (
    "ProductName", "ProductVersion", "CompanyName",
    "FileDescription", "FileVersion",
)
_MSI_OPEN_READONLY = 0


@dataclass
class InstallerMetadata:
    path: str
    kind: str  # "msi" | "exe"
    properties: Dict[str, str] = field(default_factory=dict)

    @property
    def product_name(self) -> str:
        return self.properties.get("ProductName", "")

    @property
    def version(self) -> str:
        return self.properties.get("ProductVersion") or self.properties.get("FileVersion", "")

    def as_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "kind": self.kind, **self.properties}


def _installer() -> Any:
    try:
        import win32com.client
    except ImportError as ex:
        raise PlatformNotSupported("pywin32 is required to read .msi packages") from ex
    return win32com.client.Dispatch("WindowsInstaller.Installer")


def read_msi_properties(path: pathlib.Path, installer: Any | None = None) -> Dict[str, str]:
    """Read the Property table of an .msi package (opened read-only)."""
    installer = installer or _installer()
    db = installer.OpenDatabase(str(path), _MSI_OPEN_READONLY)
    view = db.OpenView("SELECT `Property`, `Value` FROM `Property`")
    view.Execute(None)
    props: Dict[str, str] = {}
    try:
        while True:
            rec = view.Fetch()
            if rec is None:
                break
            name = rec.StringData(1)
            if name in MSI_PROPERTIES:
                props[name] = rec.StringData(2)
    finally:
        view.Close()
    return props


def read_version_resource(path: pathlib.Path) -> Dict[str, str]:
    """StringFileInfo entries of a PE file, using its first translation."""
    try:
        import win32api
    except ImportError as ex:
        raise PlatformNotSupported("pywin32 is required to read executable version info") from ex

    props: Dict[str, str] = {}
    try:
        translations = win32api.GetFileVersionInfo(str(path), "\\VarFileInfo\\Translation")
    except win32api.error as ex:
        _log.debug("no version resource in %s: %s", path, ex)
        return props
    if not translations:
        return props
    lang, codepage = translations[0]
    for name in VERSION_STRINGS:
        key = f"\\StringFileInfo\\{lang:04x}{codepage:04x}\\{name}"
        try:
            value = win32api.GetFileVersionInfo(str(path), key)
        except win32api.error:
            continue
        if value:
            props[name] = str(value).strip()
    return props


def read_installer_metadata(path: str | pathlib.Path) -> InstallerMetadata:
    p = pathlib.Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Installer not found: {p}")
    ext = p.suffix.lower()
    if ext == ".msi":
        return InstallerMetadata(path=str(p), kind="msi", properties=read_msi_properties(p))
    if ext in (".exe", ".dll"):
        return InstallerMetadata(path=str(p), kind="exe", properties=read_version_resource(p))
    raise ValueError(f"Unsupported installer type '{ext}' (expected .msi or .exe)")
