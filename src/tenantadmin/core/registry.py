# src/tenantadmin/core/registry.py
from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from tenantadmin.core.errors import PlatformNotSupported

try:  # winreg only exists on Windows builds of CPython
    import winreg
except ImportError:
    winreg = None  # type: ignore[assignment]


def ensure_winreg() -> None:
    if winreg is None:
        raise PlatformNotSupported("Windows registry APIs are unavailable on this platform")


@contextmanager
def open_key(root: int, path: str, access: int | None = None) -> Iterator[Any]:
    """Context manager around winreg.OpenKey that always closes the handle."""
    ensure_winreg()
    access_mask = access if access is not None else winreg.KEY_READ  # type: ignore[union-attr]
    handle = winreg.OpenKey(root, path, 0, access_mask)  # type: ignore[union-attr]
    try:
        yield handle
    finally:
        winreg.CloseKey(handle)  # type: ignore[union-attr]


def iter_subkeys(root: int, path: str, access: int | None = None) -> Iterator[str]:
    """Yield subkey names; a missing or unreadable key yields nothing."""
    ensure_winreg()
    try:
        with open_key(root, path, access) as handle:
            subkey_count, _, _ = winreg.QueryInfoKey(handle)  # type: ignore[union-attr]
            for index in range(subkey_count):
                try:
                    yield winreg.EnumKey(handle, index)  # type: ignore[union-attr]
                except OSError:
                    continue
    except (FileNotFoundError, PermissionError):
        return


def read_values(root: int, path: str, access: int | None = None) -> Dict[str, Any]:
    """Return all values under a key as {name: value}; {} when the key is missing."""
    ensure_winreg()
    values: Dict[str, Any] = {}
    try:
        with open_key(root, path, access) as handle:
            _, value_count, _ = winreg.QueryInfoKey(handle)  # type: ignore[union-attr]
            for index in range(value_count):
                name, value, _ = winreg.EnumValue(handle, index)  # type: ignore[union-attr]
                values[name] = value
    except (FileNotFoundError, PermissionError):
        return {}
    return values


def hive_name(root: int) -> str:
    ensure_winreg()
    mapping = {
        winreg.HKEY_LOCAL_MACHINE: "HKLM",  # type: ignore[union-attr]
        winreg.HKEY_CURRENT_USER: "HKCU",  # type: ignore[union-attr]
        winreg.HKEY_USERS: "HKU",  # type: ignore[union-attr]
    }
    return mapping.get(root, str(root))
