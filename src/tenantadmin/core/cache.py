# src/tenantadmin/core/cache.py
from __future__ import annotations
import json, os, sys, pathlib, tempfile

APP_NAME = "TenantAdmin"

def _base_dir() -> pathlib.Path:
    if sys.platform.startswith("win"):
        root = os.environ.get("APPDATA") or os.path.expanduser("~\\AppData\\Roaming")
        return pathlib.Path(root) / APP_NAME
    elif sys.platform == "darwin":
        return pathlib.Path.home() / "Library" / "Application Support" / APP_NAME
    else:
        return pathlib.Path.home() / ".local" / "share" / APP_NAME

def data_dir(bucket: str) -> pathlib.Path:
    p = _base_dir() / "data" / bucket
    p.mkdir(parents=True, exist_ok=True); return p

def write_json_atomic(path: pathlib.Path, data: dict, *, private: bool = False) -> None:
    """
    Write JSON via temp file + os.replace. private=True keeps the file at
    mode 0600 on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix="._", suffix=".json")
    os.close(fd)
    tmp_path = pathlib.Path(tmp)
    try:
        if private and os.name != "nt":
            os.chmod(tmp_path, 0o600)
        tmp_path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
