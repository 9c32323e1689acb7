from __future__ import annotations

import csv
import json
import logging
import os
import pathlib
import subprocess
import sys

import pytest

from tenantadmin.cli import main as cli
from tenantadmin.core import registry
from tenantadmin.core.auth import InvalidClientSecret, TenantSession
from tenantadmin.core.logging_setup import ROOT_LOGGER
from tenantadmin.directory import app_registration
from tenantadmin.directory.app_registration import RegisteredApp
from tenantadmin.system import diagnostics
from tenantadmin.system.diagnostics import SystemReport


@pytest.fixture(autouse=True)
def _isolate(settings, tmp_path):
    settings({"licensing": {"export_dir": str(tmp_path / "exports")}})
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()


def _read_csv(path):
    with open(path, encoding="utf-8", newline="") as fh:
        return list(csv.reader(fh))


def test_licenses_export_to_output(catalog_file, tmp_path):
    out = tmp_path / "defender.csv"
    rc = cli.main(["licenses", "defender", "--source", str(catalog_file), "--no-display", "-o", str(out)])

    assert rc == 0
    assert _read_csv(out) == [
        ["License", "Microsoft Defender for Business", "Microsoft Defender for Endpoint"],
        ["Microsoft 365 Business Premium", "1", "0"],
        ["Microsoft 365 E5", "0", "1"],
    ]


def test_services_export_to_configured_dir(catalog_file, tmp_path):
    rc = cli.main(["services", "E1", "--source", str(catalog_file), "--no-display", "--export"])

    assert rc == 0
    rows = _read_csv(tmp_path / "exports" / "services-e1.csv")
    assert rows == [["Service", "Office 365 E1"], ["Microsoft Teams", "1"]]


def test_licenses_display(catalog_file, capsys):
    assert cli.main(["licenses", "teams", "--source", str(catalog_file)]) == 0
    out = capsys.readouterr().out
    assert "Office 365 E1" in out
    assert "✔" in out


def test_technical_names(catalog_file, tmp_path):
    out = tmp_path / "t.csv"
    rc = cli.main(["licenses", "TEAMS1", "--names", "technical", "--source", str(catalog_file),
                   "--no-display", "-o", str(out)])
    assert rc == 0
    assert _read_csv(out)[0] == ["License", "TEAMS1"]


def test_no_match_exits_cleanly(catalog_file, capsys, tmp_path):
    out = tmp_path / "none.csv"
    rc = cli.main(["licenses", "Nonexistent", "--source", str(catalog_file), "-o", str(out)])

    assert rc == 0
    assert "Nothing to show" in capsys.readouterr().out
    assert not out.exists()


def test_invalid_catalog_fails(tmp_path, capsys):
    bad = tmp_path / "bad.csv"
    bad.write_text("Name,Plan\nA,B\n", encoding="utf-8")

    assert cli.main(["licenses", "x", "--source", str(bad)]) == 1
    assert "Invalid license catalog" in capsys.readouterr().err


def test_invalid_regex_fails(catalog_file, capsys):
    assert cli.main(["licenses", "(", "--regex", "--source", str(catalog_file)]) == 1
    assert "Invalid search pattern" in capsys.readouterr().err


def _report() -> SystemReport:
    return SystemReport(
        hostname="WS-0142", os_name="Windows", os_release="11", os_version="10.0.22631",
        architecture="AMD64", boot_time=None, cpu_model="Intel64", cpu_physical_cores=4,
        cpu_logical_cores=8, cpu_percent=3.0, memory_total_gb=16.0, memory_available_gb=8.0,
        memory_percent=50.0,
    )


def test_sysinfo_with_json(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(diagnostics, "collect_system_report", _report)
    out = tmp_path / "report.json"

    assert cli.main(["sysinfo", "--json", str(out)]) == 0
    assert "Hostname: WS-0142" in capsys.readouterr().out
    assert json.loads(out.read_text(encoding="utf-8"))["os_version"] == "10.0.22631"


def test_apps_without_registry(monkeypatch, capsys):
    monkeypatch.setattr(registry, "winreg", None)
    assert cli.main(["apps"]) == 1
    assert "Not supported here" in capsys.readouterr().err


def test_installer_missing_file(tmp_path, capsys):
    assert cli.main(["installer", str(tmp_path / "missing.msi")]) == 1
    assert "Installer not found" in capsys.readouterr().err


def test_register_app(monkeypatch, tmp_path, capsys):
    seen = {}

    def fake_connect(creds, prompt=None):
        seen["creds"] = creds
        return TenantSession(tenant_id=creds["tenant_id"], client_id=creds["client_id"], token="tok", mode="delegated")

    def fake_register(graph, tenant_id, name, **kw):
        seen["kw"] = kw
        return RegisteredApp(
            tenant_id=tenant_id, display_name=name, app_id="app-1", object_id="obj-1",
            service_principal_id="sp-1", secret="s3cr3t", secret_key_id="k",
            secret_expires="2025-03-31T12:00:00Z",
        )

    monkeypatch.setattr(cli, "connect", fake_connect)
    monkeypatch.setattr(app_registration, "register_application", fake_register)
    cred = tmp_path / "cred.json"

    rc = cli.main(["register-app", "--tenant-id", "contoso", "--name", "Reporting",
                   "--secret-days", "30", "--save-to", str(cred)])

    assert rc == 0
    assert seen["creds"]["client_secret"] == ""
    assert seen["kw"]["secret_lifetime_days"] == 30
    assert json.loads(cred.read_text(encoding="utf-8"))["client_secret"] == "s3cr3t"
    assert "s3cr3t" not in capsys.readouterr().out


def test_register_app_auth_failure(monkeypatch, capsys):
    def fake_connect(creds, prompt=None):
        raise InvalidClientSecret("Invalid client secret.")

    monkeypatch.setattr(cli, "connect", fake_connect)
    rc = cli.main(["register-app", "--tenant-id", "t", "--name", "X", "--client-id", "c", "--client-secret", "bad"])

    assert rc == 1
    assert "Authentication failed" in capsys.readouterr().err


def test_register_app_zero_secret_days_is_rejected(monkeypatch, capsys):
    def fake_connect(creds, prompt=None):
        return TenantSession(tenant_id="t", client_id="c", token="tok", mode="delegated")

    monkeypatch.setattr(cli, "connect", fake_connect)
    rc = cli.main(["register-app", "--tenant-id", "t", "--name", "X", "--secret-days", "0"])

    assert rc == 1
    assert "at least one day" in capsys.readouterr().err


def test_cli_import_leaves_platform_modules_unloaded():
    src = pathlib.Path(cli.__file__).resolve().parents[2]
    env = dict(os.environ, PYTHONPATH=os.pathsep.join(filter(None, [str(src), os.environ.get("PYTHONPATH")])))
    code = (
        "import sys, tenantadmin.cli.main; "
        "print(sorted(m for m in ('psutil', 'tenantadmin.system.diagnostics', "
        "'tenantadmin.apps.installed', 'tenantadmin.apps.installer_meta') if m in sys.modules))"
    )
    out = subprocess.run([sys.executable, "-c", code], env=env, capture_output=True, text=True, check=True)
    assert out.stdout.strip() == "[]"
