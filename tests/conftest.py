from __future__ import annotations

import json
import pathlib

import pytest

from tenantadmin.core import cache
from tenantadmin.licensing.matrix import MembershipRecord

CATALOG_HEADER = (
    "Product_Display_Name,String_Id,GUID,Service_Plan_Name,Service_Plan_Id,"
    "Service_Plans_Included_Friendly_Names"
)

CATALOG_ROWS = [
    "Microsoft 365 E5,SPE_E5,06ebc4ee-1bb5-47dd-8120-11324bc54e06,WINDEFATP,871d91ec-ec1a-452b-a83f-bd76c7d770ef,Microsoft Defender for Endpoint",
    "Microsoft 365 E5,SPE_E5,06ebc4ee-1bb5-47dd-8120-11324bc54e06,TEAMS1,57ff2da0-773e-42df-b2af-ffb7a2317929,Microsoft Teams",
    "Microsoft 365 E5,SPE_E5,06ebc4ee-1bb5-47dd-8120-11324bc54e06,EXCHANGE_S_ENTERPRISE,efb87545-963c-4e0d-99df-69c6916d9eb0,Exchange Online (Plan 2)",
    "Microsoft 365 Business Premium,SPB,cbdc14ab-d96c-4c30-b9f4-6ada7cdc1d46,TEAMS1,57ff2da0-773e-42df-b2af-ffb7a2317929,Microsoft Teams",
    "Microsoft 365 Business Premium,SPB,cbdc14ab-d96c-4c30-b9f4-6ada7cdc1d46,MDE_SMB,bfc1bbd9-981b-4f71-9b82-17c35fd0e2a4,Microsoft Defender for Business",
    "Office 365 E1,STANDARDPACK,18181a46-0d4e-45cd-891e-60aabd171b4e,TEAMS1,57ff2da0-773e-42df-b2af-ffb7a2317929,Microsoft Teams",
    "Office 365 E1,STANDARDPACK,18181a46-0d4e-45cd-891e-60aabd171b4e,TEAMS1,57ff2da0-773e-42df-b2af-ffb7a2317929,Microsoft Teams",
]


@pytest.fixture
def catalog_text() -> str:
    return "\n".join([CATALOG_HEADER, *CATALOG_ROWS]) + "\n"


@pytest.fixture
def catalog_file(tmp_path, catalog_text) -> pathlib.Path:
    p = tmp_path / "licensing.csv"
    # published file carries a UTF-8 BOM
    p.write_text("\ufeff" + catalog_text, encoding="utf-8")
    return p


@pytest.fixture
def sample_records():
    return [
        MembershipRecord("M365 E5", "Defender for Endpoint"),
        MembershipRecord("M365 E5", "Teams"),
        MembershipRecord("M365 Business", "Teams"),
    ]


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Point the settings loader at a temp appsettings.json; returns a writer."""
    path = tmp_path / "appsettings.json"
    monkeypatch.setenv("TENANTADMIN_SETTINGS", str(path))

    def _write(data: dict) -> pathlib.Path:
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def app_data(tmp_path, monkeypatch) -> pathlib.Path:
    root = tmp_path / "appdata"
    monkeypatch.setattr(cache, "_base_dir", lambda: root)
    return root
