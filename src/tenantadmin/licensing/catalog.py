# src/tenantadmin/licensing/catalog.py
from __future__ import annotations
import csv
import io
import logging
import pathlib
from typing import Dict, List, Optional, Tuple

from tenantadmin.http.client import HttpClient, build_http_client
from tenantadmin.licensing.matrix import MembershipRecord

_log = logging.getLogger(__name__)

# Column pairs (license column, service column) per naming scheme
NAME_COLUMNS: Dict[str, Tuple[str, str]] = {
    "friendly": ("Product_Display_Name", "Service_Plans_Included_Friendly_Names"),
    "technical": ("String_Id", "Service_Plan_Name"),
}


class CatalogError(ValueError):
    """Reference table is missing required columns or is empty."""


def fetch_catalog_text(http: HttpClient, url: str) -> str:
    """Download the published product/service-plan reference CSV."""
    _log.info("downloading license catalog from %s", url)
    text = http.get_text(url)
    _log.debug("catalog download: %d characters", len(text))
    return text


def load_catalog_text(source: str, http: Optional[HttpClient] = None) -> str:
    """
    Local file when `source` names an existing path, otherwise a URL.
    """
    p = pathlib.Path(source)
    if "://" not in source and p.is_file():
        _log.info("reading license catalog from %s", p)
        return p.read_text(encoding="utf-8-sig")
    return fetch_catalog_text(http or build_http_client(logger=_log), source)


def parse_catalog(text: str, names: str = "friendly") -> List[MembershipRecord]:
    try:
        lic_col, svc_col = NAME_COLUMNS[names]
    except KeyError:
        raise ValueError(f"Unknown naming scheme {names!r}; expected one of {sorted(NAME_COLUMNS)}")

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    fields = [f.strip() for f in (reader.fieldnames or [])]
    missing = [c for c in (lic_col, svc_col) if c not in fields]
    if missing:
        raise CatalogError(f"License catalog is missing column(s): {', '.join(missing)}")
    reader.fieldnames = fields

    records: List[MembershipRecord] = []
    skipped = 0
    for row in reader:
        lic = (row.get(lic_col) or "").strip()
        svc = (row.get(svc_col) or "").strip()
        if not lic or not svc:
            skipped += 1
            continue
        records.append(MembershipRecord(license_name=lic, service_name=svc))

    if not records:
        raise CatalogError("License catalog contains no license/service rows")
    if skipped:
        _log.debug("skipped %d catalog rows with empty names", skipped)
    _log.info("parsed %d license/service records", len(records))
    return records


def load_catalog(source: str, *, names: str = "friendly", http: Optional[HttpClient] = None) -> List[MembershipRecord]:
    return parse_catalog(load_catalog_text(source, http=http), names=names)
