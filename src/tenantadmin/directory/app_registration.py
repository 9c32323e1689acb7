# src/tenantadmin/directory/app_registration.py
from __future__ import annotations
import logging
import pathlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from tenantadmin.core.cache import data_dir, write_json_atomic
from tenantadmin.core.graph_client import GraphClient
from tenantadmin.http.errors import HttpError

_log = logging.getLogger(__name__)


class DuplicateApplication(Exception):
    def __init__(self, display_name: str, app_ids: List[str]):
        super().__init__(f"An application named '{display_name}' already exists ({', '.join(app_ids)})")
        self.display_name = display_name
        self.app_ids = app_ids


@dataclass
class RegisteredApp:
    tenant_id: str
    display_name: str
    app_id: str
    object_id: str
    service_principal_id: Optional[str]
    secret: str
    secret_key_id: str
    secret_expires: str

    def public_view(self) -> Dict[str, Any]:
        """Everything except the secret value."""
        return {
            "tenant_id": self.tenant_id,
            "display_name": self.display_name,
            "app_id": self.app_id,
            "object_id": self.object_id,
            "service_principal_id": self.service_principal_id,
            "secret_key_id": self.secret_key_id,
            "secret_expires": self.secret_expires,
        }


def _odata_quote(s: str) -> str:
    return s.replace("'", "''")


def find_applications(graph: GraphClient, display_name: str) -> List[Dict[str, Any]]:
    """
    Permissions: Application.Read.All
    """
    params = {
        "$filter": f"displayName eq '{_odata_quote(display_name)}'",
        "$select": "id,appId,displayName",
    }
    return list(graph.get_paged_values("/v1.0/applications", params=params))


def _remove_application(graph: GraphClient, object_id: str, app_id: str) -> None:
    try:
        graph.delete(f"/v1.0/applications/{object_id}")
    except HttpError as ex:
        _log.error("could not remove application %s: %s", app_id, ex)


def register_application(
    graph: GraphClient,
    tenant_id: str,
    display_name: str,
    *,
    secret_lifetime_days: int = 180,
    sign_in_audience: str = "AzureADMyOrg",
    create_service_principal: bool = True,
    allow_duplicate: bool = False,
    now: Optional[datetime] = None,
) -> RegisteredApp:
    """
    Permissions: Application.ReadWrite.All
    Creates the application object, adds a client secret and (optionally) the
    service principal. The application is deleted again if adding
    the secret or the service principal fails.
    """
    if not display_name.strip():
        raise ValueError("Application display name required.")
    if secret_lifetime_days < 1:
        raise ValueError("Secret lifetime must be at least one day.")

    if not allow_duplicate:
        existing = find_applications(graph, display_name)
        if existing:
            raise DuplicateApplication(display_name, [a.get("appId", "") for a in existing])

    app = graph.post_json("/v1.0/applications", json={
        "displayName": display_name,
        "signInAudience": sign_in_audience,
    })
    object_id, app_id = app["id"], app["appId"]
    _log.info("created application %s (appId=%s)", display_name, app_id)

    end = (now or datetime.now(timezone.utc)) + timedelta(days=secret_lifetime_days)
    try:
        cred = graph.post_json(f"/v1.0/applications/{object_id}/addPassword", json={
            "passwordCredential": {
                "displayName": f"{display_name} secret",
                "endDateTime": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
            }
        })
    except HttpError:
        _log.error("addPassword failed; removing application %s", app_id)
        _remove_application(graph, object_id, app_id)
        raise

    sp_id = None
    if create_service_principal:
        try:
            sp = graph.post_json("/v1.0/servicePrincipals", json={"appId": app_id})
        except HttpError:
            _log.error("service principal creation failed; removing application %s", app_id)
            _remove_application(graph, object_id, app_id)
            raise
        sp_id = sp.get("id")
        _log.info("created service principal %s", sp_id)

    return RegisteredApp(
        tenant_id=tenant_id,
        display_name=display_name,
        app_id=app_id,
        object_id=object_id,
        service_principal_id=sp_id,
        secret=cred["secretText"],
        secret_key_id=cred.get("keyId", ""),
        secret_expires=cred.get("endDateTime") or end.strftime("%Y-%m-%dT%H:%M:%SZ"),
    )


def credential_path(app_id: str) -> pathlib.Path:
    return data_dir("Credentials") / f"{app_id}.json"


def save_credential(app: RegisteredApp, path: Optional[pathlib.Path] = None) -> pathlib.Path:
    """Persist the generated client secret for later app-only sign-in (user-only file)."""
    cp = path or credential_path(app.app_id)
    out = dict(app.public_view())
    out["client_secret"] = app.secret
    out["saved_at"] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    write_json_atomic(cp, out, private=True)
    _log.info("stored credential for %s at %s", app.app_id, cp)
    return cp
