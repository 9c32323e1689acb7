from __future__ import annotations
import logging
import msal
import requests

# Reuse the same error classes from core.auth
from tenantadmin.core.auth import (
    AuthError, InvalidTenantId, InvalidClientId, InvalidClientSecret,
    NetworkError, ConsentRequired, DeviceFlowFailed
)

_log = logging.getLogger(__name__)

SCOPES = ["https://graph.microsoft.com/.default"]
# Delegated sign-in needs to create applications and service principals.
DELEGATED_SCOPES = ["https://graph.microsoft.com/Application.ReadWrite.All"]

def build_authority(tenant_id: str) -> str:
    return f"https://login.microsoftonline.com/{tenant_id}"

def _map_msal_error(desc: str) -> AuthError:
    d = desc or ""
    if "AADSTS7000215" in d:  # invalid client secret
        return InvalidClientSecret("Invalid client secret.")
    if "AADSTS700016" in d:  # invalid client id
        return InvalidClientId("Invalid client ID or app not found.")
    if "invalid_tenant" in d or "AADSTS90002" in d:
        return InvalidTenantId("Invalid tenant ID or tenant not found.")
    if "AADSTS65001" in d or "consent_required" in d:
        return ConsentRequired("Admin consent required.")
    if "authorization_declined" in d or "expired_token" in d or "code_expired" in d:
        return DeviceFlowFailed(d)
    return AuthError(d)

def msal_acquire_token(client_id: str, client_secret: str, authority: str) -> str:
    try:
        app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )
        res = app.acquire_token_for_client(scopes=SCOPES)
    except requests.exceptions.RequestException as ex:
        raise NetworkError(str(ex)) from ex
    except ValueError as ex:
        # msal raises ValueError for unreachable/unknown authorities
        raise InvalidTenantId(str(ex)) from ex

    if "access_token" not in res:
        raise _map_msal_error(res.get("error_description") or res.get("error") or "Unknown error")

    _log.debug("app-only token acquired for client %s...", client_id[:6])
    return res["access_token"]

def msal_acquire_token_device_flow(client_id: str, authority: str, scopes, *, prompt=None) -> str:
    try:
        app = msal.PublicClientApplication(client_id=client_id, authority=authority)
        flow = app.initiate_device_flow(scopes=list(scopes))
        if "user_code" not in flow:
            raise _map_msal_error(flow.get("error_description") or flow.get("error") or "Device flow not started")
        (prompt or print)(flow["message"])
        res = app.acquire_token_by_device_flow(flow)
    except requests.exceptions.RequestException as ex:
        raise NetworkError(str(ex)) from ex
    except ValueError as ex:
        raise InvalidTenantId(str(ex)) from ex

    if "access_token" not in res:
        raise _map_msal_error(res.get("error_description") or res.get("error") or "Unknown error")

    _log.debug("delegated token acquired via device flow")
    return res["access_token"]
