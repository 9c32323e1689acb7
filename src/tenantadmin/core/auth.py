from __future__ import annotations
from dataclasses import dataclass

class AuthError(Exception):
    code = "auth_error"; hint = "Unknown error."
    def __init__(self, message: str = "", *, hint: str | None = None):
        super().__init__(message or self.__class__.__name__)
        if hint: self.hint = hint

class InvalidTenantId(AuthError):
    code = "invalid_tenant_id"; hint = "Tenant ID invalid or unreachable."
class InvalidClientId(AuthError):
    code = "invalid_client_id"; hint = "Client ID invalid."
class InvalidClientSecret(AuthError):
    code = "invalid_client_secret"; hint = "Client Secret rejected."
class NetworkError(AuthError):
    code = "network_error"; hint = "Network or timeout issue."
class ConsentRequired(AuthError):
    code = "consent_required"; hint = "Admin consent required for Graph permissions."
class DeviceFlowFailed(AuthError):
    code = "device_flow_failed"; hint = "Sign-in was declined, expired, or not completed."

@dataclass
class TenantSession:
    tenant_id: str
    client_id: str
    token: str
    mode: str  # "app-only" | "delegated"

def connect(creds: dict, *, prompt=None) -> TenantSession:
    """
    App-only token when a client secret is present, otherwise delegated
    device-code sign-in. `prompt(message)` shows the device-code instructions.
    """
    tenant_id = (creds.get("tenant_id") or "").strip()
    client_id = (creds.get("client_id") or "").strip()
    client_secret = (creds.get("client_secret") or "").strip()

    if not tenant_id: raise InvalidTenantId("Tenant ID required.")
    if not client_id: raise InvalidClientId("Client ID required.")

    # helpers do the heavy lifting
    from tenantadmin.core.auth_helpers import (
        build_authority, msal_acquire_token, msal_acquire_token_device_flow, DELEGATED_SCOPES
    )

    authority = build_authority(tenant_id)
    if client_secret:
        token = msal_acquire_token(client_id, client_secret, authority)
        mode = "app-only"
    else:
        token = msal_acquire_token_device_flow(client_id, authority, DELEGATED_SCOPES, prompt=prompt)
        mode = "delegated"

    return TenantSession(tenant_id=tenant_id, client_id=client_id, token=token, mode=mode)
