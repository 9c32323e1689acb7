from __future__ import annotations

import pytest
import requests

from tenantadmin.core import auth_helpers
from tenantadmin.core.auth import (
    AuthError, ConsentRequired, DeviceFlowFailed, InvalidClientId, InvalidClientSecret,
    InvalidTenantId, NetworkError, connect,
)


class _Confidential:
    result: dict = {"access_token": "app-token"}
    raises: Exception | None = None

    def __init__(self, client_id, client_credential, authority):
        self.client_id = client_id
        self.authority = authority

    def acquire_token_for_client(self, scopes):
        if self.raises:
            raise self.raises
        return self.result


class _Public:
    flow: dict = {"user_code": "ABC", "message": "Go to https://microsoft.com/devicelogin and enter ABC"}
    result: dict = {"access_token": "user-token"}

    def __init__(self, client_id, authority):
        self.client_id = client_id

    def initiate_device_flow(self, scopes):
        self.scopes = scopes
        return self.flow

    def acquire_token_by_device_flow(self, flow):
        return self.result


@pytest.fixture
def fake_msal(monkeypatch):
    monkeypatch.setattr(auth_helpers.msal, "ConfidentialClientApplication", _Confidential)
    monkeypatch.setattr(auth_helpers.msal, "PublicClientApplication", _Public)
    _Confidential.result = {"access_token": "app-token"}
    _Confidential.raises = None
    _Public.flow = {"user_code": "ABC", "message": "enter ABC"}
    _Public.result = {"access_token": "user-token"}


def test_connect_requires_ids():
    with pytest.raises(InvalidTenantId):
        connect({"client_id": "c"})
    with pytest.raises(InvalidClientId):
        connect({"tenant_id": "t"})


def test_connect_app_only_with_secret(fake_msal):
    s = connect({"tenant_id": "contoso.onmicrosoft.com", "client_id": "cid", "client_secret": "s3cret"})
    assert s.token == "app-token"
    assert s.mode == "app-only"


def test_connect_device_flow_without_secret(fake_msal):
    shown = []
    s = connect({"tenant_id": "t", "client_id": "cid"}, prompt=shown.append)
    assert s.token == "user-token"
    assert s.mode == "delegated"
    assert shown == ["enter ABC"]


@pytest.mark.parametrize("desc, err", [
    ("AADSTS7000215: Invalid client secret provided.", InvalidClientSecret),
    ("AADSTS700016: Application not found", InvalidClientId),
    ("AADSTS90002: Tenant not found", InvalidTenantId),
    ("AADSTS65001: consent_required", ConsentRequired),
    ("something else", AuthError),
])
def test_msal_errors_are_mapped(fake_msal, desc, err):
    _Confidential.result = {"error": "invalid_client", "error_description": desc}
    with pytest.raises(err):
        connect({"tenant_id": "t", "client_id": "c", "client_secret": "s"})


def test_network_failure_maps_to_network_error(fake_msal):
    _Confidential.raises = requests.exceptions.ConnectionError("offline")
    with pytest.raises(NetworkError):
        connect({"tenant_id": "t", "client_id": "c", "client_secret": "s"})


def test_device_flow_declined(fake_msal):
    _Public.result = {"error": "authorization_declined", "error_description": "authorization_declined"}
    with pytest.raises(DeviceFlowFailed) as exc:
        connect({"tenant_id": "t", "client_id": "c"}, prompt=lambda m: None)
    assert exc.value.code == "device_flow_failed"


def test_device_flow_not_started(fake_msal):
    _Public.flow = {"error": "invalid_client", "error_description": "AADSTS700016: nope"}
    with pytest.raises(InvalidClientId):
        connect({"tenant_id": "t", "client_id": "c"}, prompt=lambda m: None)
