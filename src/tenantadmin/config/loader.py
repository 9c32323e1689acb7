import json, os, pathlib, tempfile

SETTINGS_ENV = "TENANTADMIN_SETTINGS"

CATALOG_URL = (
    "https://download.microsoft.com/download/e/3/e/e3e9faf2-f28b-490a-9ada-c6089a1fc5b0/"
    "Product%20names%20and%20service%20plan%20identifiers%20for%20licensing.csv"
)
# Microsoft Graph Command Line Tools (first-party public client)
GRAPH_CLI_CLIENT_ID = "14d82eec-204b-4c2f-b7e8-296a70dab67e"

def _settings_path() -> pathlib.Path:
    return pathlib.Path(os.environ.get(SETTINGS_ENV) or "config/appsettings.json")

def load_appsettings() -> dict:
    p = _settings_path()
    if not p.exists():
        return {}
    try:
        text = p.read_text(encoding="utf-8").strip()
        if not text:
            return {}
        data = json.loads(text)
        return data if isinstance(data, dict) else {}
    except (OSError, ValueError):
        # malformed JSON → fall back to defaults
        return {}

def get_http_config():
    cfg = load_appsettings().get("http", {})
    return {
        "timeout_seconds": int(cfg.get("timeout_seconds", 30)),
        "max_retries": int(cfg.get("max_retries", 4)),
    }

def get_licensing_config():
    cfg = load_appsettings().get("licensing", {})
    names = str(cfg.get("names", "friendly")).lower()
    return {
        "catalog_url": cfg.get("catalog_url") or CATALOG_URL,
        "export_dir": pathlib.Path(cfg.get("export_dir") or tempfile.gettempdir()),
        "names": names if names in ("friendly", "technical") else "friendly",
    }

def get_logging_config():
    cfg = load_appsettings().get("logging", {})
    return {
        "level": str(cfg.get("level", "WARNING")).upper(),
        "file": cfg.get("file") or None,
    }

def get_registration_config():
    cfg = load_appsettings().get("registration", {})
    return {
        "public_client_id": cfg.get("public_client_id") or GRAPH_CLI_CLIENT_ID,
        "secret_lifetime_days": int(cfg.get("secret_lifetime_days", 180)),
        "sign_in_audience": cfg.get("sign_in_audience", "AzureADMyOrg"),
    }
