# src/tenantadmin/cli/main.py
from __future__ import annotations
import argparse
import logging
import pathlib
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from tenantadmin import __version__
from tenantadmin.config.loader import (
    get_licensing_config, get_logging_config, get_registration_config
)
from tenantadmin.core.auth import AuthError, connect
from tenantadmin.core.cache import write_json_atomic
from tenantadmin.core.errors import PlatformNotSupported
from tenantadmin.core.logging_setup import configure_logging
from tenantadmin.http.errors import HttpError
from tenantadmin.licensing.catalog import CatalogError, load_catalog
from tenantadmin.licensing.export import default_export_path, write_matrix_csv
from tenantadmin.licensing.matrix import NoMatch, Orientation, build_matrix
from tenantadmin.ui.presenters import render

_log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1

console = Console()
err_console = Console(stderr=True)


# ---------- licensing ----------
def _cmd_matrix(args, orientation: Orientation) -> int:
    cfg = get_licensing_config()
    source = args.source or cfg["catalog_url"]
    records = load_catalog(source, names=args.names or cfg["names"])

    try:
        matrix = build_matrix(records, args.term, orientation, regex=args.regex)
    except NoMatch as ex:
        console.print(f"[yellow]{escape(str(ex))}. Nothing to show.[/yellow]")
        return EXIT_OK

    if not args.no_display:
        console.print(render.render_matrix(matrix))

    if args.export or args.output:
        out = pathlib.Path(args.output) if args.output else default_export_path(matrix, cfg["export_dir"])
        write_matrix_csv(matrix, out)
        console.print(f"Exported to {out}", markup=False)
    return EXIT_OK


def cmd_licenses(args) -> int:
    return _cmd_matrix(args, Orientation.LICENSE_ROWS)


def cmd_services(args) -> int:
    return _cmd_matrix(args, Orientation.SERVICE_ROWS)


# ---------- local machine ----------
def cmd_sysinfo(args) -> int:
    from tenantadmin.system.diagnostics import collect_system_report

    report = collect_system_report()
    for line in render.render_system_report(report):
        console.print(line, markup=False, highlight=False)
    if args.json:
        write_json_atomic(pathlib.Path(args.json), report.as_dict())
        console.print(f"Saved to {args.json}", markup=False)
    return EXIT_OK


def cmd_apps(args) -> int:
    from tenantadmin.apps.installed import list_installed_apps, write_apps_csv

    apps = list_installed_apps(
        args.filter, include_system=args.include_system, include_store=args.store
    )
    if not apps:
        console.print("[yellow]No installed applications matched.[/yellow]")
        return EXIT_OK
    console.print(render.render_apps(apps))
    if args.csv:
        out = write_apps_csv(apps, args.csv)
        console.print(f"Exported to {out}", markup=False)
    return EXIT_OK


def cmd_installer(args) -> int:
    from tenantadmin.apps.installer_meta import read_installer_metadata

    meta = read_installer_metadata(args.path)
    for line in render.render_installer(meta):
        console.print(line, markup=False, highlight=False)
    return EXIT_OK


# ---------- directory ----------
def cmd_register_app(args) -> int:
    from tenantadmin.core.graph_client import GraphClient
    from tenantadmin.directory.app_registration import (
        DuplicateApplication, register_application, save_credential
    )

    reg_cfg = get_registration_config()
    session = connect(
        {
            "tenant_id": args.tenant_id,
            "client_id": args.client_id or reg_cfg["public_client_id"],
            "client_secret": args.client_secret or "",
        },
        prompt=lambda msg: console.print(f"[cyan]{escape(msg)}[/cyan]"),
    )
    graph = GraphClient(lambda: session.token, logger=logging.getLogger("tenantadmin.http"))

    try:
        app = register_application(
            graph,
            session.tenant_id,
            args.name,
            secret_lifetime_days=(
                args.secret_days if args.secret_days is not None else reg_cfg["secret_lifetime_days"]
            ),
            sign_in_audience=reg_cfg["sign_in_audience"],
            create_service_principal=not args.no_service_principal,
            allow_duplicate=args.allow_duplicate,
        )
    except DuplicateApplication as ex:
        err_console.print(f"[red]{escape(str(ex))}[/red] (use --allow-duplicate to create another)")
        return EXIT_FAILED

    path = save_credential(app, pathlib.Path(args.save_to) if args.save_to else None)
    for line in render.render_lines_from_dict(app.public_view(), list(app.public_view())):
        console.print(line, markup=False, highlight=False)
    console.print(f"[green]Client secret stored in {escape(str(path))}[/green]")
    return EXIT_OK


# ---------- wiring ----------
def _add_matrix_args(p: argparse.ArgumentParser, what: str) -> None:
    p.add_argument("term", help=f"text to search for in {what} names (case-insensitive)")
    p.add_argument("--regex", action="store_true", help="treat TERM as a regular expression")
    p.add_argument("--source", help="catalog CSV path or URL (default: Microsoft's published table)")
    p.add_argument("--names", choices=["friendly", "technical"], help="display names or String_Id/Service_Plan_Name")
    p.add_argument("--export", action="store_true", help="write the 0/1 matrix to the export directory")
    p.add_argument("-o", "--output", help="write the 0/1 matrix to this CSV file")
    p.add_argument("--no-display", action="store_true", help="skip the console table")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tenantadmin",
        description="Microsoft 365 license comparison and Windows admin utilities.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--log-file", help="also write logs to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("licenses", help="licenses that include services matching TERM")
    _add_matrix_args(p, "service plan")
    p.set_defaults(func=cmd_licenses)

    p = sub.add_parser("services", help="services included in licenses matching TERM")
    _add_matrix_args(p, "license")
    p.set_defaults(func=cmd_services)

    p = sub.add_parser("sysinfo", help="local OS, CPU, memory, disk and session diagnostics")
    p.add_argument("--json", help="also save the report as JSON")
    p.set_defaults(func=cmd_sysinfo)

    p = sub.add_parser("apps", help="installed applications")
    p.add_argument("filter", nargs="?", help="only names containing this text")
    p.add_argument("--include-system", action="store_true", help="include SystemComponent entries")
    p.add_argument("--store", action="store_true", help="include Microsoft Store (AppX) packages")
    p.add_argument("--csv", help="export the list to CSV")
    p.set_defaults(func=cmd_apps)

    p = sub.add_parser("installer", help="metadata of an .msi or .exe installer")
    p.add_argument("path")
    p.set_defaults(func=cmd_installer)

    p = sub.add_parser("register-app", help="register an Entra ID application and store its secret")
    p.add_argument("--tenant-id", required=True)
    p.add_argument("--name", required=True, help="application display name")
    p.add_argument("--client-id", help="client used to sign in (default: Graph CLI public client)")
    p.add_argument("--client-secret", help="sign in app-only with this secret instead of device code")
    p.add_argument("--secret-days", type=int, help="client secret lifetime in days")
    p.add_argument("--no-service-principal", action="store_true")
    p.add_argument("--allow-duplicate", action="store_true")
    p.add_argument("--save-to", help="credential file path (default: per-user app data)")
    p.set_defaults(func=cmd_register_app)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log_cfg = get_logging_config()
    configure_logging("DEBUG" if args.verbose else log_cfg["level"], args.log_file or log_cfg["file"])

    try:
        return args.func(args)
    except AuthError as ex:
        err_console.print(f"[red]Authentication failed:[/red] {escape(str(ex))} ({ex.hint})")
    except HttpError as ex:
        _log.debug("response body: %s", ex.body_snippet)
        err_console.print(f"[red]Request failed:[/red] {escape(str(ex))}")
    except CatalogError as ex:
        err_console.print(f"[red]Invalid license catalog:[/red] {escape(str(ex))}")
    except PlatformNotSupported as ex:
        err_console.print(f"[red]Not supported here:[/red] {escape(str(ex))}")
    except (FileNotFoundError, ValueError) as ex:
        err_console.print(f"[red]{escape(str(ex))}[/red]")
    except OSError as ex:
        err_console.print(f"[red]I/O error:[/red] {escape(str(ex))}")
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
