"""CLI entrypoint for clientdesk."""

import argparse
import json
import locale
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from clientdesk.api.backend import ApiBackend, LocalBackend
from clientdesk.api.errors import ClientDeskError
from clientdesk.api.export import export_clients, export_projects
from clientdesk.api.projection import ASC, DESC, SortState
from clientdesk.api.summary_api import get_summary
from clientdesk.config.loader import (
    DEFAULT_CONFIG_PATH,
    get_email_config,
    get_export_delimiter,
    get_page_size,
    get_sqlite_path,
    resolve_config,
    write_default_config,
)
from clientdesk.controllers import ClientsController, ProjectsController
from clientdesk.database.migrate import ensure_client_contact_columns, ensure_project_budget_column
from clientdesk.database.sqlite_client import get_engine, session_context
from clientdesk.notify.email import build_notifier, init_transport
from clientdesk.retrieval.http_backend import HttpBackend
from clientdesk.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@contextmanager
def _backend(config: Dict[str, Any]) -> Generator[ApiBackend, None, None]:
    """Remote API when ``api.base_url`` is set, otherwise the local database."""
    api_config = config.get("api", {})
    if api_config.get("base_url"):
        yield HttpBackend(api_config["base_url"], timeout=api_config.get("timeout_seconds", 20))
        return
    with session_context(get_sqlite_path(config)) as session:
        yield LocalBackend(session)


def _sort_from_args(args: argparse.Namespace, default_key: str) -> SortState:
    return SortState(getattr(args, "sort", None) or default_key, DESC if getattr(args, "desc", False) else ASC)


def _load_or_report(controller) -> bool:
    controller.load()
    if controller.error:
        print(f"Error: {controller.error}")
        return False
    return True


def cmd_init(args: argparse.Namespace) -> None:
    """Create the config file (if missing) and the database schema."""
    config_path = getattr(args, "config", None) or DEFAULT_CONFIG_PATH
    if config_path.exists() and not args.force:
        print(f"Config already exists: {config_path} (use --force to overwrite)")
    else:
        write_default_config(config_path)
        print(f"Created {config_path}")

    config = resolve_config(config_path)
    sqlite_path = get_sqlite_path(config)
    get_engine(sqlite_path)
    ensure_client_contact_columns(sqlite_path)
    ensure_project_budget_column(sqlite_path)
    print(f"Database ready: {sqlite_path}")


def cmd_clients_list(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    with _backend(config) as backend:
        controller = ClientsController(backend, page_size=args.page_size or get_page_size(config))
        if not _load_or_report(controller):
            return
        controller.set_query(args.query or "")
        controller.set_filter(args.city)
        controller.sort = _sort_from_args(args, "name")
        controller.set_page(args.page)
        print(controller.render_text(dense=args.dense))


def cmd_clients_add(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    notifier = None
    if args.notify:
        notifier, init = build_notifier(get_email_config(config))
        if notifier is None:
            print(f"Warning: welcome email disabled ({init.reason})")

    with _backend(config) as backend:
        controller = ClientsController(backend, notifier=notifier)
        record = controller.create(
            {
                "name": args.name,
                "email": args.email,
                "company": args.company,
                "city": args.city,
                "phone": args.phone,
                "address": args.address,
            }
        )
        if record is None:
            print(f"Error: {controller.form_error}")
            sys.exit(1)
        print(f"Created client {record['id']} ({record['name']})")
        if controller.last_notification is not None:
            result = controller.last_notification
            if result.success:
                print(f"Welcome email sent: {result.message_id}")
            else:
                print(f"Welcome email failed: {result.error}")


def cmd_clients_delete(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    with _backend(config) as backend:
        controller = ClientsController(backend)
        if not controller.delete(args.client_id):
            print(f"Error: {controller.action_error}")
            sys.exit(1)
        print(f"Deleted client {args.client_id}")


def cmd_projects_list(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    with _backend(config) as backend:
        controller = ProjectsController(backend, page_size=args.page_size or get_page_size(config))
        if not _load_or_report(controller):
            return
        controller.apply_prefilter(client_id=args.client_id, client_name=args.client_name)
        controller.set_query(args.query or "")
        controller.sort = _sort_from_args(args, "title")
        controller.set_page(args.page)
        print(controller.render_text(dense=args.dense))


def cmd_projects_add(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    with _backend(config) as backend:
        controller = ProjectsController(backend)
        record = controller.create(
            {
                "title": args.title,
                "client_id": args.client_id,
                "description": args.description,
                "status": args.status,
                "budget": args.budget,
            }
        )
        if record is None:
            print(f"Error: {controller.form_error}")
            sys.exit(1)
        print(f"Created project {record['id']} ({record['title']})")


def cmd_projects_delete(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    with _backend(config) as backend:
        controller = ProjectsController(backend)
        if not controller.delete(args.project_id):
            print(f"Error: {controller.action_error}")
            sys.exit(1)
        print(f"Deleted project {args.project_id}")


def cmd_export(args: argparse.Namespace) -> None:
    """Export the full filtered client or project list."""
    config = resolve_config(args.config)
    delimiter = args.delimiter or get_export_delimiter(config)
    out: Optional[Path] = args.out
    if out is None and args.format == "csv" and not args.stdout:
        out_dir = Path(config.get("export", {}).get("out_dir") or ".")
        out = out_dir / f"{args.export_type}.csv"

    with session_context(get_sqlite_path(config)) as session:
        if args.export_type == "clients":
            result = export_clients(
                session,
                query=args.query,
                city=getattr(args, "city", None),
                sort=_sort_from_args(args, "name"),
                format=args.format,
                out=out,
                delimiter=delimiter,
            )
        elif args.export_type == "projects":
            result = export_projects(
                session,
                query=args.query,
                client_id=getattr(args, "client_id", None),
                sort=_sort_from_args(args, "title"),
                format=args.format,
                out=out,
                delimiter=delimiter,
            )
        else:
            logger.error(f"Unknown export type: {args.export_type}")
            return
    print(result)


def cmd_summary(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    with session_context(get_sqlite_path(config)) as session:
        summary = get_summary(session)
    if args.format == "json":
        print(json.dumps(summary.model_dump(), indent=2, sort_keys=True))
        return
    print(f"Clients:          {summary.client_count}")
    print(f"Projects:         {summary.project_count}")
    print(f"Active projects:  {summary.active_project_count}")
    print(f"Total budget:     {summary.total_budget:,.2f}")
    for status, count in summary.projects_by_status.items():
        print(f"  {status:<14} {count}")


def cmd_email_check(args: argparse.Namespace) -> None:
    config = resolve_config(args.config)
    init = init_transport(get_email_config(config), verify=args.verify)
    if init.ok:
        print("Email service: OK")
    else:
        print(f"Email service: unavailable ({init.reason})")
        sys.exit(1)


def _apply_user_locale() -> None:
    """Adopt the user's locale for collation and the CSV delimiter default."""
    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error as e:
        logger.warning(f"Could not apply user locale, keeping \"C\": {e}")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _single_char(value: str) -> str:
    if len(value) != 1:
        raise argparse.ArgumentTypeError(f"must be a single character, got {value!r}")
    return value


def _add_list_arguments(parser: argparse.ArgumentParser, default_sort: str) -> None:
    parser.add_argument("--query", "-q", type=str, default="", help="Free-text search (all terms must match)")
    parser.add_argument("--sort", type=str, default=default_sort, help=f"Sort column (default: {default_sort})")
    parser.add_argument("--desc", action="store_true", help="Sort descending")
    parser.add_argument("--page", type=_positive_int, default=1, help="Page number (default: 1)")
    parser.add_argument("--page-size", type=_positive_int, default=None, help="Rows per page (default: from config)")
    parser.add_argument("--dense", action="store_true", help="Compact table output")


def _add_export_arguments(parser: argparse.ArgumentParser, default_sort: str) -> None:
    parser.add_argument("--query", "-q", type=str, default="", help="Free-text search (all terms must match)")
    parser.add_argument("--sort", type=str, default=default_sort, help=f"Sort column (default: {default_sort})")
    parser.add_argument("--desc", action="store_true", help="Sort descending")
    parser.add_argument("--format", type=str, choices=["csv", "json"], default="csv", help="Export format (default: csv)")
    parser.add_argument("--delimiter", type=_single_char, default=None, help="CSV delimiter (default: locale-dependent)")
    parser.add_argument("--out", type=Path, help="Output file path")
    parser.add_argument("--stdout", action="store_true", help="Print CSV instead of writing a file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clientdesk",
        description="Client and project management dashboard",
    )
    parser.add_argument("--config", type=Path, default=None, help="Config file (default: clientdesk.config.yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Create config file and database")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing config file")
    init_parser.set_defaults(func=cmd_init)

    # clients
    clients_parser = subparsers.add_parser("clients", help="Client commands")
    clients_subparsers = clients_parser.add_subparsers(dest="clients_command", required=True)

    clients_list_parser = clients_subparsers.add_parser("list", help="List clients")
    _add_list_arguments(clients_list_parser, "name")
    clients_list_parser.add_argument("--city", type=str, default=None, help="Exact city filter")
    clients_list_parser.set_defaults(func=cmd_clients_list)

    clients_add_parser = clients_subparsers.add_parser("add", help="Create a client")
    clients_add_parser.add_argument("--name", required=True)
    clients_add_parser.add_argument("--email", required=True)
    clients_add_parser.add_argument("--company", required=True)
    clients_add_parser.add_argument("--city")
    clients_add_parser.add_argument("--phone")
    clients_add_parser.add_argument("--address")
    clients_add_parser.add_argument("--notify", action="store_true", help="Send a welcome email")
    clients_add_parser.set_defaults(func=cmd_clients_add)

    clients_delete_parser = clients_subparsers.add_parser("delete", help="Delete a client")
    clients_delete_parser.add_argument("client_id", type=str)
    clients_delete_parser.set_defaults(func=cmd_clients_delete)

    clients_export_parser = clients_subparsers.add_parser("export", help="Export filtered clients")
    _add_export_arguments(clients_export_parser, "name")
    clients_export_parser.add_argument("--city", type=str, default=None, help="Exact city filter")
    clients_export_parser.set_defaults(func=cmd_export, export_type="clients")

    # projects
    projects_parser = subparsers.add_parser("projects", help="Project commands")
    projects_subparsers = projects_parser.add_subparsers(dest="projects_command", required=True)

    projects_list_parser = projects_subparsers.add_parser("list", help="List projects")
    _add_list_arguments(projects_list_parser, "title")
    projects_list_parser.add_argument("--client-id", type=str, default=None, help="Only projects of this client")
    projects_list_parser.add_argument("--client-name", type=str, default=None, help="Only projects of the client with this exact name")
    projects_list_parser.set_defaults(func=cmd_projects_list)

    projects_add_parser = projects_subparsers.add_parser("add", help="Create a project")
    projects_add_parser.add_argument("--title", required=True)
    projects_add_parser.add_argument("--client-id", required=True)
    projects_add_parser.add_argument("--description")
    projects_add_parser.add_argument("--status", default="ACTIVE")
    projects_add_parser.add_argument("--budget")
    projects_add_parser.set_defaults(func=cmd_projects_add)

    projects_delete_parser = projects_subparsers.add_parser("delete", help="Delete a project")
    projects_delete_parser.add_argument("project_id", type=str)
    projects_delete_parser.set_defaults(func=cmd_projects_delete)

    projects_export_parser = projects_subparsers.add_parser("export", help="Export filtered projects")
    _add_export_arguments(projects_export_parser, "title")
    projects_export_parser.add_argument("--client-id", type=str, default=None, help="Only projects of this client")
    projects_export_parser.set_defaults(func=cmd_export, export_type="projects")

    # summary
    summary_parser = subparsers.add_parser("summary", help="Dashboard KPIs")
    summary_parser.add_argument("--format", choices=["text", "json"], default="text")
    summary_parser.set_defaults(func=cmd_summary)

    # email
    email_parser = subparsers.add_parser("email", help="Email notification utilities")
    email_subparsers = email_parser.add_subparsers(dest="email_command", required=True)
    email_check_parser = email_subparsers.add_parser("check", help="Check email configuration")
    email_check_parser.add_argument("--verify", action="store_true", help="Connect and authenticate to the SMTP server")
    email_check_parser.set_defaults(func=cmd_email_check)

    return parser


def main(argv: Optional[list] = None) -> None:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    _apply_user_locale()

    try:
        args.func(args)
    except ClientDeskError as e:
        print(f"Error: {e.message}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
