"""
Admin CLI for managing rule content, rule catalog entries and rule toggles.

Usage:
    python -m src.cli.admin_cli load-content --content-file <path>
    python -m src.cli.admin_cli create-rule --module <module> [options]
    python -m src.cli.admin_cli delete-rule --module <module>
    python -m src.cli.admin_cli create-error-key --module <module> --error-key <key> [options]
    python -m src.cli.admin_cli delete-error-key --module <module> --error-key <key>
    python -m src.cli.admin_cli show-rule --module <module> --error-key <key>
    python -m src.cli.admin_cli toggle-rule --cluster <id> --rule <module> --user <id> --state enable|disable
    python -m src.cli.admin_cli list-disabled --cluster <id> --user <id>
"""

import argparse
import os
import sys
from datetime import datetime

from src.content.loader import ContentDirectoryLoader
from src.core.models import Rule, RuleErrorKey, RuleToggle
from src.observability.logger import get_logger
from src.observability.metrics import start_metrics_server
from src.storage.connection import DatabaseConnectionPool
from src.storage.errors import classify_error
from src.storage.reconcile import ContentReconciler
from src.storage.rules import RuleCatalog
from src.storage.toggles import ToggleStore

logger = get_logger(__name__)


def format_timestamp(ts: datetime | None) -> str:
    """Format timestamp for display."""
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else "N/A"


def create_pool(args) -> DatabaseConnectionPool:
    """Open a connection pool from the global database options."""
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
        min_size=1,
        max_size=2,
    )
    pool.open()
    return pool


def load_content_command(args, pool: DatabaseConnectionPool) -> None:
    """Reconcile the stored rule content with a content snapshot."""
    directory = ContentDirectoryLoader(args.content_file).load()
    count = ContentReconciler(pool).load_rule_content(directory)
    print(f"Loaded {len(directory.rules)} rule(s) with {count} error key(s)")


def create_rule_command(args, pool: DatabaseConnectionPool) -> None:
    rule = Rule(
        module=args.module,
        name=args.name,
        summary=args.summary,
        reason=args.reason,
        resolution=args.resolution,
        more_info=args.more_info,
    )
    RuleCatalog(pool).create_rule(rule)
    print(f"Rule {rule.module} created")


def delete_rule_command(args, pool: DatabaseConnectionPool) -> None:
    RuleCatalog(pool).delete_rule(args.module)
    print(f"Rule {args.module} deleted")


def create_error_key_command(args, pool: DatabaseConnectionPool) -> None:
    error_key = RuleErrorKey(
        error_key=args.error_key,
        rule_module=args.module,
        condition=args.condition,
        description=args.description,
        impact=args.impact,
        likelihood=args.likelihood,
        publish_date=datetime.fromisoformat(args.publish_date),
        active=not args.inactive,
        generic=args.generic,
        tags=args.tags.split(",") if args.tags else [],
    )
    RuleCatalog(pool).create_rule_error_key(error_key)
    print(f"Error key {args.module}/{args.error_key} created")


def delete_error_key_command(args, pool: DatabaseConnectionPool) -> None:
    RuleCatalog(pool).delete_rule_error_key(args.module, args.error_key)
    print(f"Error key {args.module}/{args.error_key} deleted")


def show_rule_command(args, pool: DatabaseConnectionPool) -> None:
    """Display a rule merged with one of its error keys."""
    rule = RuleCatalog(pool).get_rule_with_content(args.module, args.error_key)

    print(f"\n{'=' * 60}")
    print(f"RULE: {rule.module} / {rule.error_key}")
    print(f"{'=' * 60}\n")
    print(f"  Name:         {rule.name}")
    print(f"  Description:  {rule.description}")
    print(f"  Total risk:   {rule.total_risk}")
    print(f"  Active:       {rule.active}")
    print(f"  Published:    {format_timestamp(rule.publish_date)}")
    print(f"  Tags:         {', '.join(rule.tags) or '-'}")
    print()


def toggle_rule_command(args, pool: DatabaseConnectionPool) -> None:
    state = RuleToggle.DISABLE if args.state == "disable" else RuleToggle.ENABLE
    ToggleStore(pool).toggle_rule_for_cluster(args.cluster, args.rule, args.user, state)
    print(f"Rule {args.rule} {args.state}d for cluster {args.cluster}")


def list_disabled_command(args, pool: DatabaseConnectionPool) -> None:
    """List the rules a user disabled for a cluster."""
    toggles = ToggleStore(pool).list_disabled_rules_for_cluster(args.cluster, args.user)

    if not toggles:
        print(f"\nNo disabled rules for cluster {args.cluster}")
        return

    print(f"\n{'Rule':<60} {'Disabled at'}")
    print(f"{'-' * 80}")
    for toggle in toggles:
        print(f"{toggle.rule_id:<60} {format_timestamp(toggle.disabled_at)}")
    print()


COMMANDS = {
    "load-content": load_content_command,
    "create-rule": create_rule_command,
    "delete-rule": delete_rule_command,
    "create-error-key": create_error_key_command,
    "delete-error-key": delete_error_key_command,
    "show-rule": show_rule_command,
    "toggle-rule": toggle_rule_command,
    "list-disabled": list_disabled_command,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Admin CLI for rule content storage",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global database connection options
    parser.add_argument(
        "--db-host",
        default=os.getenv("DB_HOST", "localhost"),
        help="Database host (default: $DB_HOST or localhost)"
    )
    parser.add_argument(
        "--db-port",
        type=int,
        default=int(os.getenv("DB_PORT", "5432")),
        help="Database port (default: $DB_PORT or 5432)"
    )
    parser.add_argument(
        "--db-name",
        default=os.getenv("DB_NAME", "aggregator"),
        help="Database name (default: $DB_NAME or aggregator)"
    )
    parser.add_argument(
        "--db-user",
        default=os.getenv("DB_USER", "aggregator"),
        help="Database user (default: $DB_USER or aggregator)"
    )
    parser.add_argument(
        "--db-password",
        default=os.getenv("DB_PASSWORD"),
        help="Database password (default: $DB_PASSWORD)"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve Prometheus metrics on this port while the command runs"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    load_parser = subparsers.add_parser(
        "load-content",
        help="Replace stored rule content with a YAML content snapshot"
    )
    load_parser.add_argument("--content-file", required=True, help="Path to YAML content snapshot")

    create_rule_parser = subparsers.add_parser("create-rule", help="Create or update a rule")
    create_rule_parser.add_argument("--module", required=True, help="Rule module")
    create_rule_parser.add_argument("--name", default="", help="Rule name")
    create_rule_parser.add_argument("--summary", default="", help="Summary text")
    create_rule_parser.add_argument("--reason", default="", help="Reason text")
    create_rule_parser.add_argument("--resolution", default="", help="Resolution text")
    create_rule_parser.add_argument("--more-info", default="", help="More info text")

    delete_rule_parser = subparsers.add_parser("delete-rule", help="Delete a rule")
    delete_rule_parser.add_argument("--module", required=True, help="Rule module")

    create_key_parser = subparsers.add_parser(
        "create-error-key", help="Create or update a rule error key"
    )
    create_key_parser.add_argument("--module", required=True, help="Rule module")
    create_key_parser.add_argument("--error-key", required=True, help="Error key")
    create_key_parser.add_argument("--condition", default="", help="Condition text")
    create_key_parser.add_argument("--description", default="", help="Description text")
    create_key_parser.add_argument("--impact", type=int, default=1, help="Impact level (default: 1)")
    create_key_parser.add_argument("--likelihood", type=int, default=1, help="Likelihood (default: 1)")
    create_key_parser.add_argument(
        "--publish-date",
        default=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        help="Publish date, ISO format (default: now)"
    )
    create_key_parser.add_argument("--inactive", action="store_true", help="Store as inactive")
    create_key_parser.add_argument("--generic", default="", help="Generic remediation text")
    create_key_parser.add_argument("--tags", default="", help="Comma-separated tags")

    delete_key_parser = subparsers.add_parser("delete-error-key", help="Delete a rule error key")
    delete_key_parser.add_argument("--module", required=True, help="Rule module")
    delete_key_parser.add_argument("--error-key", required=True, help="Error key")

    show_parser = subparsers.add_parser("show-rule", help="Show a rule with one error key")
    show_parser.add_argument("--module", required=True, help="Rule module")
    show_parser.add_argument("--error-key", required=True, help="Error key")

    toggle_parser = subparsers.add_parser("toggle-rule", help="Enable or disable a rule for a cluster")
    toggle_parser.add_argument("--cluster", required=True, help="Cluster name")
    toggle_parser.add_argument("--rule", required=True, help="Rule module")
    toggle_parser.add_argument("--user", required=True, help="User ID")
    toggle_parser.add_argument("--state", required=True, choices=["enable", "disable"])

    list_parser = subparsers.add_parser("list-disabled", help="List rules disabled for a cluster")
    list_parser.add_argument("--cluster", required=True, help="Cluster name")
    list_parser.add_argument("--user", required=True, help="User ID")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for admin CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.metrics_port is not None:
        start_metrics_server(args.metrics_port)

    pool = None
    try:
        pool = create_pool(args)
        COMMANDS[args.command](args, pool)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)

    except Exception as e:
        logger.error(
            f"Command {args.command} failed: {e}",
            extra={"command": args.command, "error_kind": classify_error(e).value},
            exc_info=True,
        )
        print(f"\nError: {e}")
        sys.exit(1)

    finally:
        if pool is not None:
            pool.close()


if __name__ == "__main__":
    main()
