"""
CLI interface for the gear usage report.

Prints per-record usage for a single user, or per-plan usage totals
across all matching users.
"""

import logging
import sqlite3
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from gear_usage_report.core.aggregate import UNKNOWN_QUALIFIER, accumulate_usage, record_elapsed
from gear_usage_report.core.billing import BillingService
from gear_usage_report.core.exceptions import (
    EXIT_CODE_OK,
    EXIT_CODE_USAGE,
    ReportError,
    UsageError,
    UserNotFoundError,
)
from gear_usage_report.core.formatting import format_timestamp, formatted_number, pretty_duration
from gear_usage_report.core.pricing import estimate_cost
from gear_usage_report.core.summary import PlanUsageSummary, summarize_usage
from gear_usage_report.core.timewindow import TimeWindow, resolve_time_window
from gear_usage_report.core.validation import validate_gear_id, validate_plan_id
from gear_usage_report.storage.db import DEFAULT_DB_PATH
from gear_usage_report.storage.models import UsageRecord, UsageType, UserAccount
from gear_usage_report.storage.repository import get_repository

app = typer.Typer(add_completion=False)
console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("gear_usage_report")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=err_console, show_time=False, show_path=False)
        )


def _exit_with_usage(ctx: typer.Context) -> None:
    console.print(ctx.get_help(), markup=False, highlight=False)
    sys.exit(EXIT_CODE_USAGE)


# -h is handled by the command itself so help exits with the usage code
@app.command(context_settings={"help_option_names": []})
def report(
    ctx: typer.Context,
    login: Optional[str] = typer.Option(
        None,
        "--login",
        "-l",
        help="Report usage for a single user login"
    ),
    app_name: Optional[str] = typer.Option(
        None,
        "--app",
        "-a",
        help="Filter usage to one application name"
    ),
    gear: Optional[str] = typer.Option(
        None,
        "--gear",
        "-g",
        help="Filter usage to one gear id"
    ),
    plan: Optional[str] = typer.Option(
        None,
        "--plan",
        "-p",
        help="Filter users to one billing plan"
    ),
    start: Optional[str] = typer.Option(
        None,
        "--start",
        "-s",
        help="Start date YYYY-MM-DD (default: start of the current month)"
    ),
    end: Optional[str] = typer.Option(
        None,
        "--end",
        "-e",
        help="End date YYYY-MM-DD (default: now)"
    ),
    db_path: str = typer.Option(
        DEFAULT_DB_PATH,
        "--db",
        envvar="GEAR_USAGE_DB",
        help="Path to the usage record database"
    ),
    billing_config: Optional[str] = typer.Option(
        None,
        "--billing-config",
        envvar="GEAR_USAGE_BILLING_CONFIG",
        help="Path to the billing plan catalog (YAML)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log query details to stderr"
    ),
    show_help: bool = typer.Option(
        False,
        "--help",
        "-h",
        is_eager=True,
        help="Show this message and exit"
    )
):
    """
    Report gear, storage and premium cart usage over a time window.

    With --login, or when the filters match a single user, every usage
    record is listed with an estimated cost. Otherwise usage is totalled
    per billing plan.
    """
    _configure_logging(verbose)
    if show_help:
        _exit_with_usage(ctx)

    now = _utcnow()
    try:
        window = resolve_time_window(start, end, now)
        if gear:
            validate_gear_id(gear)

        try:
            billing = BillingService.from_file(billing_config)
        except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
            raise UsageError(f"Could not load billing config: {e}")
        if plan:
            validate_plan_id(plan, billing)

        _run_report(
            window=window,
            now=now,
            billing=billing,
            db_path=db_path,
            login=login,
            app_name=app_name,
            gear=gear,
            plan=plan
        )
    except UsageError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        _exit_with_usage(ctx)
    except ReportError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(e.exit_code)
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]No usage data found[/]")
            console.print(f"\nThe usage database at {escape(db_path)} has not been initialized.\n")
            sys.exit(EXIT_CODE_OK)
        raise

    sys.exit(EXIT_CODE_OK)


def _run_report(
    window: TimeWindow,
    now: datetime,
    billing: BillingService,
    db_path: str,
    login: Optional[str],
    app_name: Optional[str],
    gear: Optional[str],
    plan: Optional[str]
) -> None:
    repository = get_repository(db_path)

    accounts = {
        account.id: account
        for account in repository.iter_accounts(plan_id=plan, login=login)
    }
    if not accounts:
        if login:
            raise UserNotFoundError(login, plan)
        console.print("\n[dim]No users found.[/]")
        return

    records = list(repository.iter_usage_records(
        user_ids=accounts.keys(),
        app_name=app_name,
        gear_id=gear,
        begin_time=window.start,
        end_time=window.end
    ))
    logger.info("Reporting %d usage records for %d users", len(records), len(accounts))

    if login or len(accounts) == 1:
        account = next(iter(accounts.values()))
        _display_user_usage(account, records, window, now, billing)
        return

    accumulators = accumulate_usage(records, accounts, window, now)
    billing.apply_plan_discounts(accumulators)
    summaries = summarize_usage(accumulators, billing.get_plans())
    _display_plan_summaries(summaries, window, billing)


def _usage_label(record: UsageRecord) -> str:
    if record.usage_type == UsageType.GEAR_USAGE:
        return f"Gear usage ({record.gear_size or UNKNOWN_QUALIFIER})"
    if record.usage_type == UsageType.ADDTL_FS_GB:
        return f"Additional storage ({record.addtl_fs_gb} GB)"
    return f"Premium cart ({record.cart_name or UNKNOWN_QUALIFIER})"


def _display_user_usage(
    account: UserAccount,
    records: List[UsageRecord],
    window: TimeWindow,
    now: datetime,
    billing: BillingService
) -> None:
    """Display one line per usage record for a single user."""
    console.print(
        f"\n[bold]Usage for {escape(account.login)}[/bold] "
        f"(plan: {escape(account.plan_id or 'none')})"
    )
    console.print(f"From {format_timestamp(window.start)} to {format_timestamp(window.end)}")
    console.print("-" * 40)

    if not records:
        console.print("\n[dim]No usage records found.[/]")
        return

    total_cost: Optional[Decimal] = None
    for number, record in enumerate(records, start=1):
        elapsed = record_elapsed(record, window, now)
        fields = [
            f"#{number}",
            _usage_label(record),
            f"Gear: {record.gear_id or '-'}",
            f"App: {record.app_name or '-'}",
            f"Duration: {pretty_duration(elapsed)}",
            f"Begin: {format_timestamp(record.begin_time)}",
            f"End: {format_timestamp(record.end_time)}",
        ]

        rate = billing.get_usage_rate(account.plan_id, record.usage_type, record.qualifier)
        if rate is not None:
            quantity = (record.addtl_fs_gb or 0) if record.usage_type == UsageType.ADDTL_FS_GB else 1
            cost = estimate_cost(rate, elapsed, quantity)
            fields.append(f"Estimated cost: {formatted_number(cost)}")
            total_cost = (total_cost or Decimal(0)) + cost

        console.print(escape(" | ".join(fields)))

    if total_cost is not None:
        console.print(f"\n[bold]Total estimated cost:[/bold] {formatted_number(total_cost)}")


def _cost_suffix(costs: Dict[str, Decimal], key: str) -> str:
    if key not in costs:
        return ""
    return f" (estimated cost: {formatted_number(costs[key])})"


def _display_plan_summaries(
    summaries: List[PlanUsageSummary],
    window: TimeWindow,
    billing: BillingService
) -> None:
    """Display usage totals per plan."""
    console.print("\n[bold]Usage Summary[/bold]")
    console.print(f"From {format_timestamp(window.start)} to {format_timestamp(window.end)}")
    console.print("-" * 40)

    if not window.is_month_aligned():
        console.print(
            "\n[yellow]Note:[/] the report window does not cover whole calendar months. "
            "Plan allowances are applied per calendar month, so totals for partial "
            "months may differ from billed amounts."
        )

    for summary in summaries:
        if summary.plan_id is None:
            title = "All users"
        else:
            title = f"Plan: {escape(summary.plan_id)}"
        console.print(f"\n[bold]{title}[/bold] ({summary.user_count} users)")

        if summary.is_empty:
            console.print("  [dim]No usage recorded.[/]")
            continue

        costs = summary.estimated_costs(billing)

        gear_hours = summary.gear_hours
        if gear_hours:
            console.print("  Gear usage:")
            for gear_size in sorted(gear_hours):
                console.print(escape(
                    f"    {gear_size}: {gear_hours[gear_size]} hours"
                    f"{_cost_suffix(costs, f'gear:{gear_size}')}"
                ))

        if summary.addtl_fs_gb_seconds:
            console.print(escape(
                f"  Additional storage: {summary.addtl_fs_gb_hours} GB-hours"
                f"{_cost_suffix(costs, 'addtl_fs_gb')}"
            ))

        cart_hours = summary.cart_hours
        if cart_hours:
            console.print("  Premium carts:")
            for cart_name in sorted(cart_hours):
                console.print(escape(
                    f"    {cart_name}: {cart_hours[cart_name]} hours"
                    f"{_cost_suffix(costs, f'cart:{cart_name}')}"
                ))


if __name__ == "__main__":
    app()
