"""Main entry point for the daily orders report bot."""

import json
import logging
import sys
import time
import traceback
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from .config import settings
from .fetcher import OrderFetchError, OrdersFetcher
from .notifiers.base import NotificationError, Notifier
from .notifiers.email import EmailNotifier
from .orders import FilterConfig, RowRecord, filter_and_flatten
from .report import OrdersReportWriter, report_filename
from .window import TimeWindow, previous_day_window, window_for_date

console = Console()


# Configure logging
def setup_logging(level: str) -> None:
    """Set up logging with Rich handler or JSON lines."""
    log_level = getattr(logging, level.upper())
    if settings.log_json:

        class JsonFormatter(logging.Formatter):
            converter = time.gmtime

            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
                    "message": record.getMessage(),
                    "name": record.name,
                }
                return json.dumps(payload)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=log_level, handlers=[handler], force=True)
    else:
        logging.basicConfig(
            level=log_level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True)],
            force=True,
        )

    # urllib3 logs full request URLs at DEBUG; keep them out of normal runs.
    if log_level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    """Outcome of one report run."""

    window: TimeWindow
    orders_fetched: int
    rows: List[RowRecord]
    report_path: Optional[Path] = None
    sent: bool = False

    @property
    def order_count(self) -> int:
        return len({row.order_number for row in self.rows})


def create_notifier() -> EmailNotifier:
    """Create the configured email notifier.

    Raises:
        ValueError: If email delivery is not configured
    """
    recipients = settings.get_email_recipients()
    if not recipients or not settings.sender_address:
        raise ValueError(
            "Email notifier misconfigured; set EMAIL_USER (or EMAIL_FROM_ADDRESS) "
            "and RECEIVER_EMAILS"
        )

    return EmailNotifier(
        host=settings.smtp_host,
        port=int(settings.smtp_port),
        from_address=settings.sender_address,
        to_addresses=recipients,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        use_ssl=settings.smtp_use_ssl,
        subject_prefix=settings.email_subject_prefix,
    )


def build_filter_config() -> FilterConfig:
    return FilterConfig.from_cities(
        settings.get_city_filters(),
        unfulfilled_only=settings.unfulfilled_only,
        include_aliases=settings.include_default_city_aliases,
    )


def _city_label() -> str:
    cities = settings.get_city_filters()
    return "/".join(cities) if cities else "All Cities"


def _report_text(result: ReportResult, label: str) -> str:
    variant = "unfulfilled" if settings.unfulfilled_only else "all"
    return (
        f"Attached: Excel report for {variant} {_city_label()} orders "
        f"created {label}.\n\n"
        f"Orders: {result.order_count}\n"
        f"Line items: {len(result.rows)}\n"
    )


def run_report(
    window: TimeWindow,
    dry_run: bool = False,
    fetcher: Optional[OrdersFetcher] = None,
    notifier: Optional[Notifier] = None,
    writer: Optional[OrdersReportWriter] = None,
) -> ReportResult:
    """Fetch, filter, render and (unless ``dry_run``) email one report.

    Fetch and notification errors propagate; nothing is written or sent
    unless the whole window was fetched.
    """
    fetcher = fetcher or OrdersFetcher.from_settings(settings)
    writer = writer or OrdersReportWriter()
    config = build_filter_config()

    orders = fetcher.fetch_all(window, unfulfilled_hint=settings.unfulfilled_only)
    rows = filter_and_flatten(orders, config)
    result = ReportResult(window=window, orders_fetched=len(orders), rows=rows)

    if not rows:
        logger.info("No matching orders found for the specified cities and window.")
        return result

    label = window.label(settings.report_timezone)
    cities = settings.get_city_filters()
    filename = report_filename(
        settings.report_variant, cities[0] if cities else "all", label
    )
    result.report_path = writer.render(rows, Path(settings.output_dir) / filename)

    if dry_run:
        logger.info(f"Dry run: report left at {result.report_path}, email skipped")
        return result

    notifier = notifier or create_notifier()
    variant = "Unfulfilled" if settings.unfulfilled_only else "All"
    notifier.send(
        _report_text(result, label),
        subject=f"{variant} {_city_label()} Orders Report - {label}",
        attachments=[result.report_path],
    )
    result.sent = True
    return result


@click.command()
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Build the report but don't email it",
)
@click.option(
    "--date",
    "report_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Local date to report on (defaults to yesterday)",
)
@click.option(
    "--variant",
    type=click.Choice(["unfulfilled", "all"]),
    default=None,
    help="Report only unfulfilled orders, or every order",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for the generated XLSX file",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Set logging level (defaults to LOG_LEVEL)",
)
def main(
    dry_run: bool,
    report_date: Optional[datetime],
    variant: Optional[str],
    output_dir: Optional[str],
    log_level: Optional[str],
) -> None:
    """Email yesterday's city-filtered Shopify orders as an Excel report."""
    # Override config with CLI options
    if dry_run:
        settings.dry_run = True
    if variant:
        settings.report_variant = variant
    if output_dir:
        settings.output_dir = output_dir
    if log_level:
        settings.log_level = log_level

    setup_logging(settings.log_level)

    try:
        settings.validate_required()
    except ValueError as e:
        logger.error(str(e))
        console.print(f"[red]❌ Configuration error:[/red] {e}")
        sys.exit(1)

    if report_date:
        window = window_for_date(report_date.date(), settings.report_timezone)
    else:
        window = previous_day_window(settings.report_timezone)

    logger.info(
        f"Starting orders report for {window.label(settings.report_timezone)} "
        f"({settings.report_timezone} window)"
    )

    try:
        result = run_report(window, dry_run=settings.dry_run)

    except OrderFetchError as e:
        logger.error(f"Failed to fetch orders: {e}")
        console.print(f"[red]❌ Fetch failed:[/red] {e}")
        sys.exit(1)
    except NotificationError as e:
        logger.error(f"Failed to send notification: {e}")
        console.print(f"[red]❌ Notification failed:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        traceback.print_exc()
        console.print(f"[red]❌ Critical error:[/red] {e}")
        sys.exit(1)

    if result.sent:
        logger.info("✅ Report emailed successfully")
    elif result.report_path:
        console.print(f"\n[yellow]DRY RUN - report written to {result.report_path}[/yellow]")
    logger.info("✅ Done.")


if __name__ == "__main__":
    main()
