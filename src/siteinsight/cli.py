from __future__ import annotations

import argparse
import asyncio
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.table import Table

from siteinsight.app.service import AnalyzerService
from siteinsight.config import get_settings
from siteinsight.history import score_band
from siteinsight.log import configure_logging
from siteinsight.pipeline import OutcomeStatus, ProgressSnapshot
from siteinsight.report.export import write_export
from siteinsight.report.models import AnalysisReport

console = Console()

BAND_STYLES = {"good": "green", "fair": "yellow", "poor": "red"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score a website's quality from the command line")
    parser.add_argument("--user", default="cli", help="History owner id")
    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="Run a full analysis of one URL")
    analyze.add_argument("url", help="Website to analyze")
    analyze.add_argument(
        "--export",
        nargs="?",
        const="",
        metavar="DIR",
        help="Also write the JSON export (into DIR, or the configured export directory)",
    )

    history = commands.add_parser("history", help="Show recent analyses")
    history.add_argument("--limit", type=int, default=None, help="Number of entries to show")
    return parser


def _styled(score: int) -> str:
    style = BAND_STYLES[score_band(score)]
    return f"[{style}]{score}[/{style}]"


def _print_report(report: AnalysisReport) -> None:
    console.print(f"[bold green]Analysis of[/bold green] {report.url}")
    for category, score in report.scores().items():
        console.print(f"  [cyan]{category.value:<14}[/cyan] {_styled(score)}")
        for recommendation in getattr(report, category.value).recommendations[:3]:
            console.print(f"      - {recommendation}")
    console.print(f"  [bold]{'overall':<14}[/bold] {_styled(report.overall_score)}")


async def _progress(snapshot: ProgressSnapshot) -> None:
    if snapshot.step:
        console.print(f"[dim]{snapshot.progress:>3}%[/dim] {snapshot.step}")


async def _analyze(service: AnalyzerService, user: str, url: str, export: str | None) -> int:
    outcome = await service.analyze(user, url, _progress)
    if not outcome.ok:
        console.print(f"[bold red]{outcome.message}[/bold red]")
        if outcome.status is OutcomeStatus.FAILED and outcome.error is not None:
            console.print(f"[dim]{outcome.error}[/dim]")
        return 1
    _print_report(outcome.report)
    if export is not None:
        directory = Path(export) if export else service.settings.ensure_export_dir()
        path = write_export(outcome.report, directory)
        console.print(f"Report exported to {path}")
    return 0


async def _history(service: AnalyzerService, user: str, limit: int | None) -> int:
    summary = await service.history(user, limit)
    if not summary.entries:
        console.print("No analyses yet. Start by analyzing your first website!")
        return 0
    table = Table(title="Recent Analyses")
    table.add_column("Site")
    table.add_column("Date")
    table.add_column("Overall", justify="right")
    for entry in summary.entries:
        date = datetime.fromtimestamp(entry.timestamp / 1000).strftime("%Y-%m-%d")
        table.add_row(entry.host, date, _styled(entry.overall))
    console.print(table)
    stats = summary.stats
    best = stats.best_category.value if stats.best_category else "N/A"
    console.print(f"Total analyses: {stats.count}  Average score: {stats.average}  Best category: {best}")
    return 0


async def _async_main(args: argparse.Namespace) -> int:
    settings = get_settings()
    configure_logging(settings)
    service = AnalyzerService(settings)
    try:
        if args.command == "analyze":
            return await _analyze(service, args.user, args.url, args.export)
        return await _history(service, args.user, args.limit)
    finally:
        await service.shutdown()


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    raise SystemExit(asyncio.run(_async_main(args)))


if __name__ == "__main__":
    main()
