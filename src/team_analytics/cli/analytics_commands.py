"""CLI Analytics Commands for Team Analytics.

Command-line front end over a JSON export of the team document store:
- Team analytics overview with insights and recommendations
- Per-member performance breakdown
- Performance reports for a timeframe
- Headline dashboard counters
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import tabulate
from rich.console import Console
from rich.table import Table

from ..config import get_config
from ..services.analytics import AnalyticsEngine, PerformanceReport, TeamAnalytics
from ..store import JsonFileRecordStore
from ..utils.formatting import format_currency, format_percentage

TIMEFRAME_CHOICES = ['week', 'month', 'quarter', 'year']

console = Console()


def get_engine(data_file: Optional[str] = None) -> AnalyticsEngine:
    """Build an engine over the configured (or given) store export."""
    config = get_config()
    path = Path(data_file) if data_file else config.get_data_file_path()
    return AnalyticsEngine(JsonFileRecordStore(path), config=config)


def format_table(data: List[Dict], headers: Optional[List[str]] = None,
                 tablefmt: str = "simple") -> str:
    """Format data as a table"""
    if not data:
        return "No data available"

    if headers is None:
        headers = "keys"

    return tabulate.tabulate(data, headers=headers, tablefmt=tablefmt)


def _emit(output: str, export: Optional[str]):
    if export:
        Path(export).write_text(output, encoding='utf-8')
        click.echo(f"Analytics exported to {export}")
    else:
        click.echo(output)


def _trend_arrow(direction: str) -> str:
    return {"up": "↗", "down": "↘"}.get(direction, "→")


def _format_team_analytics(analytics: TeamAnalytics, currency: str) -> str:
    """Format team analytics for console display"""
    snapshot = analytics.snapshot
    output = []

    output.append("\n" + "=" * 60)
    output.append(f"📊 TEAM ANALYTICS ({snapshot.timeframe.upper()})".center(60))
    output.append("=" * 60)

    output.append("\n📈 KEY METRICS")
    output.append("-" * 50)
    key_metrics = [
        {"Metric": "Total Tasks", "Value": snapshot.tasks['total']},
        {"Metric": "Completion Rate", "Value": format_percentage(snapshot.tasks['completion_rate'])},
        {"Metric": "Overdue Tasks", "Value": snapshot.tasks['overdue']},
        {"Metric": "Team Productivity", "Value": format_percentage(snapshot.productivity['completion_rate'])},
        {"Metric": "Productivity Score", "Value": f"{snapshot.productivity['score']}/100"},
        {"Metric": "Reliability Score", "Value": f"{snapshot.productivity['reliability']}/100"},
        {"Metric": "Active Members", "Value": snapshot.team['active_members']},
        {"Metric": "Net Balance", "Value": format_currency(snapshot.financial['net_balance'], currency)},
        {"Metric": "Upcoming Events", "Value": snapshot.events['upcoming']},
    ]
    output.append(format_table(key_metrics))

    if snapshot.trends:
        output.append("\n📉 TRENDS VS PREVIOUS PERIOD")
        output.append("-" * 50)
        trend_rows = []
        for name, trend in snapshot.trends.items():
            change = "n/a" if trend.change is None else f"{abs(trend.change):.1f}%"
            trend_rows.append({
                "Metric": name.replace('_', ' ').title(),
                "Current": trend.current,
                "Previous": trend.previous,
                "Change": f"{_trend_arrow(trend.direction)} {change}",
            })
        output.append(format_table(trend_rows))

    if analytics.insights:
        output.append("\n💡 KEY INSIGHTS")
        output.append("-" * 50)
        icon_map = {"success": "✅", "warning": "⚠️", "error": "🚨", "info": "ℹ️"}
        for insight in analytics.insights:
            icon = icon_map.get(insight.severity.value, "💡")
            output.append(f"{icon} {insight.label}: {insight.message}")

    if analytics.recommendations:
        output.append("\n🎯 RECOMMENDATIONS")
        output.append("-" * 50)
        for i, rec in enumerate(analytics.recommendations, 1):
            output.append(f"{i}. [{rec.priority.value}] {rec.title} - {rec.description}")

    output.append("")
    return "\n".join(output)


def _format_report(report: PerformanceReport, currency: str) -> str:
    output = [f"Performance report ({report.timeframe})", ""]
    summary = dict(report.summary)
    summary['completion_rate'] = format_percentage(summary['completion_rate'])
    output.append(format_table([summary]))

    for title, items in (("Highlights", report.highlights), ("Concerns", report.concerns)):
        output.append(f"\n{title}")
        output.append("-" * len(title))
        if not items:
            output.append("None")
        for insight in items:
            output.append(f"- {insight.label}: {insight.message}")

    output.append("\nRecommendations")
    output.append("-" * 15)
    if not report.recommendations:
        output.append("None")
    for rec in report.recommendations:
        output.append(f"- [{rec.priority.value}] {rec.title}: {rec.suggested_action}")

    output.append("\nFinancial")
    output.append("-" * 9)
    output.append(format_table([
        {name.title(): format_currency(value, currency) for name, value in report.financial.items()}
    ]))
    return "\n".join(output)


def _fail(message: str):
    click.echo(message, err=True)
    sys.exit(1)


# Main analytics command group
@click.group(name='analytics')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def analytics_cli(verbose: bool):
    """Team analytics and reporting commands"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@analytics_cli.command(name='overview')
@click.option('--timeframe', '-t', type=click.Choice(TIMEFRAME_CHOICES), default=None,
              help='Timeframe for analysis (defaults to configuration)')
@click.option('--format', '-f', 'output_format', type=click.Choice(['text', 'json']),
              default='text', help='Output format')
@click.option('--data', '-d', 'data_file', type=click.Path(), help='JSON export of the record store')
@click.option('--export', '-e', type=click.Path(), help='Export to file')
def analytics_overview(timeframe: Optional[str], output_format: str, data_file: Optional[str],
                       export: Optional[str]):
    """Team analytics overview with insights and recommendations"""
    engine = get_engine(data_file)
    analytics = asyncio.run(engine.team_analytics(timeframe))

    if analytics is None:
        _fail("Analytics data unavailable")

    if output_format == 'json':
        output = json.dumps(analytics.to_dict(), indent=2, ensure_ascii=False)
    else:
        output = _format_team_analytics(analytics, engine.config.currency_symbol)

    _emit(output, export)


@analytics_cli.command(name='member')
@click.argument('member_id')
@click.option('--data', '-d', 'data_file', type=click.Path(), help='JSON export of the record store')
def member_analytics(member_id: str, data_file: Optional[str]):
    """Performance breakdown for one member"""
    engine = get_engine(data_file)
    analytics = asyncio.run(engine.member_analytics(member_id))

    if analytics is None:
        _fail(f"Analytics unavailable for member {member_id}")

    currency = engine.config.currency_symbol
    table = Table(title=f"👤 Member {member_id}", show_header=True, header_style="bold blue")
    table.add_column("Section", style="cyan", min_width=12)
    table.add_column("Metric", style="white", min_width=18)
    table.add_column("Value", style="green", justify="right")

    for name, value in analytics.tasks.items():
        shown = format_percentage(value) if name == 'completion_rate' else str(value)
        table.add_row("Tasks", name.replace('_', ' ').title(), shown)
    for name, value in analytics.financial.items():
        table.add_row("Financial", name.replace('_', ' ').title(), format_currency(value, currency))
    for name, value in analytics.performance.items():
        table.add_row("Performance", name.replace('_', ' ').title(), str(value))
    table.add_row("Dues", "Clean", "yes" if analytics.dues.is_clean else "no")
    for due in analytics.dues.pending_requests:
        table.add_row("Dues", due.title or due.request_id, format_currency(due.amount, currency))

    console.print(table)


@analytics_cli.command(name='report')
@click.option('--timeframe', '-t', type=click.Choice(TIMEFRAME_CHOICES), default=None,
              help='Timeframe for the report')
@click.option('--limit', '-n', type=int, default=None, help='Maximum number of recommendations')
@click.option('--format', '-f', 'output_format', type=click.Choice(['text', 'json']),
              default='text', help='Output format')
@click.option('--data', '-d', 'data_file', type=click.Path(), help='JSON export of the record store')
@click.option('--export', '-e', type=click.Path(), help='Export to file')
def performance_report(timeframe: Optional[str], limit: Optional[int], output_format: str,
                       data_file: Optional[str], export: Optional[str]):
    """Generate a performance report"""
    engine = get_engine(data_file)
    report = asyncio.run(engine.performance_report(timeframe, limit=limit))

    if report is None:
        _fail("Analytics data unavailable")

    if output_format == 'json':
        output = json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
    else:
        output = _format_report(report, engine.config.currency_symbol)

    _emit(output, export)


@analytics_cli.command(name='dashboard')
@click.option('--data', '-d', 'data_file', type=click.Path(), help='JSON export of the record store')
def dashboard_stats(data_file: Optional[str]):
    """Headline dashboard counters"""
    engine = get_engine(data_file)
    stats = asyncio.run(engine.dashboard_stats())

    rows: List[Dict[str, Any]] = [
        {"Metric": name.replace('_', ' ').title(), "Value": value}
        for name, value in stats.to_dict().items()
    ]
    click.echo(format_table(rows))
