"""
Main CLI interface for the cost report explorer.

Loads a cost export, applies scope and pick filters, and prints summary
cards, breakdowns, daily trends or the drill-down tree; or serves the
interactive dashboard over the same data.
"""

import json
import logging
import sys

import click

from .config.settings import get_config, reload_config
from .engine.datasets import BreakdownView
from .engine.selection import PickDimension, PickMode
from .providers.base import CostReportError
from .visualization.dashboard.data_manager import ReportDataManager

# Set up logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity settings."""
    # Default is quiet: only errors, so command output stays readable
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.ERROR)

    noisy_loggers = ["werkzeug", "dash", "urllib3"]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.INFO if verbose else logging.ERROR)


def selection_options(func):
    """Common data file, scope, pick and output options."""
    decorators = [
        click.argument("data_file", type=click.Path(exists=True, dir_okay=False)),
        click.option(
            "--source-type",
            type=click.Choice(["json", "csv"]),
            help="Force the file format (default: from the file extension)",
        ),
        click.option(
            "--subscription",
            "-s",
            "subscriptions",
            multiple=True,
            help="Restrict to a subscription id (repeatable)",
        ),
        click.option("--start-date", help="First day to include (YYYY-MM-DD)"),
        click.option("--end-date", help="Last day to include (YYYY-MM-DD)"),
        click.option("--category", "categories", multiple=True, help="Pick a meter category (repeatable)"),
        click.option("--meter", "meters", multiple=True, help="Pick a meter name (repeatable)"),
        click.option("--resource", "resources", multiple=True, help="Pick a resource id (repeatable)"),
        click.option(
            "--format",
            "output_format",
            type=click.Choice(["table", "json"]),
            default="table",
            help="Output format",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _build_explorer(ctx, options: dict):
    """Load the data file and apply scope and picks from the command line."""
    picks = {
        PickDimension.CATEGORY: options["categories"],
        PickDimension.METER: options["meters"],
        PickDimension.RESOURCE: options["resources"],
    }
    picked_dimensions = [dimension for dimension, values in picks.items() if values]
    if len(picked_dimensions) > 1:
        names = ", ".join(f"--{d.value}" for d in picked_dimensions)
        raise click.UsageError(f"Picks are exclusive across dimensions; use only one of {names}")

    manager = ReportDataManager(ctx.obj["config"])
    explorer = manager.load_file(options["data_file"], source_type=options["source_type"])

    explorer.set_scope_subscriptions(options["subscriptions"])
    explorer.set_scope_day_range(options["start_date"], options["end_date"])
    for dimension, values in picks.items():
        for value in values:
            if dimension is PickDimension.RESOURCE and not explorer.is_resource_pickable(value):
                click.echo(f"Warning: no cost lines for resource {value}", err=True)
                continue
            explorer.toggle_pick(dimension, value, PickMode.ADD)
    return explorer


def _run(ctx, options: dict, render):
    """Build the explorer and render, turning domain errors into exit status 1."""
    try:
        explorer = _build_explorer(ctx, options)
        render(explorer)
    except CostReportError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _echo_json(data):
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging and debug output")
@click.pass_context
def cli(ctx, verbose):
    """Cost Report Explorer - slice cost exports by subscription, category, meter and resource."""
    setup_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    try:
        ctx.obj["config"] = get_config()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@selection_options
@click.pass_context
def summary(ctx, **options):
    """Show the summary cards for the selected cost lines."""

    def render(explorer):
        cards = explorer.summary_cards()
        if options["output_format"] == "json":
            _echo_json(cards.model_dump(mode="json"))
            return

        click.echo("\nCost Summary")
        click.echo("=" * 50)
        click.echo(f"Total Cost: {cards.total_local:,.2f} {cards.currency}")
        click.echo(f"Total Cost (USD): {cards.total_usd:,.2f} USD")
        click.echo(f"Subscriptions: {cards.subscription_count}")
        click.echo(f"Categories: {cards.category_count}")
        click.echo(f"Days: {cards.day_count}  Line items: {cards.item_count}")
        click.echo(f"Trend: {cards.trend_percent:+.1f}% ({cards.trend_direction.value})")
        if explorer.skipped_records:
            click.echo(f"\nSkipped {explorer.skipped_records} records with unusable dates")

    _run(ctx, options, render)


@cli.command()
@selection_options
@click.option(
    "--view",
    type=click.Choice([view.value for view in BreakdownView]),
    default=BreakdownView.BY_CATEGORY.value,
    help="What to break the daily cost down by",
)
@click.option("--top-n", type=int, help="Number of entities shown individually")
@click.pass_context
def breakdown(ctx, view, top_n, **options):
    """Show the top-N daily breakdown with the "Other" remainder."""

    def render(explorer):
        result = explorer.breakdown(view, top_n=top_n)
        if options["output_format"] == "json":
            _echo_json(result.to_dict())
            return

        click.echo(f"\n{result.title}")
        click.echo("=" * 50)
        if not result.has_data:
            click.echo("No data for the current selection")
            return

        for position, dataset in enumerate(result.datasets, 1):
            share = dataset.total / result.total_local * 100 if result.total_local else 0.0
            click.echo(
                f"  {position:2d}. {dataset.label}: {dataset.total:,.2f} {explorer.currency} "
                f"({share:.1f}%)"
            )
        click.echo(f"\nTotal: {result.total_local:,.2f} {explorer.currency} over {len(result.days)} days")

    _run(ctx, options, render)


@cli.command()
@selection_options
@click.pass_context
def trend(ctx, **options):
    """Show daily cost totals."""

    def render(explorer):
        daily = explorer.trend_by_day()
        if options["output_format"] == "json":
            _echo_json([entry.model_dump() for entry in daily])
            return

        click.echo(f"\n{'Date':<12}{'Cost':>16}{'Cost (USD)':>16}")
        click.echo("-" * 44)
        for entry in daily:
            click.echo(f"{entry.day:<12}{entry.local:>16,.2f}{entry.usd:>16,.2f}")
        if not daily:
            click.echo("No data for the current selection")

    _run(ctx, options, render)


def _echo_node(node, currency: str, depth: int):
    indent = "  " * depth
    click.echo(f"{indent}{node.label}: {node.cost_local:,.2f} {currency} ({node.item_count} items)")
    for child in node.children:
        _echo_node(child, currency, depth + 1)


@cli.command()
@selection_options
@click.option("--depth", type=click.IntRange(1, 4), default=2, help="Levels to show (1-4)")
@click.pass_context
def drilldown(ctx, depth, **options):
    """Show costs nested by category, subcategory, meter and resource."""

    def render(explorer):
        nodes = explorer.drilldown(explorer.get_active_row_ids(), depth=depth)
        if options["output_format"] == "json":
            _echo_json([node.model_dump(mode="json") for node in nodes])
            return
        if not nodes:
            click.echo("No data for the current selection")
        for node in nodes:
            _echo_node(node, explorer.currency, 0)

    _run(ctx, options, render)


@cli.command()
@click.argument("data_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--host", help="Dashboard host (default: from configuration)")
@click.option("--port", type=int, help="Dashboard port (default: from configuration)")
@click.option("--debug", is_flag=True, default=None, help="Enable debug mode")
@click.pass_context
def dashboard(ctx, data_file, host, port, debug):
    """Start the interactive dashboard on a cost export."""
    from .visualization.dashboard.core import CostReportDashboard

    config = ctx.obj["config"]
    config.override_from_cli({"dashboard_host": host, "dashboard_port": port, "debug": debug})

    try:
        app = CostReportDashboard(config=config, source_path=data_file)
    except CostReportError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Starting dashboard on http://{app.host}:{app.port}")
    app.run()


@cli.command()
@click.pass_context
def config_info(ctx):
    """Display current configuration information."""
    config = ctx.obj["config"]

    click.echo("Cost Report Explorer Configuration")
    click.echo("=" * 40)
    click.echo(f"Top-N entities: {config.top_n}")
    click.echo(f"Other epsilon: {config.other_epsilon}")
    click.echo(f"Trend window: {config.get_engine_option('trend_window_days', 3)} days")
    click.echo(f"Default currency: {config.normalizer.get('default_currency', 'USD')}")

    click.echo("\nExchange rates (USD per unit):")
    for code, rate in sorted(config.exchange_rates.items()):
        click.echo(f"  {code}: {rate}")

    dashboard_config = config.dashboard
    click.echo("\nDashboard:")
    click.echo(f"  Host: {dashboard_config.get('host', '127.0.0.1')}")
    click.echo(f"  Port: {dashboard_config.get('port', 8050)}")


@cli.command()
@click.confirmation_option(prompt="Are you sure you want to reload configuration?")
@click.pass_context
def reload(ctx):
    """Reload configuration from files."""
    try:
        config = reload_config()
        ctx.obj["config"] = config
        click.echo("✅ Configuration reloaded successfully")
    except Exception as e:
        click.echo(f"❌ Failed to reload configuration: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
