"""Click CLI for Starboard."""

import asyncio
import json
from dataclasses import asdict
from typing import Any, Optional

import click
import yaml
from trogon import tui

from starboard import __version__
from starboard.config import EXPORT_FORMAT_OPTIONS, LOG_LEVEL_OPTIONS, StarboardConfig
from starboard.errors import FetchError
from starboard.live import (
    MockLiveServer,
    PushSource,
    RefreshCoordinator,
    RepositoryFetcher,
    StarStore,
    SubscriptionManager,
)
from starboard.logs import configure_logging
from starboard.models import RefreshReport, format_stars


@tui()
@click.group()
@click.version_option(version=__version__, prog_name="starboard")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVEL_OPTIONS, case_sensitive=False),
    default=None,
    help="Log level (default: from config)",
)
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Write logs to this file")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], log_file: Optional[str]) -> None:
    """Starboard - live GitHub star counts.
    
    Lists an organisation's repositories and keeps their star counts
    updated from a live feed.
    
    Quick start:
        starboard dashboard swiftlang   Launch interactive TUI dashboard
        starboard watch swiftlang       Watch live counts in the terminal
        starboard repos swiftlang       List repositories
        starboard tui                   Launch command explorer (Trogon)
    """
    config = StarboardConfig.load()
    ctx.obj = {
        "config": config,
        "log_level": log_level or config.log_level,
        "log_file": log_file,
    }
    configure_logging(ctx.obj["log_level"], log_file)


@cli.command()
@click.argument("organisation", required=False)
@click.pass_obj
def dashboard(obj: dict, organisation: Optional[str]) -> None:
    """Launch the interactive TUI dashboard.
    
    ORGANISATION: GitHub organisation (default: from config)
    
    Star counts update live; each row redraws as soon as its feed
    pushes a new value.
    
    Keyboard shortcuts:
        q - Quit
        r - Refresh
        enter - Repository details
        ? - Help
    """
    from starboard.tui import StarboardApp
    
    configure_logging(obj["log_level"], obj["log_file"], tui=True)
    app = StarboardApp(organisation=organisation, config=obj["config"])
    app.run()


@cli.command()
@click.argument("organisation", required=False)
@click.option("--limit", "-l", default=0, help="Max repositories to show (0 = all)")
@click.option("--token", "-t", envvar="GITHUB_TOKEN", help="GitHub personal access token")
@click.pass_obj
def repos(obj: dict, organisation: Optional[str], limit: int, token: Optional[str]) -> None:
    """List an organisation's repositories with their star counts.
    
    ORGANISATION: GitHub organisation (default: from config)
    """
    from starboard.clients import GitHubClient
    
    organisation = organisation or obj["config"].organisation
    with GitHubClient(token) as client:
        try:
            repositories = client.list_org_repos(organisation)
        except FetchError as e:
            click.echo(f"Error listing repositories: {e}", err=True)
            raise SystemExit(1)
    
    if not repositories:
        click.echo(f"No repositories found for {organisation}.")
        return
    
    if limit > 0:
        repositories = repositories[:limit]
    
    click.echo(f"\n{organisation}: {len(repositories)} repositories\n")
    click.echo("-" * 60)
    for repo in repositories:
        click.echo(f"  {repo.name} ★ {format_stars(repo.star_count)}")
        if repo.description:
            desc = repo.description[:60] + "..." if len(repo.description) > 60 else repo.description
            click.echo(f"    {desc}")


@cli.command()
@click.argument("repository_id", type=int)
@click.option("--token", "-t", envvar="GITHUB_TOKEN", help="GitHub personal access token")
def info(repository_id: int, token: Optional[str]) -> None:
    """Show information about a repository.
    
    REPOSITORY_ID: Numeric GitHub repository id
    """
    from starboard.clients import GitHubClient
    
    with GitHubClient(token) as client:
        try:
            detail = client.get_repository(repository_id)
        except FetchError as e:
            click.echo(f"Error fetching repository: {e}", err=True)
            raise SystemExit(1)
    
    click.echo(f"\n{detail.full_name}")
    click.echo("=" * 40)
    click.echo(f"Description: {detail.description or 'N/A'}")
    click.echo(f"URL: {detail.html_url or 'N/A'}")
    click.echo(f"Default branch: {detail.default_branch}")
    click.echo(f"Language: {detail.language or 'N/A'}")
    click.echo(f"Stars: {format_stars(detail.star_count)}")
    click.echo(f"Forks: {format_stars(detail.forks_count)}")
    click.echo(f"Open issues: {format_stars(detail.open_issues_count)}")
    if detail.topics:
        click.echo(f"Topics: {', '.join(detail.topics)}")


# =============================================================================
# Watch - headless live run
# =============================================================================


class EchoListener:
    """Prints live updates to the terminal."""
    
    def __init__(self, store: StarStore, verbose: bool = False):
        self.store = store
        self.verbose = verbose
    
    def on_directory_replaced(self) -> None:
        if self.verbose:
            click.echo(f"Tracking {len(self.store)} repositories")
    
    def on_row_updated(self, repository_id: int) -> None:
        if not self.verbose:
            return
        repo = self.store.directory.get(repository_id)
        if repo is not None:
            stars = self.store.current_star_count(repository_id)
            click.echo(f"  ★ {repo.name}: {format_stars(stars)}")
    
    def on_refresh_finished(self) -> None:
        pass


async def watch_organisation(
    organisation: str,
    fetcher: RepositoryFetcher,
    source: PushSource,
    duration: float,
    verbose: bool = False,
) -> tuple[RefreshReport, list[dict[str, Any]]]:
    """Load the directory, follow live updates for ``duration`` seconds.
    
    Returns:
        The refresh report and one record per repository in display order
    """
    store = StarStore()
    manager = SubscriptionManager(source, store)
    coordinator = RefreshCoordinator(
        organisation, fetcher, manager, store, EchoListener(store, verbose)
    )
    try:
        report = await coordinator.refresh()
        if report.succeeded and duration > 0:
            await asyncio.sleep(duration)
        records = [
            {
                "id": repo.id,
                "name": repo.name,
                "baseline": repo.star_count,
                "stars": stars,
                "live": manager.is_subscribed(repo.id),
            }
            for repo, stars in store.rows()
        ]
    finally:
        coordinator.close()
    return report, records


def _format_records(records: list[dict[str, Any]], output_format: str) -> str:
    if output_format == "json":
        return json.dumps(records, indent=2)
    if output_format == "yaml":
        return yaml.safe_dump(records, sort_keys=False, allow_unicode=True)
    
    lines = [f"{'Repository':<40} {'Baseline':>10} {'Stars':>10}", "-" * 62]
    for record in records:
        marker = "" if record["live"] else "  (no live feed)"
        lines.append(
            f"{record['name']:<40} {format_stars(record['baseline']):>10} "
            f"{format_stars(record['stars']):>10}{marker}"
        )
    return "\n".join(lines)


@cli.command()
@click.argument("organisation", required=False)
@click.option("--duration", "-d", default=10.0, show_default=True, help="Seconds to follow live updates")
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice([value for value, _ in EXPORT_FORMAT_OPTIONS]),
    default=None,
    help="Output format (default: from config)",
)
@click.option("--seed", type=int, default=None, help="Seed for the simulated live server")
@click.option("--token", "-t", envvar="GITHUB_TOKEN", help="GitHub personal access token")
@click.option("--verbose", "-v", is_flag=True, help="Print every live update")
@click.pass_obj
def watch(
    obj: dict,
    organisation: Optional[str],
    duration: float,
    output_format: Optional[str],
    seed: Optional[int],
    token: Optional[str],
    verbose: bool,
) -> None:
    """Follow live star counts for a while, then print them.
    
    ORGANISATION: GitHub organisation (default: from config)
    """
    import random
    
    from starboard.clients import GitHubClient
    
    config: StarboardConfig = obj["config"]
    organisation = organisation or config.organisation
    output_format = output_format or config.export_format
    
    with GitHubClient(token) as client, MockLiveServer(
        min_interval=config.live_min_interval,
        max_interval=config.live_max_interval,
        max_increment=config.live_max_increment,
        ack_delay=config.subscribe_ack_delay,
        rng=random.Random(seed),
    ) as server:
        report, records = asyncio.run(
            watch_organisation(organisation, client, server, duration, verbose)
        )
    
    if not report.succeeded:
        click.echo(f"Error: {report.error}", err=True)
        raise SystemExit(1)
    
    click.echo(_format_records(records, output_format))
    if output_format == "table":
        click.echo(f"\n{report}")


# =============================================================================
# Config Commands
# =============================================================================


@cli.group()
def config() -> None:
    """Show and change persistent settings."""
    pass


@config.command("show")
@click.pass_obj
def config_show(obj: dict) -> None:
    """Show the current configuration."""
    click.echo(f"# {StarboardConfig.get_config_path()}")
    for key, value in asdict(obj["config"]).items():
        click.echo(f"{key} = {value}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_obj
def config_set(obj: dict, key: str, value: str) -> None:
    """Set a configuration value.
    
    KEY: Setting name (see `starboard config show`)
    """
    settings: StarboardConfig = obj["config"]
    try:
        converted = settings.set_value(key, value)
    except KeyError:
        click.echo(f"Error: Unknown setting '{key}'.", err=True)
        raise SystemExit(1)
    except ValueError as e:
        click.echo(f"Error: Invalid value for '{key}': {e}", err=True)
        raise SystemExit(1)
    settings.save()
    click.echo(f"✓ {key} = {converted}")


@config.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_obj
def config_reset(obj: dict, yes: bool) -> None:
    """Reset every setting to its default."""
    if not yes:
        click.confirm("Reset all settings to defaults?", abort=True)
    settings: StarboardConfig = obj["config"]
    settings.reset()
    settings.save()
    click.echo("✓ Configuration reset.")


if __name__ == "__main__":
    cli()
