"""CLI interface for markdown-mentions"""

import asyncio
import json
import logging
import sys
from typing import Dict, Optional

import click
from rich.console import Console
from rich.table import Table

from .config import ConfigError, ResolverSettings, load_account, load_config
from .directory import Account, avatar_url
from .renderer import MentionRenderer
from .resolver import MentionResolver
from .scanner import find_potential_mentions

console = Console()


def _read_text(text: Optional[str], file: Optional[str]) -> str:
    if file:
        with open(file, encoding="utf-8") as f:
            return f.read()
    if text is None:
        raise click.UsageError("Provide TEXT or --file")
    return text


def _load_settings_and_account(cache_path: Optional[str]):
    try:
        settings = load_config()
        if cache_path:
            settings = settings.model_copy(update={"cache_path": cache_path})
        account = load_account(settings)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    return settings, account


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """Resolve @mentions in rendered markdown to display names"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
@click.argument('text', required=False)
@click.option('--file', '-f', type=click.Path(exists=True, dir_okay=False), help='Read text from file')
def scan(text, file):
    """List the distinct @mention candidates in TEXT

    Examples:
        \b
        markdown-mentions scan "Thanks @alice and @bob"
    """
    mentions = find_potential_mentions(_read_text(text, file))
    for mention in sorted(mentions):
        click.echo(mention)


@cli.command()
@click.argument('text', required=False)
@click.option('--file', '-f', type=click.Path(exists=True, dir_okay=False), help='Read text from file')
@click.option('--cache-path', help='Directory holding users.parquet (overrides config)')
@click.option('--format', type=click.Choice(['table', 'json']), default='table', help='Output format')
def resolve(text, file, cache_path, format):
    """Resolve the @mentions in TEXT to display names

    Examples:
        \b
        # Resolve against the Nextcloud account from MENTIONS_* variables
        markdown-mentions resolve "Thanks @alice and @bob"

        \b
        # Persist resolved names between runs
        markdown-mentions resolve --file notes.md --cache-path cache
    """
    content = _read_text(text, file)
    settings, account = _load_settings_and_account(cache_path)
    usernames = find_potential_mentions(content)

    display_names = asyncio.run(_resolve_async(settings, account, usernames))

    if format == 'json':
        click.echo(json.dumps(display_names, indent=2, sort_keys=True))
        return

    table = Table(title=f"Mentions ({len(display_names)} of {len(usernames)} resolved)")
    table.add_column("Username", style="cyan")
    table.add_column("Display name", style="green")
    table.add_column("Avatar", style="dim")

    size = int(settings.text_size * 1.5)
    for username in sorted(usernames):
        table.add_row(
            username,
            display_names.get(username, "[yellow]unresolved[/yellow]"),
            avatar_url(account, username, size) if account.url else "",
        )
    console.print(table)


async def _resolve_async(
    settings: ResolverSettings, account: Account, usernames
) -> Dict[str, str]:
    """Async implementation of resolve command"""
    resolver = MentionResolver.from_settings(settings)
    try:
        if settings.cache_path:
            resolver.cache.load(settings.cache_path)

        display_names = await resolver.fetch_display_names(settings, account, usernames)

        if settings.cache_path and len(resolver.cache):
            users_file = resolver.cache.save(settings.cache_path)
            console.print(f"[dim]Cached {len(resolver.cache)} users in {users_file}[/dim]")
        return display_names
    finally:
        resolver.close()


@cli.command()
@click.argument('text', required=False)
@click.option('--file', '-f', type=click.Path(exists=True, dir_okay=False), help='Read text from file')
@click.option('--output', '-o', help='Output file (default: print to console)')
def render(text, file, output):
    """Print TEXT with resolved @mentions replaced by display names"""
    content = _read_text(text, file)
    settings, account = _load_settings_and_account(None)

    rendered = asyncio.run(_render_async(settings, account, content))

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(rendered)
        console.print(f"[green]✓ Saved to {output}[/green]")
    else:
        click.echo(rendered)


async def _render_async(settings: ResolverSettings, account: Account, content: str) -> str:
    renderer = MentionRenderer(settings, account=account)
    try:
        if settings.cache_path:
            renderer.resolver.cache.load(settings.cache_path)
        return await renderer.replace_user_names(content)
    finally:
        renderer.resolver.close()


if __name__ == "__main__":
    cli()
