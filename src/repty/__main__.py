"""CLI entry point for repty.

Search, re-run and log shell commands:
    python -m repty search "git push yesterday"
"""

import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path

import click

from repty.chains.detector import ChainDetector
from repty.config import Config, load_config
from repty.history import add_alias, log_command, resolve_alias, search_history
from repty.logging import get_logger, setup_logging
from repty.models import ChainCandidate, Command, ScoredCommand
from repty.nlp.matcher import CommandMatcher
from repty.nlp.parser import QueryParser
from repty.store import CommandStore

logger = get_logger("cli")

MAX_CHOICES = 10
MAX_CHAIN_SUGGESTIONS = 3


def format_timestamp(ts: int) -> str:
    """Format a millisecond timestamp for display."""
    return datetime.fromtimestamp(ts / 1000).strftime("%Y-%m-%d %H:%M:%S")


def print_command(index: int, cmd: Command, show_score: bool = False) -> None:
    """Print a command history entry."""
    prefix = ""
    if show_score and isinstance(cmd, ScoredCommand):
        prefix = f"\033[2m[Score: {cmd.score}]\033[0m "

    click.echo(f"  {index}. {prefix}\033[36m[{format_timestamp(cmd.timestamp)}]\033[0m {cmd.directory}")
    line = f"     \033[1m{cmd.command}\033[0m"
    if cmd.exit_code not in (None, 0):
        line += f" \033[31m(exit: {cmd.exit_code})\033[0m"
    click.echo(line)


def print_chain(commands: list[str], score: int | None = None) -> None:
    """Print a command chain as a tree."""
    header = "\033[33m\033[1mSequence\033[0m"
    if score is not None:
        header = f"\033[2m[Chain Score: {score}]\033[0m {header}"
    click.echo(header)
    for i, cmd in enumerate(commands):
        branch = "└─" if i == len(commands) - 1 else "├─"
        click.echo(f"  {branch} {cmd}")


def run_commands(commands: list[str], cwd: str | None = None) -> int:
    """Run commands in sequence, stopping at the first failure.

    Returns:
        Exit code of the last command run
    """
    for cmd in commands:
        click.echo(f"\033[36mExecuting: {cmd}\033[0m")
        result = subprocess.run(cmd, shell=True, cwd=cwd, check=False)
        if result.returncode != 0:
            click.echo(f"\033[31m✗ Command failed with exit code {result.returncode}\033[0m", err=True)
            logger.warning("Command failed: command=%r exit_code=%d", cmd, result.returncode)
            return result.returncode
    click.echo("\033[32m✓ Command executed successfully\033[0m")
    return 0


def open_store(config: Config) -> CommandStore:
    return CommandStore(config.db_path)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config file",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Terminal command history with natural language search."""
    config = load_config(config_path)
    setup_logging("cli", log_dir=config.log_dir, console=False)
    ctx.obj = config


@cli.command()
@click.argument("query", nargs=-1, required=True)
@click.option("--here", is_flag=True, help="Only search the current project or directory")
@click.pass_obj
def search(config: Config, query: tuple[str, ...], here: bool) -> None:
    """Search command history using natural language."""
    text = " ".join(query)

    try:
        with open_store(config) as store:
            chains = ChainDetector(store, config.chains).find_chains_for_query(text)
            results = search_history(
                store,
                QueryParser(),
                CommandMatcher(config.matcher),
                text,
                config,
                directory=os.getcwd() if here else None,
            )
    except Exception as e:
        click.echo(f"Error searching history: {e}", err=True)
        sys.exit(1)

    for chain in chains[:MAX_CHAIN_SUGGESTIONS]:
        print_chain(chain.commands, chain.score)
        click.echo("")

    if not results:
        click.echo("\033[33mNo commands found.\033[0m")
        return

    click.echo(f"Found {len(results)} command(s):\n")
    for i, cmd in enumerate(results, start=1):
        print_command(i, cmd, show_score=True)


@cli.command()
@click.argument("query", nargs=-1, required=True)
@click.pass_obj
def run(config: Config, query: tuple[str, ...]) -> None:
    """Search and execute a command or sequence from history."""
    text = " ".join(query)

    try:
        with open_store(config) as store:
            commands = resolve_alias(store, text)
            chains: list[ChainCandidate] = []
            results: list[ScoredCommand] = []
            if commands is None:
                chains = ChainDetector(store, config.chains).find_chains_for_query(text)
                results = search_history(
                    store, QueryParser(), CommandMatcher(config.matcher), text, config
                )
    except Exception as e:
        click.echo(f"Error searching history: {e}", err=True)
        sys.exit(1)

    if commands is None:
        choices = [chain.commands for chain in chains[:MAX_CHAIN_SUGGESTIONS]]
        choices += [[cmd.command] for cmd in results[: MAX_CHOICES - len(choices)]]

        if not choices:
            click.echo("\033[33mNo matching commands found.\033[0m")
            return

        commands = choices[0]
        if len(choices) > 1:
            click.echo("Multiple matches found:")
            for i, choice in enumerate(choices, start=1):
                label = " && ".join(choice)
                kind = "[chain] " if len(choice) > 1 else ""
                click.echo(f"  {i}. {kind}{label}")
            index = click.prompt(
                "Select one", type=click.IntRange(1, len(choices)), default=1
            )
            commands = choices[index - 1]

    if len(commands) > 1:
        print_chain(commands)
    if not click.confirm(f"Execute: {' && '.join(commands)}?", default=False):
        click.echo("\033[33mExecution cancelled.\033[0m")
        return

    sys.exit(run_commands(commands))


@cli.command(name="log")
@click.argument("command", nargs=-1, required=True)
@click.option("--directory", "-d", help="Working directory")
@click.option("--exit-code", "-e", default=0, type=int, help="Exit code")
@click.pass_obj
def log_cmd(config: Config, command: tuple[str, ...], directory: str | None, exit_code: int) -> None:
    """Manually log a command to history."""
    text = " ".join(command)
    directory = directory or os.getcwd()

    with open_store(config) as store:
        detector = ChainDetector(store, config.chains)
        command_id = log_command(store, detector, text, directory, config, exit_code=exit_code)

    if command_id is None:
        click.echo("\033[33mCommand excluded (contains sensitive pattern)\033[0m")
        return
    click.echo(f"\033[32m✓ Command logged (ID: {command_id})\033[0m")


@cli.command(name="capture", hidden=True)
@click.argument("command")
@click.argument("exit_code", type=int, default=0)
@click.argument("directory", required=False)
@click.pass_obj
def capture(config: Config, command: str, exit_code: int, directory: str | None) -> None:
    """Log a command from the shell hook without output."""
    with open_store(config) as store:
        detector = ChainDetector(store, config.chains)
        log_command(store, detector, command, directory or os.getcwd(), config, exit_code=exit_code)


@cli.command()
@click.option("--number", "-n", default=20, help="Number of commands to show")
@click.pass_obj
def recent(config: Config, number: int) -> None:
    """Show recent commands."""
    with open_store(config) as store:
        commands = store.get_recent_commands(number)

    if not commands:
        click.echo("\033[33mNo commands found.\033[0m")
        return
    for i, cmd in enumerate(commands, start=1):
        print_command(i, cmd)


@cli.command()
@click.pass_obj
def stats(config: Config) -> None:
    """Show command history statistics."""
    with open_store(config) as store:
        history = store.get_stats()

    click.echo("\033[1mHistory Statistics\033[0m")
    click.echo(f"  Total:     {history.total}")
    click.echo(f"  Today:     {history.today}")
    click.echo(f"  This week: {history.this_week}")


@cli.command()
@click.option("--number", "-n", default=10, help="Number of chains to show")
@click.pass_obj
def chains(config: Config, number: int) -> None:
    """Show the most frequent command sequences."""
    with open_store(config) as store:
        frequent = store.get_frequent_chains(number)

    if not frequent:
        click.echo("\033[33mNo sequences recorded yet.\033[0m")
        return
    for chain in frequent:
        click.echo(f"\033[2m[{chain.id}] used {chain.count}x, last {format_timestamp(chain.last_used)}\033[0m")
        print_chain(chain.commands)


@cli.command()
@click.option("--chains-only", is_flag=True, help="Only forget recorded sequences")
@click.confirmation_option(prompt="This permanently deletes history. Continue?")
@click.pass_obj
def clear(config: Config, chains_only: bool) -> None:
    """Delete recorded history."""
    with open_store(config) as store:
        if chains_only:
            store.clear_chains()
        else:
            store.clear_history()
    click.echo("\033[32m✓ History cleared\033[0m")


@cli.group()
def alias() -> None:
    """Manage command aliases."""


@alias.command(name="add")
@click.argument("name")
@click.argument("command", nargs=-1, required=True)
@click.pass_obj
def alias_add(config: Config, name: str, command: tuple[str, ...]) -> None:
    """Add an alias; separate commands with '|' for a sequence."""
    try:
        with open_store(config) as store:
            commands = add_alias(store, name, " ".join(command))
    except ValueError as e:
        click.echo(f"Error adding alias: {e}", err=True)
        sys.exit(1)

    if len(commands) > 1:
        click.echo(f"\033[32m✓ Sequence alias added: \033[1m{name}\033[0m")
        for cmd in commands:
            click.echo(f"  ↳ {cmd}")
    else:
        click.echo(f"\033[32m✓ Alias added: \033[1m{name}\033[0m → {commands[0]}")


@alias.command(name="list")
@click.pass_obj
def alias_list(config: Config) -> None:
    """List aliases."""
    with open_store(config) as store:
        aliases = store.list_aliases()

    if not aliases:
        click.echo("\033[33mNo aliases found. Add one with: repty alias add <name> <command>\033[0m")
        return
    for entry in aliases:
        kind = "\033[33m[Chain]\033[0m" if entry.kind == "chain" else "\033[36m[Single]\033[0m"
        click.echo(f"\033[1m{entry.name}\033[0m {kind} → {entry.commands_text}")


@alias.command(name="remove")
@click.argument("name")
@click.pass_obj
def alias_remove(config: Config, name: str) -> None:
    """Remove an alias."""
    with open_store(config) as store:
        removed = store.delete_alias(name)

    if not removed:
        click.echo(f"\033[31m✗ Alias not found: {name}\033[0m", err=True)
        sys.exit(1)
    click.echo(f"\033[32m✓ Alias removed: {name}\033[0m")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
