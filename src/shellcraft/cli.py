"""CLI entrypoint for shellcraft."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from shellcraft.config import (
    Config,
    ConfigError,
    load_config,
    mask_secret,
    read_config_file,
    resolve_config_path,
    save_config,
    update_config,
)
from shellcraft.constants import (
    CONFIG_KEYS,
    DEFAULT_BASE_URL,
    DEFAULT_LOCALE,
    DEFAULT_MODEL,
    MAX_ATTEMPTS,
    SUPPORTED_LOCALES,
)
from shellcraft.execution_loop import LoopReporter, run_command_loop
from shellcraft.execution_state import ExecutionAttempt
from shellcraft.executor import CommandExecutor, ExecutionResult, SpawnError
from shellcraft.model_client import BackendError, get_model_client

# Load .env file on CLI startup
load_dotenv()

logger = logging.getLogger(__name__)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stderr,
    )


def print_error(message: str) -> None:
    """Print error message to stderr."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)


class ClickReporter(LoopReporter):
    """Styled terminal output for the command loop."""

    def __init__(self, verbose: bool = True):
        self.verbose = verbose

    def thinking(self, attempt_number: int, max_attempts: int) -> None:
        click.echo(click.style(
            f"🤔 Thinking... (attempt {attempt_number}/{max_attempts})", fg="blue"
        ))

    def prompts(self, system_text: str, user_text: str) -> None:
        click.echo(click.style("🔍 Debug info:", fg="blue", bold=True))
        click.echo(click.style("System prompt:", fg="blue"))
        click.echo(system_text)
        click.echo(click.style("User prompt:", fg="blue"))
        click.echo(user_text)
        click.echo()

    def command(self, command: str) -> None:
        click.echo()
        click.echo(click.style("📝 Generated command:", fg="blue", bold=True))
        click.echo(click.style(command, fg="cyan"))
        click.echo()

    def dangerous(self, command: str, pattern: str) -> None:
        click.echo(click.style(
            f"⚠️  Warning: potentially dangerous command detected ({pattern!r}), refusing to execute!",
            fg="red",
            bold=True,
        ))

    def dry_run(self, command: str) -> None:
        click.echo(click.style("Dry run: command not executed.", fg="yellow"))

    def declined(self, command: str) -> None:
        click.echo("Command not executed.")

    def executing(self, command: str) -> None:
        click.echo()
        click.echo(click.style("🚀 Executing command...", fg="yellow"))

    def result(self, result: ExecutionResult) -> None:
        if result.succeeded:
            click.echo(click.style("✅ Command succeeded!", fg="green", bold=True))
            if self.verbose and result.output:
                click.echo()
                click.echo(result.output.rstrip("\n"))
        else:
            click.echo(
                click.style(f"❌ Command failed (exit code {result.exit_code}): ", fg="red", bold=True)
                + click.style(result.output.rstrip("\n"), fg="red")
            )

    def done(self, attempt: ExecutionAttempt) -> None:
        click.echo(click.style(
            f"Goal achieved after {attempt.attempt_number} attempt(s).", fg="green"
        ))

    def max_attempts_reached(self, max_attempts: int) -> None:
        click.echo(click.style(
            f"⚠️  Reached the maximum of {max_attempts} attempts, stopping.",
            fg="yellow",
            bold=True,
        ))


def click_confirm(question: str, default: bool) -> bool:
    """Interactive yes/no prompt used by the loop."""
    click.echo()
    return click.confirm(question, default=default)


def _stdin_is_interactive() -> bool:
    return sys.stdin.isatty()


def prompt_for_config(path: Path) -> Config:
    """First-run setup: ask for each value and write the config file."""
    click.echo(f"No configuration found. Creating {path}")
    base_url = click.prompt("API base URL", default=DEFAULT_BASE_URL)
    api_key = click.prompt("API key", hide_input=True)
    model_id = click.prompt("Model", default=DEFAULT_MODEL)
    locale = click.prompt(
        "Prompt locale",
        default=DEFAULT_LOCALE,
        type=click.Choice(list(SUPPORTED_LOCALES)),
    )
    config = Config(base_url=base_url, api_key=api_key, model=model_id, locale=locale)
    saved = save_config(config, path)
    click.echo(f"Configuration saved to {saved}")
    click.echo()
    return config


def ensure_config() -> Config:
    """
    Load the config, creating it interactively on first run.

    Raises:
        ConfigError: If required values are missing and cannot be prompted for
    """
    config = load_config(require_all=False)
    if config is not None:
        return config

    path = resolve_config_path()
    if not path.exists() and _stdin_is_interactive():
        prompt_for_config(path)

    # Environment overrides still apply on top of the new file
    return load_config(require_all=True)


class DefaultCommandGroup(click.Group):
    """Group that runs `default_command` when the first argument is not a subcommand."""

    def __init__(self, *args, default_command: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.default_command = default_command

    def parse_args(self, ctx, args):
        if (
            self.default_command
            and args
            and args[0] not in self.commands
            and args[0] not in ("--help", "--version")
        ):
            args.insert(0, self.default_command)
        return super().parse_args(ctx, args)


@click.group(cls=DefaultCommandGroup, default_command="run")
@click.version_option(package_name="shellcraft")
def cli():
    """shellcraft - turn a task description into a shell command, run it, and retry until it works.

    \b
    Examples:
        shellcraft "list files"
        shellcraft --dry-run "find large files in my home directory"
        shellcraft config base_url=https://api.openai.com/v1 model=gpt-4o-mini
    """
    pass


@cli.command("run")
@click.argument("task", nargs=-1, required=True)
@click.option(
    "-n", "--dry-run",
    is_flag=True,
    help="Only show the generated command, do not execute it.",
)
@click.option(
    "--verbose/--quiet",
    default=True,
    help="Show the captured output of successful commands (default: verbose).",
)
@click.option(
    "-D", "--debug",
    is_flag=True,
    help="Print the composed prompts before sending them and enable debug logging.",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=MAX_ATTEMPTS,
    show_default=True,
    help="Maximum number of executed attempts.",
)
@click.option(
    "--trace",
    is_flag=True,
    help="Run the loop through the LangGraph wrapper for tracing.",
)
def run_task(task, dry_run: bool, verbose: bool, debug: bool, max_attempts: int, trace: bool):
    """Generate, check and run a shell command for TASK."""
    setup_logging(debug)

    task_text = " ".join(task).strip()
    if not task_text:
        raise click.UsageError("TASK must not be empty.")

    try:
        config = ensure_config()
        client = get_model_client(config)

        loop_kwargs = dict(
            task=task_text,
            model_client=client,
            executor=CommandExecutor(),
            confirm=click_confirm,
            reporter=ClickReporter(verbose=verbose),
            locale=config.locale,
            max_attempts=max_attempts,
            dry_run=dry_run,
            debug=debug,
        )
        if trace:
            from shellcraft.execution_graph import run_command_graph
            final_state = run_command_graph(**loop_kwargs)
        else:
            final_state = run_command_loop(**loop_kwargs)

        logger.debug("Finished with status %s", final_state.status)

    except ConfigError as e:
        print_error(f"Configuration error:\n{e}")
        raise SystemExit(1)
    except BackendError as e:
        print_error(str(e))
        raise SystemExit(1)
    except SpawnError as e:
        print_error(str(e))
        raise SystemExit(1)
    except (KeyboardInterrupt, click.Abort):
        click.echo("\nCancelled.", err=True)
        raise SystemExit(130)


@cli.command("config")
@click.argument("pairs", nargs=-1)
def config_cmd(pairs):
    """Show or update the stored configuration.

    \b
    PAIRS: key=value items. Keys: base_url, api_key, model, locale
    With no PAIRS, prints the stored values (the API key is masked).
    """
    path = resolve_config_path()

    try:
        if pairs:
            values = update_config(pairs, path)
            click.echo(f"Configuration saved to {path}")
        else:
            values = read_config_file(path)
            click.echo(f"Configuration file: {path}")
            if not path.exists():
                click.echo("  (not created yet)")
    except ConfigError as e:
        print_error(str(e))
        raise SystemExit(1)

    for key in CONFIG_KEYS:
        value = values.get(key)
        if key == "api_key":
            display = mask_secret(value)
        else:
            display = value or "[not set]"
        click.echo(f"  {key}: {display}")


if __name__ == "__main__":
    cli()
