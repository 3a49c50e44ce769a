"""
Command-line interface for Cheatsheet AI.

This module provides the entry point for the Cheatsheet AI tool, turning one or
more documentation source files into Markdown cheatsheets.
"""

import asyncio
import logging
import os
import sys
import time
from typing import Optional, Tuple

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from cheatsheetai import __version__
from cheatsheetai.config import AppConfig, LogLevel
from cheatsheetai.orchestrator import create_workflow
from cheatsheetai.sources import USAGE, SourceLoader, SourceResolutionError

# Load environment variables from .env file
load_dotenv()


def setup_logging(level: LogLevel, console: Optional[Console] = None) -> None:
    """Route cheatsheetai loggers through rich."""
    handler = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger("cheatsheetai")
    package_logger.handlers = [handler]
    package_logger.setLevel(level.value)
    package_logger.propagate = False


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("source_files", nargs=-1, type=click.Path())
@click.option(
    "--output-dir",
    help="Directory to save the generated cheatsheets.",
    type=str,
    default=None,
)
@click.option(
    "--sources-dir",
    help="Directory that bare source filenames are looked up in.",
    type=str,
    default=None,
)
@click.option(
    "--debug",
    help="Enable debug mode with more verbose output.",
    is_flag=True,
    default=False,
)
@click.version_option(version=__version__)
def cli(source_files: Tuple[str, ...], output_dir: Optional[str], sources_dir: Optional[str], debug: bool):
    """Generate LLM-ready cheatsheets from documentation sources.

    Each SOURCE_FILE is a JSON file with "name", "repo" and "path" keys. Without
    any, the source is read from REPO_URL, PROJECT_NAME and DOCS_DIR.
    """
    console = Console(stderr=True)

    config = AppConfig.from_env_and_args(
        output_dir=output_dir,
        sources_dir=sources_dir,
        debug=debug,
    )

    if not config.validate():
        sys.exit(1)

    setup_logging(config.log_level, console)

    loader = SourceLoader(config.sources_dir)
    try:
        sources = loader.resolve(source_files, os.environ)
    except SourceResolutionError as e:
        console.print(f"[bold red]❌ Error:[/] {escape(str(e))}")
        if not source_files:
            console.print(USAGE, markup=False)
        sys.exit(1)

    workflow_runner = create_workflow(config)

    start_time = time.time()
    tally = asyncio.run(workflow_runner(sources))
    elapsed_time = time.time() - start_time

    console.print(f"\n[bold]--- Processing Complete ({elapsed_time:.1f}s) ---[/]")
    console.print(f"Total sources attempted: {tally.attempted}")
    console.print(f"[green]✅ Successes:[/] {tally.succeeded}")
    console.print(f"[red]❌ Failures:[/] {tally.failed}")
    console.print("---------------------------\n")

    if loader.errors or tally.failed:
        # Partial failure is still a completed batch
        console.print("[bold yellow]⚠️ Some operations failed. Please review the logs above.[/]")
        for error in loader.errors:
            console.print(f"[yellow]   - Skipped {escape(os.path.basename(error.path))}: {escape(error.message)}[/]")
    else:
        console.print(f"[bold green]🎉 All sources processed successfully! Cheatsheets are in {config.output_dir}[/]")


def main():
    """Entry point for the application."""
    cli()


if __name__ == "__main__":
    main()
