"""Main CLI application."""

from typing import Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..config import Config
from ..logging_config import setup_logging
from .articles import articles_app
from .init import init_command
from .inspect import discover_command, extract_command
from .run import run_command
from .sources import sources_app

app = typer.Typer(
    name="curator",
    help="Topic Curator - news discovery, extraction and source health",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Log level (default: from config, else INFO)"
    ),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Rotating log file"),
) -> None:
    """Configure logging before any command runs."""
    level, file = "INFO", None
    config = Config()
    if config.config_path.exists():
        try:
            level = config.config.logging.level
            file = config.config.logging.file
        except ValueError:
            # Reported by the command that needs the config
            pass
    setup_logging(log_level or level, log_file or file)


# Register commands
app.command("init")(init_command)
app.command("run")(run_command)
app.command("discover")(discover_command)
app.command("extract")(extract_command)
app.add_typer(sources_app, name="sources", help="Manage content sources")
app.add_typer(articles_app, name="articles", help="Review stored articles")


if __name__ == "__main__":
    app()
