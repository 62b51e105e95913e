"""CLI entrypoint for vault-clipper."""

import logging
from pathlib import Path

import rich_click as click

from vault_clipper import __version__
from vault_clipper.clipper.controllers import (
    ClipCliController,
    ClipCommand,
    ConnectionCommand,
    HistoryCommand,
)

click.rich_click.USE_MARKDOWN = True
CLIP_CONTROLLER = ClipCliController()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.version_option(version=__version__, prog_name="vault-clipper")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def vault_clipper(log_level: str) -> None:
    """Clip web pages and YouTube videos into an Obsidian vault."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@vault_clipper.command("clip")
@click.argument("url")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--template-set",
    default=None,
    help="Template set id. Defaults to the configured default set.",
)
@click.option(
    "--selection",
    default=None,
    help="Clip this text instead of the extracted article body.",
)
@click.option("--title", default=None, help="Override the page title.")
@click.option(
    "--check-connection/--no-check-connection",
    default=False,
    show_default=True,
    help="Verify the vault is reachable first and offer to open it.",
)
def clip(  # noqa: PLR0913
    url: str,
    db_path: Path | None,
    template_set: str | None,
    selection: str | None,
    title: str | None,
    check_connection: bool,
) -> None:
    """Clip URL into the vault and wait for the task to finish.

    Press Ctrl-C to cancel the running clip.
    """

    result = CLIP_CONTROLLER.clip(
        ClipCommand(
            db_path=db_path,
            url=url,
            template_set=template_set,
            check_connection=check_connection,
            selection=selection,
            title=title,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Clip did not complete.")


@vault_clipper.command("history")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def history(db_path: Path | None) -> None:
    """Show recent clip tasks, newest first."""

    _emit_lines(CLIP_CONTROLLER.history(HistoryCommand(db_path=db_path)))


@vault_clipper.command("check-connection")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def check_connection(db_path: Path | None) -> None:
    """Check that the vault's Local REST API answers."""

    _emit_lines(CLIP_CONTROLLER.check_connection(ConnectionCommand(db_path=db_path)))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    vault_clipper()
