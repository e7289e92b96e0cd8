"""Command line interface entry point."""

from __future__ import annotations

import logging
import sys

import click

from bmocha.lifecycle import run_lifecycle

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@click.command(
    context_settings={"ignore_unknown_options": True},
    add_help_option=False,
)
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(ctx: click.Context, arguments: tuple[str, ...]) -> None:
    """Run Python test files locally or serve them to a browser."""
    ctx.exit(run_lifecycle(arguments))


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, stream=sys.stderr)
    try:
        exit_code = cli.main(args=list(argv), prog_name="bmocha", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return exit_code or 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
