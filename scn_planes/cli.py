"""CLI interface for scn-planes."""

import sys
from pathlib import Path

import click
from loguru import logger

from scn_planes import __version__
from scn_planes.errors import EXIT_ABORTED, EXIT_SUCCESS, EXIT_USAGE, ScnPlanesError
from scn_planes.metadata import format_selections
from scn_planes.models import ExtractOptions
from scn_planes.scanner import inspect_container, scan_container

LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level):
    # type: (str) -> None
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.enable("scn_planes")
    logger.add(sys.stderr, level=level.upper())


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("input", type=click.Path(path_type=Path))
@click.argument("output_prefix", type=str)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    envvar="SCN_PLANES_LOG_LEVEL",
    show_default=True,
    help="Logging level for stderr diagnostics",
)
@click.option("--verbose", "-v", is_flag=True, help="Shortcut for --log-level DEBUG")
@click.option("--quiet", "-q", is_flag=True, help="Do not print progress lines")
@click.option(
    "--strict",
    is_flag=True,
    envvar="SCN_PLANES_STRICT",
    help="Fail when a selected directory is missing from the file",
)
@click.option(
    "--bottom-up",
    is_flag=True,
    help="Write rows bottom-up, as the libtiff RGBA reader orders them",
)
@click.option(
    "--make-dirs",
    is_flag=True,
    help="Create the parent directory of OUTPUT_PREFIX if missing",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Print the directories that would be extracted and exit",
)
@click.version_option(__version__, prog_name="scn-planes")
def cli(input, output_prefix, log_level, verbose, quiet, strict, bottom_up, make_dirs, dry_run):
    """
    Convert a Leica SCN400F fluorescence slide into raw binary planes.

    Writes one file per channel of each field:
    OUTPUT_PREFIX + 'ImageA_ChannelB_XC_YD.bin', where A is the field index,
    B the channel (0 red, 1 green, 2 blue) and C/D the width/height.
    Files hold unsigned 8-bit samples, row-major, without header.

    \b
    Exit codes:
      0  success
      1  could not open the .scn file
      2  could not parse the XML description
      3  could not read an image from the .scn file
      4  could not allocate memory for an image
      5  could not write an output file
      64  usage error
      130 interrupted
    """
    configure_logging("DEBUG" if verbose else log_level)
    echo = (lambda line: None) if quiet else click.echo

    try:
        if dry_run:
            resolved = inspect_container(input)
            click.echo(format_selections(resolved, name=input.name))
            sys.exit(EXIT_SUCCESS)

        options = ExtractOptions(
            strict=strict, rows_bottom_up=bottom_up, make_dirs=make_dirs
        )
        summary = scan_container(input, output_prefix, options=options, progress=echo)
    except ScnPlanesError as e:
        logger.error(str(e))
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(e.exit_code)

    echo(f"✓ Wrote {len(summary.written)} plane(s)")
    if summary.missing:
        echo(f"⚠ {len(summary.missing)} selected directories were not found")
    sys.exit(EXIT_SUCCESS)


def main(argv=None):
    """Console entry point; usage errors exit with their own code."""
    try:
        rv = cli.main(args=argv, prog_name="scn-planes", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(EXIT_USAGE)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(EXIT_ABORTED)
    sys.exit(rv or EXIT_SUCCESS)


if __name__ == "__main__":
    main()
