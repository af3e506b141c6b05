"""
txt2abs - Text to Absolute Format Converter
===========================================

This module implements the txt2abs command, which converts a text file
describing PDP-11 binary data into an absolute loader image (.abs).

Usage Examples
--------------
Basic conversion (writes boot.abs):
    $ txt2abs boot.txt

Explicit input and output, as in existing Makefiles:
    $ txt2abs --def 11/34 --in boot.txt --out boot.abs

Listing of every line and block:
    $ txt2abs --list boot.txt

The output file is only written when the input has no errors; a stale
output file from an earlier run is removed so that it cannot be mistaken
for a good image.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from absloader import __version__
from absloader.cli.errors import ExitCode, handle_cli_exception, setup_logging
from absloader.converter import ConverterConfig, convert_file, write_image


@click.command()
@click.argument(
    "input_file",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-i", "--in", "in_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Input text file (alternative to INPUT_FILE)",
)
@click.option(
    "-o", "--out", "output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output .abs file (default: input with .abs suffix)",
)
@click.option(
    "-l", "--list", "listing",
    is_flag=True,
    help="Print a listing of every line and block written",
)
@click.option(
    "-D", "--def", "defines",
    multiple=True,
    metavar="NAME",
    help="Define symbol, as with #define (can be repeated)",
)
@click.option(
    "--debug-cond", "--debug_cond", "debug_cond",
    is_flag=True,
    help="Show conditional state in the listing (implies --list)",
)
@click.option(
    "--max-nesting",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum #if/#ifdef nesting depth (default: unlimited)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output (debug logging)",
)
@click.version_option(version=__version__, prog_name="txt2abs")
def main(
    input_file: Optional[Path],
    in_file: Optional[Path],
    output: Optional[Path],
    listing: bool,
    defines: tuple[str, ...],
    debug_cond: bool,
    max_nesting: Optional[int],
    verbose: bool,
) -> None:
    """
    Convert a text description of PDP-11 binary data to absolute format.

    INPUT_FILE is the text description (.txt) to convert.

    \b
    Input syntax (all numbers octal):
        = nnnnnn                   set address origin
        nnnnnn [nnnnnn] [nnnnnn]   one to three 16-bit words
        b nnn                      single byte
        : nnnnnn                   check address of the previous word
        :: nnnnnn                  check address of the next word
        #define/#ifdef/#if 1/#if 0/#else/#endif, #warning, #error

    \b
    Examples:
        txt2abs boot.txt                              # Outputs boot.abs
        txt2abs --def 11/34 --in boot.txt --out boot.abs
        txt2abs --list boot.txt

    Details of the absolute format: www.pcjs.org/apps/pdp11/tapes/absloader
    """
    setup_logging(verbose)

    if input_file is not None and in_file is not None:
        raise click.UsageError("give the input file either as INPUT_FILE or with --in, not both")
    source = input_file or in_file
    if source is None:
        raise click.UsageError("missing input file")

    output_file = output if output is not None else source.with_suffix(".abs")
    listing = listing or debug_cond

    for name in defines:
        click.echo(f"--def {name}")

    config = ConverterConfig(
        listing=listing,
        predefined=defines,
        debug_conditionals=debug_cond,
        max_nesting=max_nesting,
    )

    try:
        result = convert_file(source, config)

        if listing:
            for line in result.listing:
                click.echo(line)
        else:
            for diagnostic in result.diagnostics:
                click.echo(str(diagnostic), err=True)

        if result.ok:
            written = write_image(result, output_file)
            if verbose:
                click.echo(f"Wrote {written} bytes ({len(result.blocks)} records) to {output_file}")
        elif output_file.exists():
            output_file.unlink()

        if listing or not result.ok:
            click.echo(result.summary(), err=not result.ok)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)

    if not result.ok:
        sys.exit(ExitCode.CONVERSION_ERROR)


if __name__ == "__main__":
    main()
