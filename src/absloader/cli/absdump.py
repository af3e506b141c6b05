"""
absdump - Absolute Format Image Inspector
=========================================

Lists the records of an absolute loader image and verifies their
signatures, lengths and checksums.

Usage Examples
--------------
List records:
    $ absdump boot.abs

List records with their payload as octal words:
    $ absdump --data boot.abs
"""

from pathlib import Path

import click

from absloader import __version__
from absloader.cli.errors import handle_cli_exception, setup_logging
from absloader.reader import AbsReader
from absloader.records import AbsBlock


def format_payload(block: AbsBlock, words_per_line: int = 8) -> list[str]:
    """
    Format a block's payload as octal words, one address per line.

    A trailing odd byte is shown as a 3-digit octal byte.
    """
    lines = []
    payload = block.payload
    step = 2 * words_per_line
    for start in range(0, len(payload), step):
        chunk = payload[start:start + step]
        fields = []
        for i in range(0, len(chunk) - 1, 2):
            fields.append(f"{chunk[i] | (chunk[i + 1] << 8):06o}")
        if len(chunk) % 2:
            fields.append(f"{chunk[-1]:03o}")
        lines.append(f"  {(block.origin + start) & 0xFFFF:06o}: {' '.join(fields)}")
    return lines


@click.command()
@click.argument(
    "abs_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-d", "--data",
    is_flag=True,
    help="Also dump each block's payload as octal words",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output (debug logging)",
)
@click.version_option(version=__version__, prog_name="absdump")
def main(abs_file: Path, data: bool, verbose: bool) -> None:
    """
    List and verify the records of an absolute loader image.

    \b
    Output format:
        Kind  Origin  Length  Checksum
        BLK   001000  000005  0063
        HALT  000001  000000  0370
    """
    setup_logging(verbose)

    try:
        reader = AbsReader.from_file(abs_file)

        click.echo(f"{'Kind':<5} {'Origin':<7} {'Length':<7} Checksum")
        click.echo("-" * 30)
        for block in reader.blocks:
            click.echo(
                f"{block.kind.value:<5} {block.origin:06o}  "
                f"{len(block.payload):06o}  {block.checksum:04o}"
            )
            if data and block.payload:
                for line in format_payload(block):
                    click.echo(line)

        info = reader.get_info()
        count = info["block_count"]
        click.echo("-" * 30)
        click.echo(
            f"{count} block{'s' if count != 1 else ''}, {info['payload_bytes']} bytes, "
            f"all checksums valid"
        )
        start = info["start_address"]
        click.echo("Halts after loading" if start is None else f"Starts at {start:06o}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
