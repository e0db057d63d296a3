"""Command line interface for the sapdec package."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .bits import format_hex
from .catalog import PacketVariant, variant_from_name
from .data import decode_capture
from .decoder import FRAME_SIZE, DecodeStatus, decode_with_status
from .host.runner import run as run_host
from .parser import channel_names, parse
from .plotting import generate_plots

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="SAP telemetry frame decoder.",
)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_variant(name: Optional[str]) -> Optional[PacketVariant]:
    if name is None:
        return None
    try:
        return variant_from_name(name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--variant") from exc


@app.command()
def decode(
    frame_hex: str = typer.Argument(..., help=f"Raw frame as {FRAME_SIZE * 2} hex digits."),
    variant: Optional[str] = typer.Option(None, "--variant", help="Only search for this packet variant."),
) -> None:
    """Decode a single raw frame and print its calibrated channels."""

    try:
        frame = bytes.fromhex(frame_hex.replace(" ", ""))
    except ValueError as exc:
        raise typer.BadParameter(f"Not a hex string: {exc}", param_hint="FRAME_HEX") from exc

    status, packet = decode_with_status(frame, _resolve_variant(variant))
    if packet is None:
        typer.echo(f"No packet: {status.value}")
        raise typer.Exit(code=1)

    typer.echo(f"{packet.variant.name} at bit {packet.bit_offset}")
    typer.echo(format_hex(packet.payload, "payload"))
    if status is DecodeStatus.TRAILER_MISMATCH:
        typer.echo("[warning] trailer mismatch")
    for name, value in zip(channel_names(packet.variant), parse(packet)):
        typer.echo(f"{name} = {value:.6f}")


@app.command("decode-file")
def decode_file(
    input_path: Path = typer.Option(..., "--in", help="Binary capture of 32-byte frames.", exists=True, readable=True),
    out: Path = typer.Option(..., "--out", help="Output CSV for calibrated samples."),
    variant: Optional[str] = typer.Option(None, "--variant", help="Only search for this packet variant."),
    plot_dir: Optional[Path] = typer.Option(None, "--plot", help="Write a sample plot into this directory."),
) -> None:
    """Decode a capture file and write the calibrated samples as CSV."""

    df, stats = decode_capture(input_path, expected_variant=_resolve_variant(variant))
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)

    if plot_dir is not None:
        try:
            figure_path = generate_plots(df, plot_dir)
            typer.echo(f"Plot written to {figure_path}")
        except RuntimeError as exc:
            typer.echo(f"[warning] plotting skipped: {exc}")

    typer.echo(
        "frames={frames} ok={ok} trailer_mismatch={trailer_mismatch} "
        "header_not_found={header_not_found} invalid_length={invalid_length}".format(**stats)
    )
    typer.echo(f"{len(df)} samples written to {out}")


app.command("run")(run_host)


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
