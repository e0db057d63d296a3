"""Plotting helpers for decoded sample tables."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd


def generate_plots(samples: pd.DataFrame, output_dir: Path) -> Path:
    plt = _require_matplotlib()
    output_dir.mkdir(parents=True, exist_ok=True)
    fig, axes = plt.subplots(2, 1, figsize=(12, 7), sharex=True)

    _plot_acceleration(samples, axes[0])
    _plot_adc_channels(samples, axes[1])

    fig.tight_layout()
    out_path = output_dir / "samples.png"
    fig.savefig(out_path, dpi=200)
    plt.close(fig)
    return out_path


def _plot_acceleration(samples: pd.DataFrame, ax) -> None:
    for name, color in (("ax", "tab:red"), ("ay", "tab:green"), ("az", "tab:blue")):
        ax.plot(samples["frame_index"], samples[name], marker=".", color=color, label=name)
    ax.set_title("Acceleration")
    ax.set_ylabel("g")
    ax.legend(loc="best")


def _plot_adc_channels(samples: pd.DataFrame, ax) -> None:
    for name, color in (("vol", "tab:orange"), ("ecg", "tab:purple")):
        series = samples[name]
        if series.notna().any():
            ax.plot(samples["frame_index"], series, marker=".", color=color, label=name)
    # frames whose trailer did not check out
    bad = samples[~samples["trailer_valid"].astype(bool)]
    for index in bad["frame_index"]:
        ax.axvline(index, color="gray", linewidth=0.6, linestyle=":")
    ax.set_title("Super-capacitor voltage / ECG")
    ax.set_xlabel("Frame index")
    ax.set_ylabel("V")
    if ax.get_legend_handles_labels()[0]:
        ax.legend(loc="best")


def _require_matplotlib() -> Any:
    """Import pyplot on the non-interactive backend, or explain why plotting is unavailable."""
    try:
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("matplotlib is required for plotting; install sapdec[plot]") from exc
    except Exception as exc:  # pragma: no cover - environment issues
        raise RuntimeError(f"matplotlib backend unavailable: {exc}") from exc
    return plt
