from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--x-res", "160", "--y-res", "120", "--tile-size", "64"]


@dataclass
class Example:
    name: str
    args: list[str]
    output: Path

    def full_args(self) -> list[str]:
        return [sys.executable, "tiles.py", *self.args, "--output", str(self.output)]


def _example(name: str, args: list[str], filename: str) -> Example:
    return Example(name=name, args=[*BASE_ARGS, *args], output=EXAMPLES_ROOT / name / filename)


EXAMPLES: list[Example] = [
    _example("default-mosaic", [], "overview.png"),
    _example("zoom", ["--zoom", "64", "--x-center", "-0.7435", "--y-center", "0.1314"], "seahorse-valley.png"),
    _example("tile", ["--mode", "tile", "--re-min", "-0.8", "--im-min", "0.05", "--re-max", "-0.7", "--im-max", "0.15"], "tile.png"),
    _example("zoom-hint", ["--mode", "tile", "--zoom-hint", "4096"], "deep-budget.png"),
    _example("base-iterations", ["--zoom", "16", "--base-iterations", "64"], "base-64.png"),
    _example("max-iterations", ["--max-iterations", "500"], "fixed-budget.png"),
    _example("colormap", ["--palette", "twilight_shifted", "--palette-points", "12"], "twilight.png"),
    _example("linear", ["--interpolation", "linear"], "linear-palette.png"),
    _example("palette-size", ["--palette-size", "16"], "banded.png"),
    _example("no-flip", ["--no-flip"], "mirrored.png"),
    _example("workers", ["--workers", "1"], "single-worker.png"),
    _example("format", ["--format", "jpg"], "overview.jpg"),
    _example("verbose", ["--verbose"], "verbose.png"),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _prepare(example: Example) -> None:
    _ensure_clean([example.output.parent])
    example.output.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    if not example.output.is_file():
        raise RuntimeError(f"Expected file {example.output} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        subprocess.run(example.full_args(), check=True)
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
