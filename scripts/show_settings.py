#!/usr/bin/env python3
"""Print the generation settings stored in images written by fluxgen."""

import sys
from pathlib import Path

from fluxgen.exif import read_generation_metadata


def show_settings(paths: list[Path]) -> int:
    missing = 0
    for path in paths:
        settings = read_generation_metadata(path)
        if not settings:
            print(f"{path}: no generation settings found")
            missing += 1
            continue
        print(f"{path}:")
        for key, value in settings.items():
            print(f"  {key}: {value}")
        if "seed" in settings:
            print(f"  reproduce with: -S {settings['seed']}")
    return 1 if missing else 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: show_settings.py IMAGE [IMAGE ...]", file=sys.stderr)
        raise SystemExit(2)
    raise SystemExit(show_settings([Path(arg) for arg in sys.argv[1:]]))
