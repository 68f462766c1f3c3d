#!/usr/bin/env python3
"""Replay recorded telemetry snapshots into an in-memory state tree.

Each input file holds one JSON snapshot as sent by a controller. The device id
is taken from ``--device`` or, when omitted, from the snapshot's
``deviceId`` field.

Usage::

    python scripts/replay_snapshots.py dumps/*.json
    python scripts/replay_snapshots.py --device ccu-1 --json snapshot.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pymaxxi import InMemoryStateStore, MaxxiAdapter, MaxxiConfig  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("files", nargs="+", type=Path, help="Snapshot JSON files, replayed in order")
    parser.add_argument("--device", help="Device id to use for every snapshot")
    parser.add_argument("--namespace", default="maxxi-charge.0")
    parser.add_argument("--json", action="store_true", help="Print the resulting tree as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


def _device_id(args: argparse.Namespace, snapshot: Any, path: Path) -> str:
    if args.device:
        return str(args.device)
    if isinstance(snapshot, dict) and snapshot.get("deviceId"):
        return str(snapshot["deviceId"])
    return path.stem


async def _replay(args: argparse.Namespace) -> int:
    store = InMemoryStateStore()
    failures = 0
    async with MaxxiAdapter(MaxxiConfig(namespace=args.namespace), store, ip_resolver=lambda: None) as adapter:
        for path in args.files:
            snapshot = json.loads(path.read_text(encoding="utf-8"))
            report = await adapter.handle_snapshot(_device_id(args, snapshot, path), snapshot)
            failures += len(report.failed)
            for outcome in report.failed:
                print(f"FAILED {outcome.path}: {outcome.error}", file=sys.stderr)

        states = store.states
        objects = store.objects
        if args.json:
            tree = {
                path: {
                    "type": objects[path].common.type,
                    "role": objects[path].common.role,
                    "val": states[path].val,
                }
                for path in sorted(states)
            }
            print(json.dumps(tree, indent=2, ensure_ascii=False))
        else:
            for path in sorted(states):
                common = objects[path].common
                print(f"{path} = {states[path].val!r}  [{common.type}, {common.role}]")
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    return asyncio.run(_replay(args))


if __name__ == "__main__":
    sys.exit(main())
