#!/usr/bin/env python3
"""Inspect or flush the pymixpanel offline store.

Elements that could not be delivered stay in the local store until a
client drains it.  This script drains it on demand, or only lists what is
waiting.

Usage
-----
::

    python scripts/flush_offline.py                 # send pending elements
    python scripts/flush_offline.py --list          # only show them
    python scripts/flush_offline.py --store ./mixpanel.dat --json

Configuration is read from ``MIXPANEL_*`` environment variables (see
``MixpanelConfig.from_env``).

Options::

    --store PATH     Store file (default: MIXPANEL_STORE_PATH or ~/.pymixpanel/mixpanel.dat)
    --list           List pending elements without sending them
    --json           Output machine-readable JSON
    --verbose, -v    Enable debug logging
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

from pymixpanel import MixpanelClient, MixpanelConfig, PendingElements  # noqa: E402


def _summary(pending: PendingElements) -> dict[str, Any]:
    return {
        "events": [{"id": str(e.id), "event": e.event} for e in pending.events],
        "profile_updates": [{"id": str(u.id), "operation": u.operation.value} for u in pending.profile_updates],
    }


def _print_summary(title: str, pending: PendingElements) -> None:
    print(f"── {title} ──")
    print(f"  events          : {len(pending.events)}")
    for event in pending.events:
        print(f"    {event.id}  {event.event}")
    print(f"  profile updates : {len(pending.profile_updates)}")
    for update in pending.profile_updates:
        print(f"    {update.id}  {update.operation.value}")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect or flush the pymixpanel offline store.")
    parser.add_argument("--store", help="Store file to use")
    parser.add_argument("--list", action="store_true", dest="list_only", help="List pending elements only")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.store:
        overrides["store_path"] = Path(args.store).expanduser()
    config = MixpanelConfig.from_env(**overrides)

    async with MixpanelClient(config) as client:
        before = await asyncio.to_thread(client.store.load)
        result: dict[str, Any] = {"store": str(config.store_path), "pending": _summary(before)}

        if args.list_only:
            if args.json_mode:
                print(json.dumps(result, indent=2))
            else:
                _print_summary(f"pending in {config.store_path}", before)
            return 0

        delivered = await client.try_send_local_elements()
        after = await asyncio.to_thread(client.store.load)
        result["delivered"] = delivered
        result["remaining"] = len(after)

    if args.json_mode:
        print(json.dumps(result, indent=2))
    else:
        _print_summary(f"pending in {config.store_path}", before)
        print(f"  delivered       : {delivered}")
        print(f"  remaining       : {len(after)}")
    return 0 if len(after) == 0 else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
