from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .api import perform, select_instances
from .core.config import load_config
from .core.diagnostics import JamieError
from .core.instance import ACTIONS
from .core.logging import LOG_LEVELS, configure_console


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="jamie")
    parser.add_argument("-c", "--config", required=False, help="path to .jamie.yml")
    parser.add_argument("-l", "--log-level", choices=sorted(LOG_LEVELS), required=False)
    parser.add_argument("-b", "--backend", required=False, help="default backend plugin")
    parser.add_argument("--logs-dir", required=False, help="write logs and events.jsonl here")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list")
    for action in ACTIONS:
        cmd = sub.add_parser(action)
        cmd.add_argument("pattern", nargs="?", default="all")

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config, backend_plugin=args.backend, log_level=args.log_level)
        configure_console(config.log_level)

        if args.command == "list":
            _list(config.instances)
            return

        instances = select_instances(config.instances, args.pattern)
        perform(args.command, instances, logs_dir=Path(args.logs_dir) if args.logs_dir else None)
    except JamieError as exc:
        print(json.dumps(exc.diagnostic.to_dict(), indent=2, sort_keys=True), file=sys.stderr)
        raise SystemExit(1)


def _list(instances) -> None:
    rows = [("Instance", "Suite", "Platform", "Backend")]
    rows.extend(
        (item.name, item.suite.name, item.platform.name, item.backend.name) for item in instances
    )
    widths = [max(len(row[idx]) for row in rows) for idx in range(4)]
    for row in rows:
        print("  ".join(value.ljust(width) for value, width in zip(row, widths)).rstrip())


if __name__ == "__main__":
    main()
