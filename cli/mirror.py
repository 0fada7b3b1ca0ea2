#!/usr/bin/env python3
"""
Web UI mirror CLI for the Sticker Pack Server.

Clones the upstream web UI into a temporary mirror exactly like the server does
at startup, then optionally runs refreshes, printing each result. The mirror is
removed afterwards.

Usage:
    python -m cli.mirror check
    python -m cli.mirror check --refreshes 3 --interval 10
    python -m cli.mirror check --repo-url https://github.com/maunium/stickerpicker --branch master
"""

import argparse
import json
import os
import sys
import time

from dotenv import load_dotenv

from config import DEFAULT_REPO_URL, DEFAULT_BRANCH, DEFAULT_GIT_TIMEOUT
from mirror import MirrorSynchronizer, SyncError

load_dotenv()


def count_files(path) -> int:
    total = 0
    for _, _, files in os.walk(path):
        total += len(files)
    return total


def cmd_check(args) -> int:
    """Clone, report, refresh"""
    mirror = MirrorSynchronizer(
        args.repo_url,
        branch=args.branch,
        git_timeout=args.timeout,
        snapshot_grace=0,
    )

    print(f"Cloning {args.repo_url} ({args.branch})...")
    try:
        mirror.initialize()
    except SyncError as e:
        print(f"Error: {e}")
        mirror.close()
        return 1

    try:
        web_dir = mirror.web_dir
        files = count_files(web_dir) if web_dir.is_dir() else 0
        print(f"Head:       {mirror.head}")
        print(f"Web root:   {web_dir}")
        print(f"Web files:  {files}")

        failures = 0
        for i in range(args.refreshes):
            if i > 0 and args.interval > 0:
                time.sleep(args.interval)
            result = mirror.refresh()
            print(f"Refresh {i + 1}: {json.dumps(result.to_dict())}")
            if not result.ok:
                failures += 1

        return 1 if failures else 0
    finally:
        mirror.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Web UI mirror tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Clone and refresh a temporary mirror")
    check_parser.add_argument("--repo-url", default=os.getenv("MIRROR_REPO_URL") or DEFAULT_REPO_URL,
                              help="Upstream repository URL")
    check_parser.add_argument("--branch", default=os.getenv("MIRROR_BRANCH") or DEFAULT_BRANCH,
                              help="Branch to track")
    check_parser.add_argument("--refreshes", type=int, default=1,
                              help="Number of refreshes to run after cloning")
    check_parser.add_argument("--interval", type=float, default=0,
                              help="Seconds to wait between refreshes")
    check_parser.add_argument("--timeout", type=float, default=DEFAULT_GIT_TIMEOUT,
                              help="Timeout for git network operations (seconds)")
    check_parser.set_defaults(func=cmd_check)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
