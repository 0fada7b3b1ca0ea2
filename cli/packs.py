#!/usr/bin/env python3
"""
Sticker pack CLI for the Sticker Pack Server.

Runs the same index / aggregation code as the server against the bucket
configured in the environment (.env is read).

Usage:
    python -m cli.packs index alice                 # Sorted manifest keys
    python -m cli.packs emotes alice                # Merged emote catalog
    python -m cli.packs get /alice/cats.json        # Raw object to stdout
    python -m cli.packs get /alice/cat.png -o cat.png
"""

import argparse
import json
import sys

from config import ServerConfig, ConfigMissingError
from storage import PackStorage, StoreError
from packs import PackIndexBuilder, EmoteAggregator, ManifestParseError


def build_components(config: ServerConfig):
    storage = PackStorage.from_config(config)
    index_builder = PackIndexBuilder(storage, homeserver_url=config.homeserver_url)
    aggregator = EmoteAggregator(index_builder, storage)
    return storage, index_builder, aggregator


def cmd_index(args, config: ServerConfig) -> int:
    """Print the pack index for a profile"""
    _, index_builder, _ = build_components(config)
    index = index_builder.build_index(args.profile)
    print(json.dumps(index.model_dump(), indent=2))
    return 0


def cmd_emotes(args, config: ServerConfig) -> int:
    """Print the merged emote catalog for a profile"""
    _, _, aggregator = build_components(config)
    catalog = aggregator.aggregate(args.profile)
    print(json.dumps(catalog.model_dump(), indent=2))
    if args.verbose:
        print(f"{len(catalog.images)} emote(s)", file=sys.stderr)
    return 0


def cmd_get(args, config: ServerConfig) -> int:
    """Fetch one object"""
    storage, _, _ = build_components(config)
    obj = storage.get_object(args.key)
    if not obj.ok:
        print(f"Error: store answered {obj.status_code} for {args.key}", file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, 'wb') as f:
            f.write(obj.body)
        print(f"Wrote {len(obj.body)} bytes to {args.output}")
    else:
        sys.stdout.buffer.write(obj.body)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Inspect sticker packs in the configured bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index", help="List a profile's pack manifests")
    index_parser.add_argument("profile", help="Profile name")
    index_parser.set_defaults(func=cmd_index)

    emotes_parser = subparsers.add_parser("emotes", help="Build a profile's emote catalog")
    emotes_parser.add_argument("profile", help="Profile name")
    emotes_parser.add_argument("--verbose", "-v", action="store_true", help="Print emote count")
    emotes_parser.set_defaults(func=cmd_emotes)

    get_parser = subparsers.add_parser("get", help="Fetch a raw object")
    get_parser.add_argument("key", help="Object key")
    get_parser.add_argument("--output", "-o", help="Write to file instead of stdout")
    get_parser.set_defaults(func=cmd_get)

    args = parser.parse_args(argv)

    if "/" in getattr(args, "profile", ""):
        print("Error: profile must not contain '/'", file=sys.stderr)
        return 2

    try:
        config = ServerConfig.from_env()
    except ConfigMissingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return args.func(args, config)
    except (StoreError, ManifestParseError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
