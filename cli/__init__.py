"""
CLI tools for the Sticker Pack Server.

Available commands:
- python -m cli.packs    : Inspect a profile's packs in the configured bucket
- python -m cli.mirror   : Check that the web UI mirror clones and refreshes
"""
