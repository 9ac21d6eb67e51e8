# =============================================================================
# src/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Command-line tools for operators who need to look at the portal's cached
# content outside the web server.  Each submodule is a self-contained
# utility that can be run directly via `python -m src.cli.<module>`.
#
#   CONTENT (content.py)
#      Reads one admin content feed through the cached data accessor:
#      cache first, backend on a miss or a stale entry.  Can also force a
#      refetch or drop the persisted entry.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - The CLI constructs its own client and storage rather than importing
#     src.main, which would build the whole FastAPI app on import.
# =============================================================================

"""CLI tools for the church portal.

- ``python -m src.cli.content`` - print a cached admin content feed.
"""
