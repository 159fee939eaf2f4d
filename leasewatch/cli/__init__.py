"""leasewatch CLI — Typer-based command-line interface.

Provides the ``leasewatch`` command with subcommands for the live lease
view, a one-shot lease table and a raw event tail.

All output uses Rich for formatted terminal display.
"""
