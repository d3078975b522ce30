"""Command line interface modules.

This package provides the operator-facing entry points:
- The Typer application with panel, trust and socks subcommands
- The interactive menu-driven console
- Rich table rendering for users and service status

The command modules stay thin: every lookup, selection and write goes
through the core package.
"""
