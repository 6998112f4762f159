"""Utility functions to print formatted CLI messages for progress updates."""

from __future__ import annotations

import click

__all__ = ["echo_banner", "echo_detail", "echo_success", "echo_warning"]


def echo_banner(text: str) -> None:
    """Print a colourful banner announcing a processing step.

    Args:
        text: Banner text.
    """
    click.secho(f"\n=== {text} ===", fg="cyan")


def echo_detail(label: str, value: object) -> None:
    """Echo an indented ``label: value`` bullet."""
    click.echo(f"  • {label}: {value}")


def echo_success(text: str) -> None:
    """Echo a green success message prefixed with a tick.

    Args:
        text: Message to display.
    """
    click.secho(f"✓ {text}", fg="green")


def echo_warning(text: str) -> None:
    """Echo a yellow warning line."""
    click.secho(f"! {text}", fg="yellow")
