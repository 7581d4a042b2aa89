"""Typer commands of the kaeter CLI."""
