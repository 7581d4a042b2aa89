"""Command line interface of kaeter."""
