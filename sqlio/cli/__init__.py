"""Command line interface for sqlio."""
