"""Command-line interface for prefixlink."""
