"""Command-line interface for xurl."""
