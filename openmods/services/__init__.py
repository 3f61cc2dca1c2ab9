"""Domain services behind the CLI commands."""
