"""CLI commands for autostruct."""
