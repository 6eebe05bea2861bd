"""Test fixtures for autostruct."""
