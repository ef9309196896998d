"""Outer surfaces (HTTP and CLI)."""
