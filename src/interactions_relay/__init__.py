"""Discord interactions relay: signed webhook in, deferred AI answers out."""

__version__ = "0.1.0"
