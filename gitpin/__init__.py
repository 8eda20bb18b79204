"""Check out a single pinned commit of a remote git repository."""

__version__ = "0.3.0"
