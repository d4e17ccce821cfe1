"""Content Hub: versioned assets, publication lifecycle and public share links."""

__version__ = "0.1.0"
