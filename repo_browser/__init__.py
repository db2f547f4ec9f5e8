"""Browse a hosted repository as a directory listing and download its files."""

__version__ = "1.0.0"
