"""Google Drive access confined to a single sandbox folder."""

__version__ = "1.0.0"
