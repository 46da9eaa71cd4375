"""Municipal resident registry: bundle sanitization and multi-station reconciliation."""

__version__ = "2.5.0"
