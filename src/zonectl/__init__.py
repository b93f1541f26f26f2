"""zonectl: claimed-territory management for a shared game world."""

__version__ = "0.4.0"
