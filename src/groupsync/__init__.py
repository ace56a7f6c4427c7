"""Client-side reconciliation of study-group state against the group service."""

__version__ = "0.1.0"
