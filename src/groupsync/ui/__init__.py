"""View-facing layer for the group reconciliation services."""

from .groups import CardAction, GroupCard, GroupController, PrimaryControl

__all__ = ["CardAction", "GroupCard", "GroupController", "PrimaryControl"]
