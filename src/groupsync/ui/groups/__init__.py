"""Group view bridge: cards and the controller."""

from .controller import GroupController
from .models import CardAction, GroupCard, PrimaryControl

__all__ = ["CardAction", "GroupCard", "GroupController", "PrimaryControl"]
