"""Reusable UI components for the Coffee console."""

from .buttons import ButtonAffordance, create_action_buttons

__all__ = ["ButtonAffordance", "create_action_buttons"]
