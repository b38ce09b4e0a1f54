"""Dialogue choice selection and application."""

from .choice_selector import LEAVE_CHOICE, ChoiceSelector, apply_choice

__all__ = ["LEAVE_CHOICE", "ChoiceSelector", "apply_choice"]
