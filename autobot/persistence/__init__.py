"""Whole-document JSON persistence."""

from autobot.persistence.json_store import JsonStore

__all__ = ["JsonStore"]
