"""Persistence module for MeetScribe."""

from .history_store import HistoryStore

__all__ = ["HistoryStore"]
