"""Transcript module."""

from .store import ITranscriptStore, TranscriptStore

__all__ = ["ITranscriptStore", "TranscriptStore"]
