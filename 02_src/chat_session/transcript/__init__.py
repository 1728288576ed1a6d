"""Transcript module."""

from .transcript import MessageTranscript

__all__ = ["MessageTranscript"]
