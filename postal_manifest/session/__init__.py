"""
Session Module for the Postal Manifest System.

This module provides:
    - ScanItem and Manifest data classes
    - SessionAggregator (append, finalize, resume)
    - CaptureController (serialized capture, pause/resume)
"""

from .aggregator import SessionAggregator, session_id_for, sort_items
from .capture import CaptureController, CaptureOutcome
from .models import VERIFIED, Manifest, ScanItem, SessionState

__all__ = [
    'CaptureController',
    'CaptureOutcome',
    'Manifest',
    'ScanItem',
    'SessionAggregator',
    'SessionState',
    'VERIFIED',
    'session_id_for',
    'sort_items',
]
