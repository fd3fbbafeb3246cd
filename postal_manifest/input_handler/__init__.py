"""
Input Handler Module for the Postal Manifest System.

This module prepares captured label images for recognition:
    - Image decoding and validation
    - Orientation and size normalization
    - JPEG/base64 packaging
"""

from .image_processor import ImageProcessor

__all__ = ['ImageProcessor']
