"""
LED Calibrator - locate colored markers in a live video stream.

This package thresholds each frame in HSV space, extracts the outer contours
of the matching blobs, and reports each blob's centroid and bounding size for
overlay onto the video.
"""

__version__ = "0.1.0"
__author__ = "LED Calibrator Team"

from .main import main

__all__ = ["main"]
