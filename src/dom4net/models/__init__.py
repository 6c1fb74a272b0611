"""Data models for recorded packet captures."""

from .capture import Capture, CaptureEntry, export_capture, load_capture
