from .capture_unavailable_screen import CaptureUnavailableScreen

__all__ = ["CaptureUnavailableScreen"]
