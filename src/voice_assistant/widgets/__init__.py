"""
Custom UI widgets for the voice assistant.
"""
from .input_area import InputArea
from .chat_log import ChatLog
from .status_bar import StatusBar

__all__ = ["InputArea", "ChatLog", "StatusBar"]
