"""
Voice Assistant: spoken turns with a chat model, read aloud, in the terminal.
"""

__version__ = "0.1.0"
