"""IDList autocompletion enumerator.

Drives an Android device running the game, cycles the chat box's
tab-completion and reads each completion back through OCR.
"""

__version__ = "0.1.0"
