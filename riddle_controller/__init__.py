"""Session controller for the hand-sign riddle game."""

__version__ = "0.1.0"
