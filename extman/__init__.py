"""extman - command-line extension manager."""

__version__ = "0.1.0"
