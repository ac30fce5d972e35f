"""extforge - build and package browser extensions."""

__version__ = "0.1.0"
