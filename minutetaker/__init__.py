"""minutetaker - meeting recorder and minutes generator."""

__version__ = "0.1.0"
