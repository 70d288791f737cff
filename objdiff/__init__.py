"""Symbol, code and data diffing for object files described in memory."""

__version__ = "0.1.0"