"""CALC/1.0 line protocol: arithmetic server and client."""

__version__ = "1.0.0"
