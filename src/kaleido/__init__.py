"""Kaleidoscope language front end: lexer, extensible-operator parser and tools."""

__version__ = "0.1.0"
