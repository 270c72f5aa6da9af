"""Turns uploaded PDF documents into narrated voice-over scripts."""

__version__ = "0.1.0"
