"""Roblox Username Checker - bulk availability checks with adaptive pacing."""

__version__ = "0.1.0"
