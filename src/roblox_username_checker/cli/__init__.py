"""Command line interface for Roblox Username Checker."""
