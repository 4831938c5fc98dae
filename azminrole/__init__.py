"""Installable entry point for the azminrole command line."""

__version__ = "0.1.0"
