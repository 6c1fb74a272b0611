"""Packet codec and analysis tools for the Dominions 4 network protocol."""

__version__ = "0.1.0"
