"""svcwatch — lightweight HTTP uptime monitor."""

__version__ = "0.1.0"
