"""rebootctl — declarative, rate-limited reboot resource."""

__version__ = "0.1.0"
