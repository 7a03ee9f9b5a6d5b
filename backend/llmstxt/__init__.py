"""llms.txt generation worker and API."""

__version__ = "1.0.0"
