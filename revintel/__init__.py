"""Sales-intelligence research for revenue analytics outreach."""

__version__ = "0.1.0"
