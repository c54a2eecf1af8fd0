"""Contract lifecycle service for a real-estate marketplace."""

__version__ = "0.1.0"
