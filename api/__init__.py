"""Lead Verification Core API."""

__version__ = "1.0.0"
