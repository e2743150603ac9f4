"""Temperature correction and pass/fail evaluation engine for equipment test reports."""

__version__ = "0.1.0"
