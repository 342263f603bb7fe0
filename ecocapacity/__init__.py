"""Dynamic ecological capacity and alerting engine."""

__version__ = "0.1.0"
