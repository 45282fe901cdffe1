"""SensiDoc booking and metered AI advisory backend."""

__version__ = "1.0.0"
