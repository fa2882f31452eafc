"""Sample sensor channels, from a measurement device or a simulator, and stream them over TCP."""

__version__ = "0.1.0"