"""CodFence - COD order risk and lifecycle engine."""

__version__ = "1.0.0"
