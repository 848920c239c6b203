"""streamget - robust capture of live HTTP streams to disk."""

__version__ = "0.1.0"
