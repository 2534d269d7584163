"""AirLink secure session and chunked transfer encryption engine."""

__version__ = "0.1.0"
