"""healthmon: scheduled health sampling for HTTP/TCP targets."""

__version__ = "1.0.0"
