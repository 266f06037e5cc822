"""GoonGPT API: wallet authentication, sessions and rate limiting."""

__version__ = "0.1.0"
