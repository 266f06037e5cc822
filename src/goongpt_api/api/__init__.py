"""HTTP layer for the GoonGPT API."""
