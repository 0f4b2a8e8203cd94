"""HTTP middleware: error mapping, metrics and rate limiting."""
