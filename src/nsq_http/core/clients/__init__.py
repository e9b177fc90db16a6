"""HTTP clients for the NSQ administrative API."""
