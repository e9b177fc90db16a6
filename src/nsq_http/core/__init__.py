"""Core client components."""
