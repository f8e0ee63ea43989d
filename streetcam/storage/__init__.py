"""Persistent user preferences."""
