"""Caller identity from bearer tokens."""
