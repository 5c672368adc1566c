"""Clients for third-party services backing the assistant's tools."""
