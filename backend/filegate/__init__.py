"""Streaming HTTP gateway over an object store."""
