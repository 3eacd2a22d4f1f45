"""Clients for the external services the workflow consumes."""
