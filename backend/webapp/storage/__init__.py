"""Adapters for the external stores the services depend on."""
