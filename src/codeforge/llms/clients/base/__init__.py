"""Shared base classes for provider adapters."""
