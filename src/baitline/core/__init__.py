"""Shared recipient models, template executor, and errors."""
