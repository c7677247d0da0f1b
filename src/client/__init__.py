"""Async client for the Linket API with debounced editor autosave."""
