"""Standalone commands."""
