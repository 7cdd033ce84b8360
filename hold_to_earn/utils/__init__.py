"""Shared utilities: result stores and HTTP retry."""
