"""Utility helpers for pantry-sync."""
