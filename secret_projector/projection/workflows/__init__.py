"""Manifest discovery, projection runs and rendering."""
