"""Projection domain: data sources, mappings, settings and errors."""
