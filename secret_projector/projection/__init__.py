"""Projection of manifests into secret payloads."""
