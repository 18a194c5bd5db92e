"""Packaged resource definitions (YAML)."""
