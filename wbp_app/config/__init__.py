"""
Configuration module.

Frozen parameter dataclasses, YAML loading with layered overrides, and
validation of the merged result.
"""
