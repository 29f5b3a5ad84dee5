"""Caching, upstream GitHub access and catalog orchestration."""
