"""Dependency graph over the managed module set."""
