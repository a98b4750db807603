"""Domain layer — module records, dependency parsing, errors, name filters.

This layer depends only on the stdlib.
It must never import from services, infrastructure, commands, or config.
"""
