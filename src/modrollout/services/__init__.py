"""Service layer — catalog resolution, layering, rollout, polling.

Services may import from domain, config, and infrastructure layers.
They must never import from commands or output.
"""
