"""Infrastructure layer — gallery and Automation account clients, dependency graph.

This layer depends on stdlib, domain records, and third-party libs (httpx, NetworkX).
It must never import from services, commands, or output.
The service layer bridges between the clients and the rollout engine.
"""
