"""HTTP surface of the service (FastAPI routers and dependency wiring)."""
