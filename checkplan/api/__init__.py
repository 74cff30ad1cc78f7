"""HTTP adapter: FastAPI routers over the scheduling engine."""
