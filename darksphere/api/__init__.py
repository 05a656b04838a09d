"""HTTP layer: FastAPI routers, DTOs and exception mapping."""
