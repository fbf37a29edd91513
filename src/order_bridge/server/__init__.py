"""HTTP server: FastAPI app factory, routes and dependencies."""
