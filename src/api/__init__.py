"""HTTP API for the ladder: FastAPI app, routes, auth and request hardening."""
