"""HTTP routers for operator-facing lifecycle endpoints."""
