"""HTTP routers and exception handlers."""
