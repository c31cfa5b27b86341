"""API routers, one module per admin or participant area."""
