"""Routers HTTP (montados sob /api em api_main.create_app)."""
