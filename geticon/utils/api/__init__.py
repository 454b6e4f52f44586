"""Helpers shared by the web API endpoints."""
