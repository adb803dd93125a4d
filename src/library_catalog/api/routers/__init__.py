"""Routers for each catalog resource, mounted under ``/api``."""
