"""Endpoints owned by the server core (not by pluggable route modules).

- status: liveness probe at GET /api/status
"""
