"""
Core views providing infrastructure endpoints.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for container and load balancer probes.

    Returns 200 with ``{"status": "healthy", "database": "connected"}`` when
    the database answers, 503 otherwise.
    """
    health_status = {"status": "healthy", "database": "connected"}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError:
        logger.exception("Health check could not reach the database")
        health_status = {"status": "unhealthy", "database": "disconnected"}
        return JsonResponse(health_status, status=503)

    return JsonResponse(health_status)
