# apps/core/views.py
import logging

from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)


def get_database_status():
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
        return 'healthy'
    except DatabaseError as e:
        logger.error(f"Health check database error: {e}")
        return 'unhealthy'


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    """Liveness probe for the load balancer"""
    database = get_database_status()
    healthy = database == 'healthy'
    return Response(
        {
            'status': 'ok' if healthy else 'degraded',
            'database': database,
            'timestamp': timezone.now().isoformat(),
        },
        status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
