from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..dependencies import get_pull_request_service
from ..serializers import AssignmentsStatsSerializer
from .common import error_response


@api_view(['GET'])
def assignments_stats(request):
    """GET /stats/assignments - Количество назначений по пользователям и по PR"""
    try:
        stats = get_pull_request_service().get_assignments_stats()
    except Exception as e:
        return error_response(e)

    return Response(AssignmentsStatsSerializer(stats).data)
