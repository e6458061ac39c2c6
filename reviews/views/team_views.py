from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..dependencies import get_team_service
from ..domain import Team, User
from ..serializers import TeamMemberSerializer, TeamSerializer
from .common import error_response, request_body, validation_response


@api_view(['POST'])
def team_add(request):
    """POST /team/add - Создать команду с участниками"""
    try:
        body = request_body(request)
    except Exception as e:
        return error_response(e)

    serializer = TeamSerializer(data=body)
    if not serializer.is_valid():
        return validation_response(serializer.errors)

    data = serializer.validated_data
    team = Team(
        name=data['name'],
        members=[
            User(id=m['id'], username=m['username'], is_active=m['is_active']) if m is not None else None
            for m in data.get('members', [])
        ],
    )
    try:
        created = get_team_service().create_team(team)
    except Exception as e:
        return error_response(e)

    return Response({
        'team': TeamSerializer(created).data
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
def team_get(request):
    """GET /team/get - Получить команду с участниками"""
    team_name = request.query_params.get('team_name', '')
    try:
        members = get_team_service().get_team_users(team_name)
    except Exception as e:
        return error_response(e)

    return Response({
        'team_name': team_name.strip(),
        'members': TeamMemberSerializer(members, many=True).data,
    })


@api_view(['POST'])
def team_deactivate(request):
    """POST /team/deactivate - Деактивировать всех участников команды"""
    try:
        body = request_body(request)
        result = get_team_service().deactivate_team_users(body.get('team_name'))
    except Exception as e:
        return error_response(e)

    return Response({
        'team_name': result.team_name,
        'deactivated_count': result.deactivated_count,
    })
