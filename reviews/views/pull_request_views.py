from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..dependencies import get_pull_request_service
from ..serializers import PullRequestSerializer
from .common import error_response, request_body


@api_view(['POST'])
def pullrequest_create(request):
    """POST /pullRequest/create - Создать PR и назначить ревьюверов"""
    try:
        body = request_body(request)
        pr = get_pull_request_service().create_pull_request(
            body.get('pull_request_id'),
            body.get('pull_request_name'),
            body.get('author_id'),
        )
    except Exception as e:
        return error_response(e)

    return Response({
        'pr': PullRequestSerializer(pr).data
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
def pullrequest_merge(request):
    """POST /pullRequest/merge - Пометить PR как MERGED"""
    try:
        body = request_body(request)
        pr = get_pull_request_service().merge_pull_request(body.get('pull_request_id'))
    except Exception as e:
        return error_response(e)

    return Response({
        'pr': PullRequestSerializer(pr).data
    })


@api_view(['POST'])
def pullrequest_reassign(request):
    """POST /pullRequest/reassign - Переназначить ревьювера"""
    try:
        body = request_body(request)
        result = get_pull_request_service().reassign_reviewer(
            body.get('pull_request_id'),
            body.get('old_user_id'),
        )
    except Exception as e:
        return error_response(e)

    return Response({
        'pr': PullRequestSerializer(result.pr).data,
        'replaced_by': result.replaced_by,
    })
