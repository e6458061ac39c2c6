from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..dependencies import get_pull_request_service, get_user_service
from ..serializers import PullRequestShortSerializer, SetActiveSerializer, UserSerializer
from .common import error_response, request_body, validation_response


@api_view(['POST'])
def user_set_active(request):
    """POST /users/setIsActive - Установить флаг активности пользователя"""
    try:
        body = request_body(request)
    except Exception as e:
        return error_response(e)

    serializer = SetActiveSerializer(data=body)
    if not serializer.is_valid():
        return validation_response(serializer.errors)

    try:
        user = get_user_service().set_user_active(
            serializer.validated_data['user_id'],
            serializer.validated_data['is_active'],
        )
    except Exception as e:
        return error_response(e)

    return Response({
        'user': UserSerializer(user).data
    })


@api_view(['GET'])
def users_get_review(request):
    """GET /users/getReview - Получить PR'ы, где пользователь назначен ревьювером"""
    user_id = request.query_params.get('user_id', '')
    try:
        prs = get_pull_request_service().get_user_reviews(user_id)
    except Exception as e:
        return error_response(e)

    return Response({
        'user_id': user_id.strip(),
        'pull_requests': PullRequestShortSerializer(prs, many=True).data,
    })
