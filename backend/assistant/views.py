import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.utils import error_response, first_error
from .handlers import answer
from .intents import match_intent
from .serializers import AssistantQuerySerializer

logger = logging.getLogger('backend.assistant')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def assistant_query(request):
    """Answer a free-text question with a canned inventory query"""
    serializer = AssistantQuerySerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))

    message = serializer.validated_data['message']
    intent, params = match_intent(message)
    logger.info(f"Assistant intent '{intent}' for user {request.user.username}")
    data = answer(intent, params, request.user, message)
    return Response({'intent': intent, **data})
