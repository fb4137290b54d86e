# estate/views/submit.py
"""Questionnaire submission endpoint used by the public site."""

from django.http import HttpResponse
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework import status

from ..config import IntegrationConfig
from ..copper_client import CopperClient
from ..exceptions import ValidationError, CopperAPIError
from ..services import submit_intake
from ..utils import request_origin

import logging

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}


def cors_response(data, status_code=status.HTTP_200_OK):
    return Response(data, status=status_code, headers=CORS_HEADERS)


class SubmitQuizView(APIView):
    """
    Create a Copper contact + opportunity from the estate planning questionnaire.

    Returns {success, opportunityId, message, checkoutLink?}.
    """

    def options(self, request, *args, **kwargs):
        response = HttpResponse(status=status.HTTP_204_NO_CONTENT)
        for header, value in CORS_HEADERS.items():
            response[header] = value
        response['Access-Control-Max-Age'] = '86400'
        return response

    def http_method_not_allowed(self, request, *args, **kwargs):
        return HttpResponse('Method not allowed', status=status.HTTP_405_METHOD_NOT_ALLOWED, content_type='text/plain')

    def post(self, request, format=None):
        try:
            data = request.data
        except (ParseError, UnsupportedMediaType) as e:
            logger.info(f"[Submit Quiz] Invalid JSON payload: {e}")
            return cors_response({'success': False, 'error': 'Invalid JSON payload'}, status.HTTP_400_BAD_REQUEST)

        config = IntegrationConfig.from_settings()
        client = CopperClient(config)

        try:
            result = submit_intake(data, client, config, origin=request_origin(request))
        except ValidationError as e:
            return cors_response({'success': False, 'error': str(e)}, status.HTTP_400_BAD_REQUEST)
        except CopperAPIError as e:
            logger.error(f"[Submit Quiz] ❌ Copper write failed: {e}")
            return cors_response({'success': False, 'error': str(e)}, status.HTTP_500_INTERNAL_SERVER_ERROR)
        except Exception as e:
            logger.error(f"[Submit Quiz] ❌ Error processing request: {e}", exc_info=True)
            return cors_response({'success': False, 'error': 'Failed to create opportunity'}, status.HTTP_500_INTERNAL_SERVER_ERROR)

        return cors_response(result.to_response())
