# estate/views/checkout.py
"""Checkout short link: /c/<opportunity_id>"""

from django.http import HttpResponse, HttpResponseRedirect
from django.views.decorators.http import require_GET

from ..config import IntegrationConfig
from ..copper_client import CopperClient
from ..exceptions import OpportunityNotFound
from ..services import resolve_checkout
from ..utils import request_origin

import logging

logger = logging.getLogger(__name__)


@require_GET
def checkout_redirect(request, opportunity_id=None):
    """Send the visitor to the success page if paid, else to a pre-filled checkout page."""
    config = IntegrationConfig.from_settings()
    client = CopperClient(config)

    try:
        target = resolve_checkout(opportunity_id, client, config)
    except OpportunityNotFound as e:
        logger.info(f"[Checkout Link] {e}")
        return HttpResponse('Not Found', status=404, content_type='text/plain')

    return HttpResponseRedirect(target.url(request_origin(request)))
