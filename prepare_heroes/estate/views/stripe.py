# estate/views/stripe.py
"""Stripe payment webhook."""

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from ..config import IntegrationConfig
from ..copper_client import CopperClient
from ..exceptions import SignatureVerificationError
from ..services import verify_event, handle_event

import logging

logger = logging.getLogger(__name__)


@csrf_exempt
def stripe_webhook(request):
    """
    Handle Stripe webhook events (checkout.session.completed, invoice.payment_succeeded).

    Unmatched payments are acknowledged with 200; only bad signatures (400)
    and Copper/network failures (500, so Stripe redelivers) are errors.
    """
    if request.method != 'POST':
        return HttpResponse('Method Not Allowed', status=405, content_type='text/plain')

    config = IntegrationConfig.from_settings()
    payload = request.body
    sig_header = request.META.get('HTTP_STRIPE_SIGNATURE')

    try:
        event = verify_event(payload, sig_header, config.stripe_webhook_secret)
    except SignatureVerificationError:
        return JsonResponse({'received': False, 'error': 'Invalid webhook signature'}, status=400)

    logger.info(f"[Stripe Webhook] Received {event.get('type')} ({event.get('id')})")

    try:
        outcome = handle_event(event, CopperClient(config), config)
    except Exception as e:
        logger.exception(f"[Stripe Webhook] ❌ Error handling event {event.get('id')}: {e}")
        return JsonResponse({'received': False, 'error': 'Webhook processing failed'}, status=500)

    logger.info(f"[Stripe Webhook] Event {event.get('id')} outcome: {outcome}")
    return JsonResponse({'received': True})
