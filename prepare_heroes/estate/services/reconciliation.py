"""
Stripe payment reconciliation.

Per event: received -> verified -> resolved -> applied, or
received -> rejected (bad signature), or
received -> verified -> unresolved (no opportunity found; logged and dropped).

Resolution waterfall, first hit wins:
1. Direct reference: client_reference_id or metadata.opportunity_id
2. Email: customer email -> Copper person -> open opportunity in the pipeline
3. Phone: customer phone -> Copper person -> open opportunity in the pipeline

Unresolved events are still acknowledged to Stripe. Retrying cannot make
them resolvable, and failing them would only make Stripe redeliver for days.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

import stripe

from .. import constants
from ..config import IntegrationConfig
from ..copper_client import CopperClient
from ..details import DetailBlock
from ..exceptions import ResolutionFailed, SignatureVerificationError
from ..utils import mask_email

logger = logging.getLogger(__name__)

OUTCOME_APPLIED = 'applied'
OUTCOME_ALREADY_PAID = 'already_paid'
OUTCOME_UNRESOLVED = 'unresolved'
OUTCOME_IGNORED = 'ignored'

MATCH_DIRECT = 'direct_id'
MATCH_EMAIL = 'email_fallback'
MATCH_PHONE = 'phone_fallback'


@dataclass
class PaymentInfo:
    invoice_id: Optional[str] = None
    invoice_url: Optional[str] = None
    session_id: Optional[str] = None
    payment_intent_id: Optional[str] = None

    def lines(self) -> List[str]:
        """Notes lines for the ids that are present."""
        labeled = [
            (constants.LABEL_INVOICE_ID, self.invoice_id),
            (constants.LABEL_INVOICE_URL, self.invoice_url),
            (constants.LABEL_SESSION_ID, self.session_id),
            (constants.LABEL_PAYMENT_INTENT, self.payment_intent_id),
        ]
        return [f"{label}: {value}" for label, value in labeled if value]


@dataclass
class Resolution:
    opportunity_id: str
    method: str


def verify_event(payload: bytes, sig_header: Optional[str], secret: str) -> dict:
    """
    Check the Stripe-Signature header against the raw body and return the
    parsed event.

    Raises:
        SignatureVerificationError: header missing or invalid, or body not JSON
    """
    if not sig_header or not secret:
        raise SignatureVerificationError('Missing signature or webhook secret')

    try:
        stripe.WebhookSignature.verify_header(
            payload.decode('utf-8') if isinstance(payload, bytes) else payload,
            sig_header,
            secret,
            stripe.Webhook.DEFAULT_TOLERANCE,
        )
        event = json.loads(payload)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"[Stripe Webhook] Signature verification failed: {e}")
        raise SignatureVerificationError('Webhook signature verification failed') from e

    if not isinstance(event, dict):
        raise SignatureVerificationError('Webhook payload is not an event object')
    return event


def _id_of(value) -> Optional[str]:
    # Stripe sends either an id string or an expanded object
    if isinstance(value, dict):
        return value.get('id')
    return value or None


def extract_payment_info(event_type: str, obj: dict, config: Optional[IntegrationConfig] = None) -> PaymentInfo:
    if event_type == 'invoice.payment_succeeded':
        return PaymentInfo(
            invoice_id=obj.get('id'),
            invoice_url=obj.get('hosted_invoice_url'),
            payment_intent_id=_id_of(obj.get('payment_intent')),
        )

    info = PaymentInfo(
        session_id=obj.get('id'),
        invoice_id=_id_of(obj.get('invoice')),
        payment_intent_id=_id_of(obj.get('payment_intent')),
    )
    if isinstance(obj.get('invoice'), dict):
        info.invoice_url = obj['invoice'].get('hosted_invoice_url')
    if info.invoice_id and not info.invoice_url and config is not None:
        info.invoice_url = lookup_invoice_url(info.invoice_id, config)
    return info


def lookup_invoice_url(invoice_id: str, config: IntegrationConfig) -> Optional[str]:
    """Hosted invoice URL from Stripe. Best-effort; None when unavailable."""
    if not config.stripe_secret_key:
        return None
    try:
        invoice = stripe.Invoice.retrieve(invoice_id, api_key=config.stripe_secret_key)
        return getattr(invoice, 'hosted_invoice_url', None)
    except stripe.StripeError as e:
        logger.warning(f"[Stripe Webhook] Could not fetch invoice {invoice_id}: {e}")
        return None


def customer_email(obj: dict) -> Optional[str]:
    details = obj.get('customer_details') or {}
    return details.get('email') or obj.get('customer_email')


def customer_phone(obj: dict) -> Optional[str]:
    details = obj.get('customer_details') or {}
    return details.get('phone') or obj.get('customer_phone')


def direct_reference(obj: dict) -> Optional[str]:
    metadata = obj.get('metadata') or {}
    reference = obj.get('client_reference_id') or metadata.get('opportunity_id')
    return str(reference) if reference else None


def resolve_opportunity(obj: dict, client: CopperClient) -> Resolution:
    """
    Run the identity waterfall for one payment object.

    Raises:
        ResolutionFailed: no step produced an opportunity id
    """
    reference = direct_reference(obj)
    if reference:
        logger.info(f"[Stripe Webhook] Found direct Opportunity ID: {reference}")
        return Resolution(reference, MATCH_DIRECT)

    email = customer_email(obj)
    if email:
        logger.info(f"[Stripe Webhook] Looking up by email: {mask_email(email)}")
        person = client.find_person_by_email(email)
        if person:
            opportunity_id = client.find_open_opportunity_for_person(person['id'])
            if opportunity_id:
                return Resolution(str(opportunity_id), MATCH_EMAIL)

    phone = customer_phone(obj)
    if phone:
        logger.info("[Stripe Webhook] Looking up by phone")
        person = client.find_person_by_phone(phone)
        if person:
            opportunity_id = client.find_open_opportunity_for_person(person['id'])
            if opportunity_id:
                return Resolution(str(opportunity_id), MATCH_PHONE)

    raise ResolutionFailed(f"No matching opportunity for {obj.get('object', 'object')} {obj.get('id')}")


def apply_payment(opportunity_id, payment: PaymentInfo, client: CopperClient, config: IntegrationConfig) -> str:
    """
    Mark the opportunity paid and record the payment ids in its notes.

    Safe to repeat: existing payment lines are not appended again and an
    opportunity that is already paid with the same notes is not rewritten.

    Raises:
        ResolutionFailed: the opportunity cannot be read
        OpportunityUpdateError: Copper rejected the update
    """
    opportunity = client.get_opportunity(opportunity_id)
    if opportunity is None:
        # Writing without the current notes would wipe them
        raise ResolutionFailed(f"Opportunity {opportunity_id} could not be read")

    block = DetailBlock.parse(opportunity.get('details'))
    # Line-ending differences alone are not a change
    existing_details = str(block)
    block.append_section(constants.PAYMENT_HEADING, payment.lines(), constants.PAYMENT_LABELS)
    block.update({constants.LABEL_CHECKOUT_STATE: constants.CHECKOUT_STATE_PAID})
    updated_details = str(block)

    already_paid = str(opportunity.get('pipeline_stage_id')) == str(config.paid_stage_id)
    details_changed = updated_details != existing_details
    if already_paid and not details_changed:
        logger.info(f"[Stripe Webhook] Opportunity {opportunity_id} already marked paid, nothing to write")
        return OUTCOME_ALREADY_PAID

    payload = {'pipeline_stage_id': config.paid_stage_id}
    if details_changed:
        payload['details'] = updated_details

    client.update_opportunity(opportunity_id, payload)
    logger.info(f"[Stripe Webhook] ✅ Opportunity {opportunity_id} moved to Paid stage")
    return OUTCOME_APPLIED


def handle_event(event: dict, client: CopperClient, config: IntegrationConfig) -> str:
    """
    Reconcile one verified Stripe event and return its outcome.

    Copper write failures propagate so the caller can ask Stripe to retry.
    """
    event_type = event.get('type')
    if event_type not in constants.PAYMENT_EVENT_TYPES:
        logger.info(f"[Stripe Webhook] Ignoring event type {event_type}")
        return OUTCOME_IGNORED

    obj = (event.get('data') or {}).get('object') or {}

    try:
        resolution = resolve_opportunity(obj, client)
        logger.info(f"[Stripe Webhook] Match found via {resolution.method}: opportunity {resolution.opportunity_id}")
        payment = extract_payment_info(event_type, obj, config)
        return apply_payment(resolution.opportunity_id, payment, client, config)
    except ResolutionFailed as e:
        logger.warning(f"[Stripe Webhook] ⚠️ Unresolved event {event.get('id')}: {e}")
        return OUTCOME_UNRESOLVED
