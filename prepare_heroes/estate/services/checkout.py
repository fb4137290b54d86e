"""Checkout short link (/c/<id>) resolution."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .. import constants
from ..config import IntegrationConfig
from ..copper_client import CopperClient
from ..details import DetailBlock
from ..exceptions import OpportunityNotFound
from ..utils import build_url

logger = logging.getLogger(__name__)


@dataclass
class CheckoutRedirect:
    path: str
    params: List[Tuple[str, str]] = field(default_factory=list)

    def url(self, origin: str) -> str:
        return build_url(origin, self.path, self.params)


@dataclass
class CheckoutContext:
    selected_package: str = ''
    customer_type: str = ''
    email: str = ''
    primary_contact_id: Optional[int] = None


def custom_field_value(opportunity: dict, field_id) -> str:
    for custom_field in opportunity.get('custom_fields') or []:
        if str(custom_field.get('custom_field_definition_id')) == str(field_id):
            value = custom_field.get('value')
            return '' if value is None else str(value)
    return ''


def customer_type_for(responder_status: str) -> str:
    """Checkout pricing knows two audiences: civilians and first responders."""
    if not responder_status:
        return ''
    return 'civilian' if responder_status == 'civilian' else 'responder'


def is_opportunity_paid(opportunity: dict, config: IntegrationConfig) -> bool:
    return str(opportunity.get('pipeline_stage_id')) == str(config.paid_stage_id)


def checkout_context(opportunity: dict, config: IntegrationConfig) -> CheckoutContext:
    details = DetailBlock.parse(opportunity.get('details'))
    return CheckoutContext(
        selected_package=custom_field_value(opportunity, config.field_id('selectedPackage')),
        customer_type=customer_type_for(custom_field_value(opportunity, config.field_id('responderStatus'))),
        email=details.get(constants.LABEL_EMAIL, ''),
        primary_contact_id=opportunity.get('primary_contact_id'),
    )


def resolve_checkout(opportunity_id, client: CopperClient, config: IntegrationConfig) -> CheckoutRedirect:
    """
    Decide where a checkout short link should send the visitor.

    Paid opportunities go to the success page; everything else goes to the
    checkout page pre-filled with package, customer type and email.
    Read-only: never writes to Copper.

    Raises:
        OpportunityNotFound: id missing or opportunity not readable
    """
    if not opportunity_id:
        raise OpportunityNotFound('Opportunity id is required')

    opportunity = client.get_opportunity(opportunity_id)
    if not opportunity:
        raise OpportunityNotFound(f'Opportunity {opportunity_id} not found')

    if is_opportunity_paid(opportunity, config):
        logger.info(f"[Checkout Link] Opportunity {opportunity_id} already paid, sending to success page")
        return CheckoutRedirect(constants.SUCCESS_PAGE, [('applicationId', str(opportunity_id))])

    context = checkout_context(opportunity, config)
    email = context.email
    if not email and context.primary_contact_id:
        person = client.get_person(context.primary_contact_id)
        emails = (person or {}).get('emails') or []
        email = emails[0].get('email', '') if emails else ''

    params = []
    if context.selected_package:
        params.append(('chosenPackage', context.selected_package))
    if context.customer_type:
        params.append(('customerType', context.customer_type))
    if email:
        params.append(('email', email))
    params.append(('opportunityId', str(opportunity_id)))

    return CheckoutRedirect(constants.CHECKOUT_PAGE, params)
