"""
Questionnaire submission pipeline:
1. Validate the intake payload
2. Find the contact by email (append a new phone) or create it
3. Create the opportunity in the Estate Planning pipeline
4. Generate the checkout short link and store it on the opportunity
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .. import constants
from ..config import IntegrationConfig
from ..copper_client import CopperClient
from ..details import DetailBlock
from ..exceptions import ValidationError
from ..serializers import Intake, IntakeSerializer
from ..utils import build_url

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = 'Estate planning form submitted successfully'


@dataclass
class SubmissionResult:
    opportunity_id: int
    checkout_link: Optional[str] = None

    def to_response(self) -> dict:
        payload = {
            'success': True,
            'opportunityId': self.opportunity_id,
            'message': SUCCESS_MESSAGE,
        }
        if self.checkout_link:
            payload['checkoutLink'] = self.checkout_link
        return payload


def parse_intake(data) -> Intake:
    """
    Validate a raw payload into an Intake.

    Raises:
        ValidationError: first name, last name or email missing
    """
    serializer = IntakeSerializer(data=data)
    if not serializer.is_valid():
        logger.info(f"[Submit Quiz] Rejected payload: {serializer.errors}")
        raise ValidationError('Missing required fields')
    return serializer.save()


def find_or_create_person(intake: Intake, client: CopperClient) -> int:
    person = client.find_person_by_email(intake.email)
    if person:
        logger.info(f"[Submit Quiz] Reusing person {person['id']}")
        if intake.phone:
            client.add_person_phone(person, intake.phone)
        return person['id']

    return client.create_person(intake.full_name, intake.email, intake.phone)


def build_details(intake: Intake, package_label: str) -> str:
    block = DetailBlock([
        f"{constants.LABEL_NAME}: {intake.full_name}",
        f"{constants.LABEL_EMAIL}: {intake.email}",
        f"{constants.LABEL_PHONE}: {intake.phone}",
        '',
        f"Submitted via {constants.SUBMISSION_SOURCE}",
        f"{constants.LABEL_PACKAGE}: {package_label}",
        f"{constants.LABEL_REFERRED_BY}: {intake.referred_by or 'None'}",
    ])
    return str(block)


def build_custom_fields(intake: Intake, config: IntegrationConfig) -> list:
    # Missing answers are sent as '' so every slot is written
    return [
        {
            'custom_field_definition_id': config.field_id(form_field),
            'value': intake.form_value(form_field) or '',
        }
        for form_field in constants.CUSTOM_FIELD_ORDER
    ]


def build_opportunity_payload(intake: Intake, person_id: int, config: IntegrationConfig) -> dict:
    package_label = config.package_label(intake.selected_package)

    payload = {
        'name': f"{intake.full_name} - {package_label}",
        'pipeline_id': config.pipeline_id,
        'pipeline_stage_id': config.quiz_completed_stage_id,
        'primary_contact_id': person_id,
        'details': build_details(intake, package_label),
        'custom_fields': build_custom_fields(intake, config),
    }

    assignee_id = config.representatives.get(intake.referred_by) if intake.referred_by else None
    if assignee_id:
        payload['assignee_id'] = assignee_id
    elif intake.referred_by:
        logger.info(f"[Submit Quiz] No representative mapped for '{intake.referred_by}', leaving unassigned")

    return payload


def build_checkout_link(opportunity_id, origin: str) -> str:
    return build_url(origin, constants.CHECKOUT_LINK_PATH.format(opportunity_id=opportunity_id))


def persist_checkout_link(opportunity: dict, checkout_link: str, client: CopperClient, config: IntegrationConfig) -> dict:
    """
    Store the checkout link in the notes block and the payment-link custom
    field, and tag the checkout state Pending.
    """
    block = DetailBlock.parse(opportunity.get('details'))
    block.update({
        constants.LABEL_CHECKOUT_LINK: checkout_link,
        constants.LABEL_CHECKOUT_STATE: constants.CHECKOUT_STATE_PENDING,
    })

    payment_link_id = config.field_id('paymentLink')
    custom_fields = [
        {
            'custom_field_definition_id': field['custom_field_definition_id'],
            'value': field.get('value'),
        }
        for field in opportunity.get('custom_fields') or []
        if str(field.get('custom_field_definition_id')) != str(payment_link_id)
    ]
    custom_fields.append({'custom_field_definition_id': payment_link_id, 'value': checkout_link})

    return client.update_opportunity(opportunity['id'], {
        'details': str(block),
        'custom_fields': custom_fields,
    })


def submit_intake(data, client: CopperClient, config: IntegrationConfig, origin: str = '') -> SubmissionResult:
    """
    Run the whole submission pipeline for one questionnaire payload.

    Args:
        data: Raw JSON payload from the form
        client: Copper client
        config: Integration configuration
        origin: Public site origin used when SITE_URL is not configured

    Raises:
        ValidationError: mandatory field missing
        CopperAPIError: a Copper write failed
    """
    intake = parse_intake(data)

    person_id = find_or_create_person(intake, client)
    opportunity = client.create_opportunity(build_opportunity_payload(intake, person_id, config))
    opportunity_id = opportunity['id']
    logger.info(f"[Submit Quiz] ✅ Opportunity {opportunity_id} created for person {person_id}")

    checkout_link = None
    if config.checkout_link_enabled:
        checkout_link = build_checkout_link(opportunity_id, config.site_url or origin)
        persist_checkout_link(opportunity, checkout_link, client, config)
        logger.info(f"[Checkout Link] Stored {checkout_link} on opportunity {opportunity_id}")

    return SubmissionResult(opportunity_id=opportunity_id, checkout_link=checkout_link)
