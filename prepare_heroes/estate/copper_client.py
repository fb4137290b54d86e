"""
Copper CRM client.

Thin wrapper around the Copper developer API for the people and
opportunity endpoints used by the intake and payment flows.
Searches and reads return None when Copper answers non-2xx; writes raise.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import IntegrationConfig
from .constants import OPEN_STATUS
from .exceptions import PersonCreateError, OpportunityCreateError, OpportunityUpdateError
from .utils import digits_only

logger = logging.getLogger(__name__)

# Copper error bodies are echoed into API errors; keep them short
MAX_ERROR_TEXT = 500


class CopperClient:
    """
    Copper developer API client bound to one IntegrationConfig.
    """

    def __init__(self, config: IntegrationConfig):
        self.config = config
        self.api_url = config.copper_api_url.rstrip('/')

    def _get_headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'X-PW-AccessToken': self.config.copper_api_key,
            'X-PW-Application': 'developer_api',
            'X-PW-UserEmail': self.config.copper_user_email,
        }

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> requests.Response:
        url = f"{self.api_url}{path}"
        return requests.request(
            method,
            url,
            headers=self._get_headers(),
            json=payload,
            timeout=self.config.copper_timeout,
        )

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        return (response.text or '')[:MAX_ERROR_TEXT]

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    def _search_people(self, criteria: dict, label: str) -> Optional[dict]:
        response = self._request('POST', '/people/search', {**criteria, 'page_size': 1})
        if not response.ok:
            logger.error(f"[Copper API] Error searching person by {label}: {response.status_code} {self._error_text(response)}")
            return None

        people = response.json()
        return people[0] if people else None

    def find_person_by_email(self, email: str) -> Optional[dict]:
        """Exact email match. Returns the first person or None."""
        return self._search_people({'emails': [email]}, 'email')

    def find_person_by_phone(self, phone: str) -> Optional[dict]:
        """Copper fuzzy-matches phone numbers of 7+ digits."""
        return self._search_people({'phone_number': phone}, 'phone')

    def get_person(self, person_id) -> Optional[dict]:
        response = self._request('GET', f'/people/{person_id}')
        if not response.ok:
            logger.warning(f"[Copper API] Person {person_id} not readable: {response.status_code}")
            return None
        return response.json()

    def create_person(self, name: str, email: str, phone: str = '') -> int:
        """
        Create a person and return its id.

        Raises:
            PersonCreateError: Copper answered non-2xx
        """
        payload = {
            'name': name,
            'emails': [{'email': email, 'category': 'work'}],
            'phone_numbers': [{'number': phone, 'category': 'mobile'}] if phone else [],
        }
        response = self._request('POST', '/people', payload)

        if not response.ok:
            text = self._error_text(response)
            logger.error(f"[Copper API] Error creating person: {response.status_code} {text}")
            raise PersonCreateError(
                f"Failed to create person record: {response.status_code} {text}",
                status_code=response.status_code,
                response_text=text,
            )

        person_id = response.json()['id']
        logger.info(f"[Copper API] Created person {person_id}")
        return person_id

    def add_person_phone(self, person: dict, phone: str) -> bool:
        """
        Append ``phone`` to the person's numbers unless an equal number exists.

        Best-effort: failures are logged and reported as False, never raised.
        """
        current_numbers = person.get('phone_numbers') or []
        wanted = digits_only(phone)
        if any(digits_only(entry.get('number')) == wanted for entry in current_numbers):
            return False

        numbers = [
            {'number': entry.get('number'), 'category': entry.get('category', 'mobile')}
            for entry in current_numbers
        ]
        numbers.append({'number': phone, 'category': 'mobile'})

        try:
            response = self._request('PUT', f"/people/{person['id']}", {'phone_numbers': numbers})
        except requests.RequestException as e:
            logger.error(f"[Copper API] Failed to update phone for person {person.get('id')}: {e}")
            return False

        if not response.ok:
            logger.error(f"[Copper API] Failed to update phone for person {person.get('id')}: {response.status_code} {self._error_text(response)}")
            return False

        logger.info(f"[Copper API] Added phone number to person {person['id']}")
        return True

    # ------------------------------------------------------------------
    # Opportunities
    # ------------------------------------------------------------------

    def search_open_opportunities(self, person_id) -> List[dict]:
        """Open opportunities of a contact in the configured pipeline, newest first."""
        payload = {
            'primary_contact_ids': [person_id],
            'pipeline_ids': [self.config.pipeline_id],
            'status': [OPEN_STATUS],
            'page_size': 5,
            'sort_by': 'date_created',
            'sort_direction': 'desc',
        }
        response = self._request('POST', '/opportunities/search', payload)
        if not response.ok:
            logger.error(f"[Copper API] Error searching opportunities for person {person_id}: {response.status_code}")
            return []
        return response.json() or []

    def find_open_opportunity_for_person(self, person_id) -> Optional[Any]:
        """
        Id of the contact's open opportunity, or None.

        When several are open the first result wins; which one should win
        is still undecided, so the ambiguity is logged.
        """
        opportunities = self.search_open_opportunities(person_id)
        if not opportunities:
            return None

        if len(opportunities) > 1:
            ids = [o.get('id') for o in opportunities]
            logger.warning(f"[Copper API] Multiple open opportunities found for person {person_id}: {ids}. Using the first one.")

        return opportunities[0]['id']

    def get_opportunity(self, opportunity_id) -> Optional[dict]:
        """Read one opportunity; None on any non-2xx answer."""
        response = self._request('GET', f'/opportunities/{opportunity_id}')
        if not response.ok:
            logger.warning(f"[Copper API] Opportunity {opportunity_id} not readable: {response.status_code}")
            return None
        return response.json()

    def create_opportunity(self, payload: dict) -> dict:
        """
        Create an opportunity and return the stored record.

        Raises:
            OpportunityCreateError: Copper answered non-2xx
        """
        response = self._request('POST', '/opportunities', payload)

        if not response.ok:
            text = self._error_text(response)
            logger.error(f"[Copper API] Error creating opportunity: {response.status_code} {text}")
            raise OpportunityCreateError(
                f"Copper API error: {response.status_code} {response.reason or ''} {text}".strip(),
                status_code=response.status_code,
                response_text=text,
            )

        opportunity = response.json()
        logger.info(f"[Copper API] Created opportunity {opportunity.get('id')}")
        return opportunity

    def update_opportunity(self, opportunity_id, payload: dict) -> dict:
        """
        Update an opportunity and return the stored record.

        Raises:
            OpportunityUpdateError: Copper answered non-2xx
        """
        response = self._request('PUT', f'/opportunities/{opportunity_id}', payload)

        if not response.ok:
            text = self._error_text(response)
            logger.error(f"[Copper API] Failed to update opportunity {opportunity_id}: {response.status_code} {text}")
            raise OpportunityUpdateError(
                f"Copper update failed: {response.status_code}",
                status_code=response.status_code,
                response_text=text,
            )

        return response.json()

    # ------------------------------------------------------------------
    # Account settings
    # ------------------------------------------------------------------

    def list_custom_field_definitions(self) -> Optional[List[dict]]:
        response = self._request('GET', '/custom_field_definitions')
        if not response.ok:
            logger.error(f"[Copper API] Error listing custom fields: {response.status_code}")
            return None
        return response.json()

    def list_pipelines(self) -> Optional[List[dict]]:
        response = self._request('GET', '/pipelines')
        if not response.ok:
            logger.error(f"[Copper API] Error listing pipelines: {response.status_code}")
            return None
        return response.json()
