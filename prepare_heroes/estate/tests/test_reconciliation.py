import json
import time
from types import SimpleNamespace
from unittest import mock

import stripe
from django.test import SimpleTestCase

from estate.exceptions import OpportunityUpdateError, SignatureVerificationError
from estate.services import reconciliation
from estate.services.reconciliation import (
    PaymentInfo, extract_payment_info, handle_event, verify_event,
)

from .fakes import CopperTestCase, make_config, sign_payload

SECRET = 'whsec_test_secret_12345'

PENDING_DETAILS = '\n'.join([
    'Name: John Doe',
    'Email: john@example.com',
    'Checkout Link: https://prepareheroes.org/c/42',
    'Checkout State: Pending',
])


def session_event(obj=None, event_type='checkout.session.completed', event_id='evt_1'):
    session = {
        'id': 'cs_test_1',
        'object': 'checkout.session',
        'client_reference_id': '42',
        'invoice': 'in_test_1',
        'payment_intent': 'pi_test_1',
        'customer_details': {'email': 'john@example.com', 'phone': None},
    }
    if obj is not None:
        session = obj
    return {'id': event_id, 'type': event_type, 'data': {'object': session}}


class VerifyEventTests(SimpleTestCase):

    def test_valid_signature(self):
        payload = json.dumps(session_event())
        event = verify_event(payload.encode(), sign_payload(payload, SECRET), SECRET)
        self.assertEqual(event['type'], 'checkout.session.completed')

    def test_wrong_secret(self):
        payload = json.dumps(session_event())
        with self.assertRaises(SignatureVerificationError):
            verify_event(payload.encode(), sign_payload(payload, 'whsec_other'), SECRET)

    def test_tampered_payload(self):
        payload = json.dumps(session_event())
        header = sign_payload(payload, SECRET)
        tampered = payload.replace('"42"', '"43"')
        with self.assertRaises(SignatureVerificationError):
            verify_event(tampered.encode(), header, SECRET)

    def test_stale_timestamp(self):
        payload = json.dumps(session_event())
        header = sign_payload(payload, SECRET, timestamp=int(time.time()) - 3600)
        with self.assertRaises(SignatureVerificationError):
            verify_event(payload.encode(), header, SECRET)

    def test_missing_header_or_secret(self):
        payload = json.dumps(session_event())
        with self.assertRaises(SignatureVerificationError):
            verify_event(payload.encode(), None, SECRET)
        with self.assertRaises(SignatureVerificationError):
            verify_event(payload.encode(), sign_payload(payload, SECRET), '')

    def test_signed_garbage_is_rejected(self):
        payload = 'not json'
        with self.assertRaises(SignatureVerificationError):
            verify_event(payload.encode(), sign_payload(payload, SECRET), SECRET)


class ExtractPaymentInfoTests(SimpleTestCase):

    def test_checkout_session(self):
        info = extract_payment_info('checkout.session.completed', session_event()['data']['object'])
        self.assertEqual(info, PaymentInfo(
            invoice_id='in_test_1', session_id='cs_test_1', payment_intent_id='pi_test_1',
        ))

    def test_invoice(self):
        invoice = {
            'id': 'in_test_2',
            'hosted_invoice_url': 'https://invoice.stripe.com/i/in_test_2',
            'payment_intent': {'id': 'pi_test_2'},
        }
        info = extract_payment_info('invoice.payment_succeeded', invoice)
        self.assertEqual(info.lines(), [
            'Stripe Invoice ID: in_test_2',
            'Stripe Invoice URL: https://invoice.stripe.com/i/in_test_2',
            'Stripe Payment Intent: pi_test_2',
        ])

    def test_invoice_url_looked_up_with_secret_key(self):
        config = make_config(stripe_secret_key='sk_test_1')
        invoice = SimpleNamespace(hosted_invoice_url='https://invoice.stripe.com/i/in_test_1')
        with mock.patch.object(stripe.Invoice, 'retrieve', return_value=invoice) as retrieve:
            info = extract_payment_info('checkout.session.completed', session_event()['data']['object'], config)
        retrieve.assert_called_once_with('in_test_1', api_key='sk_test_1')
        self.assertEqual(info.invoice_url, 'https://invoice.stripe.com/i/in_test_1')

    def test_invoice_lookup_failure_is_tolerated(self):
        config = make_config(stripe_secret_key='sk_test_1')
        with mock.patch.object(stripe.Invoice, 'retrieve', side_effect=stripe.StripeError('boom')):
            info = extract_payment_info('checkout.session.completed', session_event()['data']['object'], config)
        self.assertIsNone(info.invoice_url)
        self.assertEqual(info.invoice_id, 'in_test_1')

    def test_no_lookup_without_secret_key(self):
        with mock.patch.object(stripe.Invoice, 'retrieve') as retrieve:
            extract_payment_info('checkout.session.completed', session_event()['data']['object'], make_config())
        retrieve.assert_not_called()


class HandleEventTests(CopperTestCase):

    def setUp(self):
        super().setUp()
        self.opportunity = self.copper.add_opportunity(
            id=42,
            pipeline_id=1130648,
            pipeline_stage_id=5076179,
            primary_contact_id=7,
            details=PENDING_DETAILS,
        )

    def test_direct_reference_marks_paid(self):
        outcome = handle_event(session_event(), self.api, self.config)

        self.assertEqual(outcome, reconciliation.OUTCOME_APPLIED)
        self.assertEqual(self.opportunity['pipeline_stage_id'], 5076181)
        self.assertEqual(self.opportunity['details'], '\n'.join([
            'Name: John Doe',
            'Email: john@example.com',
            'Checkout Link: https://prepareheroes.org/c/42',
            'Checkout State: Paid',
            '',
            'Stripe Payment',
            'Stripe Invoice ID: in_test_1',
            'Stripe Session ID: cs_test_1',
            'Stripe Payment Intent: pi_test_1',
        ]))
        # direct id means no people search
        self.assertEqual(self.copper.calls_to('POST', '/people/search'), [])

    def test_metadata_reference(self):
        obj = session_event()['data']['object']
        obj['client_reference_id'] = None
        obj['metadata'] = {'opportunity_id': '42'}
        self.assertEqual(handle_event(session_event(obj), self.api, self.config), reconciliation.OUTCOME_APPLIED)

    def test_redelivery_is_idempotent(self):
        event = session_event()
        handle_event(event, self.api, self.config)
        details_after_first = self.opportunity['details']

        outcome = handle_event(event, self.api, self.config)

        self.assertEqual(outcome, reconciliation.OUTCOME_ALREADY_PAID)
        self.assertEqual(self.opportunity['details'], details_after_first)
        self.assertEqual(len(self.copper.calls_to('PUT', '/opportunities/42')), 1)

    def test_invoice_after_session_adds_only_new_lines(self):
        handle_event(session_event(), self.api, self.config)
        invoice = {
            'id': 'in_test_1',
            'object': 'invoice',
            'hosted_invoice_url': 'https://invoice.stripe.com/i/in_test_1',
            'payment_intent': 'pi_test_1',
            'metadata': {'opportunity_id': '42'},
        }
        outcome = handle_event(session_event(invoice, 'invoice.payment_succeeded', 'evt_2'), self.api, self.config)

        self.assertEqual(outcome, reconciliation.OUTCOME_APPLIED)
        lines = self.opportunity['details'].split('\n')
        self.assertEqual(lines.count('Stripe Payment'), 1)
        self.assertEqual(lines.count('Stripe Invoice ID: in_test_1'), 1)
        self.assertEqual(lines[-1], 'Stripe Invoice URL: https://invoice.stripe.com/i/in_test_1')

    def test_email_fallback(self):
        self.copper.add_person(id=7, emails=['john@example.com'])
        obj = session_event()['data']['object']
        obj['client_reference_id'] = None

        with self.assertLogs('estate.services.reconciliation', level='INFO') as logs:
            outcome = handle_event(session_event(obj), self.api, self.config)

        self.assertEqual(outcome, reconciliation.OUTCOME_APPLIED)
        self.assertEqual(self.opportunity['pipeline_stage_id'], 5076181)
        self.assertTrue(any('email_fallback' in line for line in logs.output))
        # raw email never reaches the logs
        self.assertFalse(any('john@example.com' in line for line in logs.output))

    def test_phone_fallback(self):
        self.copper.add_person(id=7, emails=['other@example.com'], phone_numbers=['(555) 123-4567'])
        obj = {
            'id': 'cs_test_3',
            'object': 'checkout.session',
            'customer_details': {'email': 'john@example.com', 'phone': '+1 555 123 4567'},
        }
        with self.assertLogs('estate.services.reconciliation', level='INFO') as logs:
            outcome = handle_event(session_event(obj), self.api, self.config)

        self.assertEqual(outcome, reconciliation.OUTCOME_APPLIED)
        self.assertTrue(any('phone_fallback' in line for line in logs.output))

    def test_unresolved_is_acknowledged_without_writes(self):
        obj = {'id': 'cs_test_4', 'object': 'checkout.session', 'customer_details': {'email': 'nobody@example.com'}}
        outcome = handle_event(session_event(obj), self.api, self.config)
        self.assertEqual(outcome, reconciliation.OUTCOME_UNRESOLVED)
        self.assertEqual(self.copper.writes, [])

    def test_unreadable_opportunity_is_not_overwritten(self):
        self.copper.fail('GET', '/opportunities/42', 500)
        outcome = handle_event(session_event(), self.api, self.config)
        self.assertEqual(outcome, reconciliation.OUTCOME_UNRESOLVED)
        self.assertEqual(self.copper.writes, [])

    def test_other_event_types_ignored(self):
        event = session_event(event_type='customer.created')
        self.assertEqual(handle_event(event, self.api, self.config), reconciliation.OUTCOME_IGNORED)
        self.assertEqual(self.copper.calls, [])

    def test_update_failure_propagates(self):
        self.copper.fail('PUT', '/opportunities/42', 500)
        with self.assertRaises(OpportunityUpdateError):
            handle_event(session_event(), self.api, self.config)

    def test_redelivery_over_crlf_notes_is_idempotent(self):
        self.opportunity['pipeline_stage_id'] = 5076181
        self.opportunity['details'] = '\r\n'.join([
            'Name: John Doe',
            'Checkout State: Paid',
            '',
            'Stripe Payment',
            'Stripe Invoice ID: in_test_1',
            'Stripe Session ID: cs_test_1',
            'Stripe Payment Intent: pi_test_1',
        ])
        original = self.opportunity['details']

        outcome = handle_event(session_event(), self.api, self.config)

        self.assertEqual(outcome, reconciliation.OUTCOME_ALREADY_PAID)
        self.assertEqual(self.opportunity['details'], original)
        self.assertEqual(self.copper.calls_to('PUT'), [])

    def test_new_crlf_lines_are_added_once(self):
        self.opportunity['details'] = 'Name: John Doe\r\n\r\nStripe Payment\r\nStripe Invoice ID: in_test_1\r\n'
        handle_event(session_event(), self.api, self.config)

        lines = self.opportunity['details'].split('\n')
        self.assertNotIn('\r', self.opportunity['details'])
        self.assertEqual(lines.count('Stripe Payment'), 1)
        self.assertEqual(lines.count('Stripe Invoice ID: in_test_1'), 1)
        self.assertEqual(lines.count('Stripe Session ID: cs_test_1'), 1)

    def test_later_payment_lines_go_under_the_heading(self):
        self.opportunity['details'] = '\n'.join([
            'Name: John Doe',
            '',
            'Stripe Payment',
            'Stripe Session ID: cs_test_1',
            'Checkout State: Paid',
        ])
        invoice = {
            'id': 'in_test_1',
            'object': 'invoice',
            'hosted_invoice_url': 'https://invoice.stripe.com/i/in_test_1',
            'metadata': {'opportunity_id': '42'},
        }
        handle_event(session_event(invoice, 'invoice.payment_succeeded', 'evt_2'), self.api, self.config)

        self.assertEqual(self.opportunity['details'], '\n'.join([
            'Name: John Doe',
            '',
            'Stripe Payment',
            'Stripe Session ID: cs_test_1',
            'Stripe Invoice ID: in_test_1',
            'Stripe Invoice URL: https://invoice.stripe.com/i/in_test_1',
            'Checkout State: Paid',
        ]))
