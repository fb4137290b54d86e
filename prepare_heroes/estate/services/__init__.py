from .submission import submit_intake, SubmissionResult
from .checkout import resolve_checkout, CheckoutRedirect
from .reconciliation import verify_event, handle_event

__all__ = [
    # Intake
    'submit_intake',
    'SubmissionResult',
    # Checkout link
    'resolve_checkout',
    'CheckoutRedirect',
    # Stripe
    'verify_event',
    'handle_event',
]
