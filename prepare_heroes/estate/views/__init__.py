"""
Views package for the estate app.
Re-exports all views for urls.py
"""

from .submit import SubmitQuizView
from .checkout import checkout_redirect
from .stripe import stripe_webhook

__all__ = [
    'SubmitQuizView',
    'checkout_redirect',
    'stripe_webhook',
]
