from django.urls import path
from .views import (
    SubmitQuizView,
    checkout_redirect,
    stripe_webhook,
)

urlpatterns = [
    path('api/submit_quiz', SubmitQuizView.as_view(), name='submit_quiz'),
    path('api/stripe_webhook', stripe_webhook, name='stripe_webhook'),
    path('c/<str:opportunity_id>', checkout_redirect, name='checkout_redirect'),
]
