"""Errors raised by the estate intake, checkout and payment flows."""


class EstateError(Exception):
    """Base class for every error raised by this app."""


class ValidationError(EstateError):
    """Intake submission is missing a mandatory field."""


class SignatureVerificationError(EstateError):
    """Webhook payload could not be authenticated."""


class CopperAPIError(EstateError):
    """Copper answered a write with a non-2xx status."""

    def __init__(self, message, status_code=None, response_text=''):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class PersonCreateError(CopperAPIError):
    pass


class OpportunityCreateError(CopperAPIError):
    pass


class OpportunityUpdateError(CopperAPIError):
    pass


class OpportunityNotFound(EstateError):
    """Opportunity id is absent or cannot be read."""


class ResolutionFailed(EstateError):
    """No opportunity could be matched to a payment event."""
