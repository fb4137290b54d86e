"""
Integration configuration.

Built once per request from Django settings and handed explicitly to the
Copper client and to every service, so tests can swap any value without
touching global state.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from . import constants


def _frozen(mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class IntegrationConfig:
    copper_api_key: str
    copper_user_email: str
    copper_api_url: str = constants.COPPER_API_URL
    pipeline_id: int = constants.ESTATE_PLANNING_PIPELINE_ID
    quiz_completed_stage_id: int = constants.COMPLETED_QUIZ_STAGE_ID
    paid_stage_id: int = constants.PAID_STAGE_ID
    field_ids: Mapping[str, int] = field(default_factory=lambda: _frozen(constants.FIELD_IDS))
    package_labels: Mapping[str, str] = field(default_factory=lambda: _frozen(constants.PACKAGE_LABELS))
    default_package: str = constants.DEFAULT_PACKAGE
    representatives: Mapping[str, int] = field(default_factory=lambda: _frozen(constants.REPRESENTATIVES))
    copper_timeout: Optional[float] = None
    stripe_secret_key: str = ''
    stripe_webhook_secret: str = ''
    site_url: str = ''
    checkout_link_enabled: bool = True

    def __post_init__(self):
        # Freeze any plain dicts handed in by callers
        for name in ('field_ids', 'package_labels', 'representatives'):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, _frozen(value))

    @classmethod
    def from_settings(cls, settings=None) -> 'IntegrationConfig':
        if settings is None:
            from django.conf import settings

        return cls(
            copper_api_key=settings.COPPER_API_KEY,
            copper_user_email=settings.COPPER_USER_EMAIL,
            copper_api_url=getattr(settings, 'COPPER_API_URL', constants.COPPER_API_URL),
            pipeline_id=int(getattr(settings, 'COPPER_PIPELINE_ID', constants.ESTATE_PLANNING_PIPELINE_ID)),
            quiz_completed_stage_id=int(getattr(settings, 'COPPER_QUIZ_STAGE_ID', constants.COMPLETED_QUIZ_STAGE_ID)),
            paid_stage_id=int(getattr(settings, 'COPPER_PAID_STAGE_ID', constants.PAID_STAGE_ID)),
            field_ids=getattr(settings, 'COPPER_FIELD_IDS', constants.FIELD_IDS),
            package_labels=getattr(settings, 'ESTATE_PACKAGE_LABELS', constants.PACKAGE_LABELS),
            representatives=getattr(settings, 'ESTATE_REPRESENTATIVES', constants.REPRESENTATIVES),
            copper_timeout=getattr(settings, 'COPPER_TIMEOUT', None),
            stripe_secret_key=getattr(settings, 'STRIPE_SECRET_KEY', ''),
            stripe_webhook_secret=getattr(settings, 'STRIPE_WEBHOOK_SECRET', ''),
            site_url=getattr(settings, 'SITE_URL', ''),
            checkout_link_enabled=getattr(settings, 'CHECKOUT_LINK_ENABLED', True),
        )

    def package_label(self, package_code: str) -> str:
        """Human label for a package code; unknown codes fall back to the default package."""
        fallback = self.package_labels.get(self.default_package, '')
        return self.package_labels.get(package_code, fallback)

    def field_id(self, name: str) -> int:
        return self.field_ids[name]
