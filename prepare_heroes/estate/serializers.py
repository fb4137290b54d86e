from dataclasses import dataclass

from rest_framework import serializers

from .constants import DEFAULT_PACKAGE


@dataclass(frozen=True)
class Intake:
    """A validated questionnaire submission."""
    first_name: str
    last_name: str
    email: str
    phone: str = ''
    responder_status: str = ''
    dsw_number: str = ''
    department: str = ''
    marital_status: str = ''
    dependants: str = ''
    real_estate: str = ''
    life_insurance: str = ''
    existing_trust: str = ''
    selected_package: str = DEFAULT_PACKAGE
    referred_by: str = ''

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def form_value(self, form_field: str) -> str:
        """Value of a questionnaire field by its form name (``responderStatus``, ...)."""
        return getattr(self, FORM_FIELDS[form_field])


# Form field name -> Intake attribute
FORM_FIELDS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'email': 'email',
    'phone': 'phone',
    'responderStatus': 'responder_status',
    'dswNumber': 'dsw_number',
    'department': 'department',
    'maritalStatus': 'marital_status',
    'dependants': 'dependants',
    'realEstate': 'real_estate',
    'lifeInsurance': 'life_insurance',
    'existingTrust': 'existing_trust',
    'selectedPackage': 'selected_package',
    'referredBy': 'referred_by',
}


def _optional():
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')


# ====== INTAKE ======
class IntakeSerializer(serializers.Serializer):
    """Questionnaire payload posted by the public site. Field names follow the form."""

    firstName = serializers.CharField()
    lastName = serializers.CharField()
    email = serializers.CharField()

    phone = _optional()
    responderStatus = _optional()
    dswNumber = _optional()
    department = _optional()
    maritalStatus = _optional()
    dependants = _optional()
    realEstate = _optional()
    lifeInsurance = _optional()
    existingTrust = _optional()
    selectedPackage = _optional()
    referredBy = _optional()

    def create(self, validated_data):
        values = {
            attr: validated_data.get(form_field) or ''
            for form_field, attr in FORM_FIELDS.items()
        }
        values['selected_package'] = values['selected_package'] or DEFAULT_PACKAGE
        return Intake(**values)
