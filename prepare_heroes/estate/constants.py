COPPER_API_URL = 'https://api.copper.com/developer_api/v1'

# Estate Planning pipeline and its stages
ESTATE_PLANNING_PIPELINE_ID = 1130648
COMPLETED_QUIZ_STAGE_ID = 5076179
PAID_STAGE_ID = 5076181

OPEN_STATUS = 'Open'

# Custom field definition ids provisioned on Estate Planning opportunities
FIELD_IDS = {
    'phone': 722611,
    'responderStatus': 722612,
    'dswNumber': 722613,
    'department': 722614,
    'maritalStatus': 722615,
    'dependants': 722616,
    'realEstate': 722617,
    'lifeInsurance': 722618,
    'existingTrust': 722619,
    'selectedPackage': 722620,
    'referredBy': 723226,
    'paymentLink': 727706,
}

# Form fields copied into opportunity custom fields, in this order
CUSTOM_FIELD_ORDER = [
    'phone',
    'responderStatus',
    'dswNumber',
    'department',
    'maritalStatus',
    'dependants',
    'realEstate',
    'lifeInsurance',
    'existingTrust',
    'selectedPackage',
    'referredBy',
]

DEFAULT_PACKAGE = 'will'

PACKAGE_LABELS = {
    'will': 'Will Package',
    'trust-individual': 'Trust (Individual)',
    'trust-couple': 'Trust (Couples)',
    'trust-update': 'Update Existing Trust',
}

# Referral name -> Copper user id
REPRESENTATIVES = {
    'Caleb Taylor': 1206272,
    'Ian Curran': 1202942,
    'Chet Radish': 1202913,
    'Eli Sakov': 1213114,
    'James Garner': 1202796,
    'Sandro Magalhaes': 1219949,
    'Natalie Retes': 1206271,
}

SUBMISSION_SOURCE = 'prepareheroes.org'

# ====== Detail block labels ======
LABEL_NAME = 'Name'
LABEL_EMAIL = 'Email'
LABEL_PHONE = 'Phone'
LABEL_PACKAGE = 'Package'
LABEL_REFERRED_BY = 'Referred By'
LABEL_CHECKOUT_LINK = 'Checkout Link'
LABEL_CHECKOUT_STATE = 'Checkout State'

CHECKOUT_STATE_PENDING = 'Pending'
CHECKOUT_STATE_PAID = 'Paid'

PAYMENT_HEADING = 'Stripe Payment'
LABEL_INVOICE_ID = 'Stripe Invoice ID'
LABEL_INVOICE_URL = 'Stripe Invoice URL'
LABEL_SESSION_ID = 'Stripe Session ID'
LABEL_PAYMENT_INTENT = 'Stripe Payment Intent'
PAYMENT_LABELS = (LABEL_INVOICE_ID, LABEL_INVOICE_URL, LABEL_SESSION_ID, LABEL_PAYMENT_INTENT)

# ====== Public site pages ======
CHECKOUT_LINK_PATH = '/c/{opportunity_id}'
SUCCESS_PAGE = '/success.html'
CHECKOUT_PAGE = '/checkout.html'

# ====== Stripe ======
PAYMENT_EVENT_TYPES = (
    'checkout.session.completed',
    'invoice.payment_succeeded',
)
