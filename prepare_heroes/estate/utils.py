from urllib.parse import urlencode


def digits_only(value) -> str:
    return ''.join(c for c in str(value or '') if c.isdigit())


def mask_email(email: str) -> str:
    if not email or '@' not in email:
        return ''
    name, domain = email.split('@', 1)
    return (name[:4] + '***@' + domain)


def build_url(origin: str, path: str, params=None) -> str:
    """Join ``origin`` and ``path`` and append ``params`` (ordered pairs or dict) as a query string."""
    url = origin.rstrip('/') + path
    if params:
        url += '?' + urlencode(params)
    return url


def request_origin(request) -> str:
    """Scheme and host of the incoming request, e.g. https://prepareheroes.org"""
    return request.build_absolute_uri('/').rstrip('/')
