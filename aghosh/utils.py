import secrets
from datetime import datetime, timezone

import bleach


def get_locale():
    """Language selector function for Babel - returns locale string"""
    from flask import has_request_context, session, request

    if has_request_context():
        lang = session.get('language')
        if lang in ['en', 'ur']:
            return lang
        best = request.accept_languages.best_match(['en', 'ur'])
        if best:
            return best
    return 'en'


def sanitize_html(text):
    """Strip all markup from donor-supplied free text"""
    if text is None:
        return None
    return bleach.clean(str(text), tags=[], attributes={}, strip=True).strip()


def generate_receipt_number(prefix='AGH', when=None):
    """Receipt number in the form AGH-YYYYMMDD-XXXXXXXX"""
    when = when or datetime.now(timezone.utc)
    suffix = secrets.token_hex(4).upper()
    return f'{prefix}-{when.strftime("%Y%m%d")}-{suffix}'


def mask_secret(value, visible=4):
    """Mask a secret for logging, keeping only the last few characters"""
    if not value:
        return 'NOT SET'
    if len(value) <= visible:
        return '*' * len(value)
    return '*' * 8 + value[-visible:]


def parse_bool(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')
