#!/usr/bin/env python
"""
Check that the environment variables the donations service needs are set
Run before deploying: python check_env.py
"""
import os
import sys

from dotenv import load_dotenv

load_dotenv()

required_vars = {
    'SECRET_KEY': 'Secret key for Flask sessions',
    'SECURITY_PASSWORD_SALT': 'Salt for password hashing',
    'DATABASE_URL': 'Database connection string',
}

optional_vars = {
    'STRIPE_PUBLISHABLE_KEY': 'Stripe publishable key (card payments)',
    'STRIPE_SECRET_KEY': 'Stripe secret key (card payments)',
    'STRIPE_WEBHOOK_SECRET': 'Stripe webhook signing secret',
    'CELERY_BROKER_URL': 'Celery broker (receipt backfill, emails)',
    'PAYMENT_LEDGER_BACKEND': 'database (default) or memory',
    'MAIL_USERNAME': 'SMTP username',
    'FLASK_ENV': 'Flask environment (development/production)',
}


def _display(var, value):
    if any(word in var for word in ('SECRET', 'KEY', 'PASSWORD', 'SALT')):
        return value[:4] + '****' + value[-4:] if len(value) > 8 else '****'
    return value[:40] + '...' if len(value) > 40 else value


def main():
    print("=" * 60)
    print("Environment Variables Check")
    print("=" * 60)

    all_ok = True
    print("\nRequired Variables:")
    print("-" * 60)
    for var, description in required_vars.items():
        value = os.environ.get(var)
        if value:
            print(f"  ✓ {var:25} {_display(var, value):20} ({description})")
        else:
            print(f"  ✗ {var:25} NOT SET          ({description})")
            all_ok = False

    print("\nOptional Variables:")
    print("-" * 60)
    for var, description in optional_vars.items():
        value = os.environ.get(var)
        if value:
            print(f"  ✓ {var:25} {_display(var, value):40} ({description})")
        else:
            print(f"  - {var:25} not set          ({description})")

    if os.environ.get('STRIPE_SECRET_KEY') and not os.environ.get('STRIPE_WEBHOOK_SECRET'):
        print("\n⚠️  STRIPE_WEBHOOK_SECRET missing: webhooks will be rejected, "
              "donations rely on confirm/verify calls only")

    print("\n" + "=" * 60)
    print("✓ All required variables are set!" if all_ok else "✗ Some required variables are missing!")
    print("=" * 60)
    return 0 if all_ok else 1


if __name__ == '__main__':
    sys.exit(main())
