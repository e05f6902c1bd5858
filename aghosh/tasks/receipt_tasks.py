"""
Celery tasks for the Stripe receipt backfill
"""
from flask import current_app

FETCH_MISSING_RECEIPTS = 'fetch_missing_receipts'


def init_receipt_tasks(celery_app, app):
    """Register the backfill task and, when enabled, its beat schedule"""

    @celery_app.task(name=FETCH_MISSING_RECEIPTS)
    def fetch_missing_receipts():
        from aghosh.container import provide
        from aghosh.payments.receipts import backfill_missing_receipts

        gateway = provide('payment_gateway')
        if not gateway.is_configured():
            current_app.logger.info('Stripe not configured, receipt backfill skipped')
            return None
        return backfill_missing_receipts(gateway).to_dict()

    enabled = app.config.get('RECEIPT_BACKFILL_ENABLED', True)
    stripe_configured = bool(app.config.get('STRIPE_SECRET_KEY') and app.config.get('STRIPE_PUBLISHABLE_KEY'))
    if enabled and stripe_configured:
        interval = app.config.get('RECEIPT_BACKFILL_INTERVAL', 3600)
        celery_app.conf.beat_schedule = dict(celery_app.conf.beat_schedule or {})
        celery_app.conf.beat_schedule['fetch-missing-receipts'] = {
            'task': FETCH_MISSING_RECEIPTS,
            'schedule': float(interval),
        }
        app.logger.info(f'Receipt backfill scheduled every {interval} seconds')
    elif enabled:
        app.logger.info('Stripe not configured, receipt backfill not scheduled')

    return fetch_missing_receipts
