#!/usr/bin/env python
"""
Celery worker entry point
Run with: celery -A celery_worker.celery worker --beat --loglevel=info
"""
from celery.signals import worker_ready
from aghosh import create_app

app = create_app()

# Export at module level so 'celery -A celery_worker.celery' works
celery = app.celery


@worker_ready.connect
def fetch_receipts_on_startup(sender=None, **kwargs):
    """Run one receipt backfill as soon as the worker is up"""
    if not app.config.get('RECEIPT_BACKFILL_ENABLED', True):
        return
    if not (app.config.get('STRIPE_SECRET_KEY') and app.config.get('STRIPE_PUBLISHABLE_KEY')):
        app.logger.info('Stripe not configured, startup receipt backfill skipped')
        return
    app.fetch_missing_receipts_task.delay()
    app.logger.info('Startup receipt backfill queued')


if __name__ == '__main__':
    celery.worker_main(['worker', '--beat', '--loglevel=info'])
