"""
Celery tasks for sending emails
"""
from flask import current_app


def init_tasks(celery_app):
    """Initialize Celery tasks with the Celery app instance"""

    @celery_app.task(name='send_email_task', bind=True, max_retries=3)
    def send_email_task(self, to, subject, html):
        """
        Send an already-rendered email through the configured provider

        Args:
            to: Email address or list of addresses
            subject: Email subject
            html: Rendered HTML body
        """
        from aghosh.services.email_service import EmailService

        result = EmailService._send_now(to, subject, html)
        if result:
            current_app.logger.info(f'Email sent via Celery to {to}: {subject}')
            return True

        current_app.logger.warning(f'Email sending failed via Celery to {to}: {subject}')
        # Retry with exponential backoff
        raise self.retry(countdown=60 * (2 ** self.request.retries))

    return send_email_task
