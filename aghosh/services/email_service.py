"""
Email service for Aghosh
Renders donor-facing emails and hands them to the configured provider,
through Celery when USE_CELERY_FOR_EMAILS is set
"""
from flask import render_template, current_app
from flask_babel import gettext as _

from aghosh.container import provide
from aghosh.models import DonationType


class EmailService:
    """Service for sending donor emails"""

    @staticmethod
    def _send_now(to, subject, html):
        provider = provide('email_provider')
        return provider.send_email(to, subject, html)

    @staticmethod
    def send_email(to, subject, template, **kwargs):
        """
        Render ``emails/<template>.html`` and send it

        Args:
            to: Email address or list of addresses
            subject: Email subject
            template: Template name (without .html)
            **kwargs: Template context
        """
        html = render_template(f'emails/{template}.html', recipient_email=to, **kwargs)

        send_email_task = getattr(current_app, 'send_email_task', None)
        if current_app.config.get('USE_CELERY_FOR_EMAILS') and send_email_task is not None:
            try:
                job = send_email_task.delay(to, subject, html)
                current_app.logger.info(f'Email queued for {to}: {subject} (Task ID: {job.id})')
                return True
            except Exception as e:
                current_app.logger.warning(f'Failed to queue email, sending synchronously: {str(e)}')

        return EmailService._send_now(to, subject, html)

    @staticmethod
    def send_donation_confirmation(donation):
        """Thank the donor for a recorded one-time donation"""
        if donation.is_anonymous or not donation.email:
            current_app.logger.info(f'No email address for donation {donation.id}, confirmation skipped')
            return False

        return EmailService.send_email(
            to=donation.email,
            subject=_('Thank you for your donation to Aghosh'),
            template='donation_confirmation',
            donation=donation,
            donation_type_label=DonationType(donation.donation_type).label if donation.donation_type else None,
        )

    @staticmethod
    def send_sponsorship_confirmation(sponsorship):
        """Confirm a monthly sponsorship to the sponsor"""
        if not sponsorship.sponsor_email:
            return False

        return EmailService.send_email(
            to=sponsorship.sponsor_email,
            subject=_('Your sponsorship with Aghosh is confirmed'),
            template='sponsorship_confirmation',
            sponsorship=sponsorship,
            child=sponsorship.child,
        )
