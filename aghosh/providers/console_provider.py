"""
Console email provider for development/testing
"""
from aghosh.providers.base import EmailProvider
from flask import current_app


class ConsoleEmailProvider(EmailProvider):
    """Logs emails instead of sending them"""

    def __init__(self):
        self.outbox = []

    def is_available(self, app=None) -> bool:
        return True

    def send_email(self, to, subject, html, sender=None, reply_to=None):
        sender = sender or current_app.config.get('MAIL_DEFAULT_SENDER')
        self.outbox.append({'to': to, 'subject': subject, 'html': html, 'sender': sender, 'reply_to': reply_to})

        current_app.logger.info(
            f'[EMAIL CONSOLE] From: {sender} To: {to} Subject: {subject}'
            + (f' Reply-To: {reply_to}' if reply_to else '')
        )
        current_app.logger.debug(f'[EMAIL CONSOLE] Body:\n{html}')
        return True
