"""
SMTP email provider using Flask-Mail
"""
from aghosh.providers.base import EmailProvider
from flask import current_app
from flask_mail import Message
import threading
import queue as queue_module


class SMTPEmailProvider(EmailProvider):
    """Provider using SMTP (Flask-Mail)"""

    def is_available(self, app=None) -> bool:
        config = app.config if app else current_app.config

        if config.get('MAIL_SUPPRESS_SEND', False):
            return False

        return bool(config.get('MAIL_SERVER') and config.get('MAIL_USERNAME') and config.get('MAIL_PASSWORD'))

    def send_email(self, to, subject, html, sender=None, reply_to=None):
        if current_app.config.get('MAIL_SUPPRESS_SEND', False):
            current_app.logger.info(f'[EMAIL SUPPRESSED] To: {to}, Subject: {subject}')
            return True

        from aghosh.extensions import mail

        msg = Message(
            subject=subject,
            recipients=[to] if isinstance(to, str) else to,
            html=html,
            sender=sender or current_app.config.get('MAIL_DEFAULT_SENDER'),
            reply_to=reply_to
        )

        app_instance = current_app._get_current_object()
        result_queue = queue_module.Queue()
        error_queue = queue_module.Queue()

        def send_email_thread():
            with app_instance.app_context():
                try:
                    mail.send(msg)
                    result_queue.put(True)
                except Exception as e:
                    error_queue.put(e)

        # SMTP servers can hang; bound the wait so a request thread is never stuck
        thread = threading.Thread(target=send_email_thread, daemon=True)
        thread.start()
        timeout = current_app.config.get('MAIL_TIMEOUT', 10)
        thread.join(timeout=timeout)

        if thread.is_alive():
            current_app.logger.error(f'SMTP email send timeout for {to} after {timeout} seconds')
            return False

        if not error_queue.empty():
            error = error_queue.get()
            current_app.logger.error(f'Error sending email via SMTP to {to}: {str(error)}', exc_info=error)
            return False

        if result_queue.empty():
            current_app.logger.error(f'SMTP email send failed for {to}: unknown error')
            return False

        current_app.logger.info(f'Email sent via SMTP to {to}: {subject}')
        return True
