"""
Email delivery interface

Donation and sponsorship confirmations go through whichever provider
init_extensions registers as 'email_provider'.
"""
from abc import ABC, abstractmethod


class EmailProvider(ABC):

    @abstractmethod
    def is_available(self, app=None) -> bool:
        """True when the provider has what it needs to deliver mail; ``app`` allows use outside a request"""

    @abstractmethod
    def send_email(self, to, subject, html, sender=None, reply_to=None) -> bool:
        """
        Deliver one rendered message

        ``to`` may be a single address or a list. ``sender`` falls back to
        MAIL_DEFAULT_SENDER. Returns False instead of raising when delivery
        fails, since a confirmation email must never undo a recorded payment.
        """
