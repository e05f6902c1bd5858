"""
Email providers for Aghosh (SMTP, Console)
"""
from aghosh.providers.base import EmailProvider
from aghosh.providers.smtp_provider import SMTPEmailProvider
from aghosh.providers.console_provider import ConsoleEmailProvider

__all__ = ['EmailProvider', 'SMTPEmailProvider', 'ConsoleEmailProvider']
