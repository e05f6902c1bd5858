"""
Core application components
"""
from aghosh.core.cli import register_cli_commands
from aghosh.core.error_handlers import register_error_handlers
from aghosh.core.logging_config import setup_logging
from aghosh.core.rate_limiting import apply_security_rate_limits

__all__ = [
    'register_cli_commands',
    'register_error_handlers',
    'setup_logging',
    'apply_security_rate_limits'
]
