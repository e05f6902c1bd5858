from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from flask_babel import Babel
from flask_security import Security, SQLAlchemyUserDatastore
from flask_mail import Mail
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions (will be initialized in app factory)
db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
babel = Babel()
security = Security()
mail = Mail()
limiter = Limiter(key_func=get_remote_address)

# Will be set after models are imported
user_datastore = None


def init_extensions(app):
    """Initialize Flask extensions"""
    global user_datastore

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    from aghosh.utils import get_locale
    babel.init_app(app, locale_selector=get_locale)

    mail.init_app(app)

    # Dependency Injection Container
    from aghosh.container import get_container
    from aghosh.providers.base import EmailProvider
    from aghosh.providers.smtp_provider import SMTPEmailProvider
    from aghosh.providers.console_provider import ConsoleEmailProvider
    from aghosh.payments.gateway import PaymentGateway, StripeGateway
    from aghosh.payments.ledger import IdempotencyLedger, create_ledger
    from aghosh.payments.reconciliation import PaymentReconciler

    container = get_container()

    provider_name = app.config.get('EMAIL_PROVIDER', 'smtp').lower()
    app.logger.info(f'Email provider configuration: EMAIL_PROVIDER={provider_name}')

    if provider_name == 'console':
        selected_provider = ConsoleEmailProvider()
        app.logger.info('Console provider selected')
    else:
        if provider_name != 'smtp':
            app.logger.warning(f'Unknown email provider: {provider_name}, trying SMTP...')
        provider = SMTPEmailProvider()
        if provider.is_available(app=app):
            selected_provider = provider
            app.logger.info('SMTP provider selected')
        else:
            app.logger.warning('SMTP provider requested but not available, falling back to console')
            selected_provider = ConsoleEmailProvider()

    container.register_instance('email_provider', selected_provider, service_type=EmailProvider)

    gateway = StripeGateway(
        secret_key=app.config.get('STRIPE_SECRET_KEY'),
        publishable_key=app.config.get('STRIPE_PUBLISHABLE_KEY'),
        webhook_secret=app.config.get('STRIPE_WEBHOOK_SECRET'),
        api_version=app.config.get('STRIPE_API_VERSION'),
    )
    container.register_instance('payment_gateway', gateway, service_type=PaymentGateway)

    ledger = create_ledger(app.config.get('PAYMENT_LEDGER_BACKEND', 'database'))
    container.register_instance('payment_ledger', ledger, service_type=IdempotencyLedger)

    from aghosh.services.email_service import EmailService

    # Resolved lazily so tests can swap the gateway or ledger after app creation
    container.register(
        'payment_reconciler',
        lambda: PaymentReconciler(
            gateway=container.get('payment_gateway'),
            ledger=container.get('payment_ledger'),
            on_donation_recorded=EmailService.send_donation_confirmation,
            on_sponsorship_paid=EmailService.send_sponsorship_confirmation,
            receipt_prefix=app.config.get('RECEIPT_NUMBER_PREFIX', 'AGH'),
        ),
        singleton=False,
        service_type=PaymentReconciler,
    )

    app.logger.info(
        f'Dependency Injection container initialized with {selected_provider.__class__.__name__}, '
        f'{gateway.__class__.__name__} and {ledger.__class__.__name__}'
    )

    # Flask-Security is initialized in create_app with the custom register form
    from aghosh.models import User, Role
    user_datastore = SQLAlchemyUserDatastore(db, User, Role)
