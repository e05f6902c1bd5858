import os
from datetime import timedelta
from flask import Flask, jsonify
from sqlalchemy import text
from aghosh.config import config
from aghosh.extensions import init_extensions
from aghosh.forms import ExtendedRegisterForm
from flask_security.signals import user_registered
from aghosh.core import register_cli_commands, register_error_handlers, setup_logging, apply_security_rate_limits


def create_app(config_name=None):
    """Application factory pattern"""
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')
    app.config.from_object(config.get(config_name, config['default']))
    app.permanent_session_lifetime = timedelta(seconds=app.config['PERMANENT_SESSION_LIFETIME'])

    setup_logging(app)

    init_extensions(app)

    # Celery: email sending and receipt backfill
    from aghosh.celery_app import make_celery
    from aghosh.tasks import init_tasks, init_receipt_tasks
    celery = make_celery(app)
    app.celery = celery
    app.send_email_task = init_tasks(celery)
    app.fetch_missing_receipts_task = init_receipt_tasks(celery, app)

    # Setup Flask-Security with custom form
    from aghosh.extensions import user_datastore, security
    security.init_app(app, user_datastore, register_form=ExtendedRegisterForm)

    @user_registered.connect_via(app)
    def on_user_registered(sender, user, form_data, **kwargs):
        """Save full name and assign the default 'donor' role"""
        from aghosh.extensions import db, user_datastore
        from aghosh.models import Role

        if form_data.get('full_name'):
            user.full_name = form_data['full_name']

        if not user.roles:
            donor_role = Role.query.filter_by(name='donor').first()
            if donor_role:
                user_datastore.add_role_to_user(user, donor_role)
                app.logger.info(f'Assigned default "donor" role to {user.email}')
            else:
                app.logger.warning('Default "donor" role not found. User registered without roles.')

        db.session.commit()

    from aghosh.routes import donations, stripe_webhooks, sponsorships, event_donations, donor, admin
    app.register_blueprint(donations.bp)
    app.register_blueprint(stripe_webhooks.bp)
    app.register_blueprint(sponsorships.bp)
    app.register_blueprint(event_donations.bp)
    app.register_blueprint(donor.bp)
    app.register_blueprint(admin.bp)

    register_cli_commands(app)
    register_error_handlers(app)

    from aghosh.extensions import limiter
    apply_security_rate_limits(app, limiter)

    @app.route('/health')
    def health():
        from aghosh.container import provide
        from aghosh.extensions import db

        try:
            db.session.execute(text('SELECT 1'))
            database = 'ok'
        except Exception as e:
            app.logger.error(f'Health check database error: {str(e)}')
            database = 'error'
        status = 200 if database == 'ok' else 503
        return jsonify({
            'status': 'ok' if status == 200 else 'degraded',
            'database': database,
            'stripeConfigured': provide('payment_gateway').is_configured(),
        }), status

    return app
