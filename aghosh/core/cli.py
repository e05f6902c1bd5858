"""
CLI commands registration
"""
import click
from aghosh.cli import init_db_command, create_admin_user_command, create_child_command, create_event_command


def register_cli_commands(app):
    """Register all CLI commands"""
    @app.cli.command('init-db')
    def init_db():
        """Initialize the database using Flask-Migrate."""
        init_db_command()

    @app.cli.command('create-admin')
    @click.option('--email', default=None, help='Admin e-mail (default: ADMIN_USER_EMAIL)')
    @click.option('--password', default=None, help='Admin password (default: ADMIN_PASSWORD, admin123 in development)')
    @click.option('--full-name', default=None, help='Display name')
    def create_admin(email, password, full_name):
        """Create or update admin user."""
        success = create_admin_user_command(email=email, password=password, full_name=full_name)
        if not success:
            raise click.ClickException('Could not create admin user')

    @app.cli.command('create-child')
    @click.argument('name')
    @click.option('--monthly-amount', type=int, default=None, help='Monthly sponsorship in PKR')
    @click.option('--age', type=int, default=None)
    @click.option('--gender', default=None)
    def create_child(name, monthly_amount, age, gender):
        """Add a child who can be sponsored."""
        create_child_command(name, monthly_amount=monthly_amount, age=age, gender=gender)

    @app.cli.command('create-event')
    @click.argument('title')
    @click.option('--date', type=click.DateTime(), default=None, help='Event date (YYYY-MM-DD)')
    @click.option('--location', default=None)
    @click.option('--description', default=None)
    def create_event(title, date, location, description):
        """Add a fundraising event."""
        create_event_command(title, date=date, location=location, description=description)

    @app.cli.command('fetch-receipts')
    def fetch_receipts():
        """Fill missing Stripe receipt URLs on completed sponsorships."""
        from aghosh.container import provide
        from aghosh.payments.receipts import backfill_missing_receipts

        gateway = provide('payment_gateway')
        if not gateway.is_configured():
            raise click.ClickException('Stripe is not configured (STRIPE_SECRET_KEY / STRIPE_PUBLISHABLE_KEY)')
        report = backfill_missing_receipts(gateway)
        click.echo(
            f'Checked {report.checked}, filled {report.filled}, '
            f'still missing {report.still_missing}'
        )
        for error in report.errors:
            click.echo(f'  ✗ {error}', err=True)

    @app.cli.command('check-stripe')
    def check_stripe():
        """Show whether Stripe keys and webhook secret are configured."""
        from aghosh.container import provide
        from aghosh.utils import mask_secret

        gateway = provide('payment_gateway')
        click.echo(f"Secret key:      {mask_secret(app.config.get('STRIPE_SECRET_KEY'))}")
        click.echo(f"Publishable key: {mask_secret(app.config.get('STRIPE_PUBLISHABLE_KEY'))}")
        click.echo(f"Webhook secret:  {mask_secret(app.config.get('STRIPE_WEBHOOK_SECRET'))}")
        click.echo(f"API version:     {app.config.get('STRIPE_API_VERSION')}")
        if gateway.is_configured():
            click.echo('✅ Card payments enabled')
        else:
            click.echo('⚠️  Card payments disabled: donors will be directed to bank transfer')
