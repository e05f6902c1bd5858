from datetime import datetime
from aghosh.extensions import db
from aghosh.models import User, Role, Child, Event
from flask_security import hash_password

DEFAULT_ROLES = {
    'admin': 'Administrator',
    'donor': 'Registered donor',
}


def ensure_roles():
    """Create the admin and donor roles if they are missing"""
    created = []
    for name, description in DEFAULT_ROLES.items():
        if not Role.query.filter_by(name=name).first():
            db.session.add(Role(name=name, description=description))
            created.append(name)
    if created:
        db.session.commit()
    return created


def init_db_command():
    """Initialize the database using Flask-Migrate."""
    from flask_migrate import upgrade
    from sqlalchemy import inspect

    inspector = inspect(db.engine)
    has_tables = len(inspector.get_table_names()) > 0

    if has_tables:
        print("Database has tables. Running migrations...")
        upgrade()
        print("✓ Migrations applied")
    else:
        print("Database is empty. Running migrations from scratch...")
        try:
            upgrade()
            print("✓ Migrations applied")
        except Exception as e:
            print(f"⚠️  Migrations failed ({e}), creating tables directly")
            db.create_all()
            print("✓ Tables created")

    created = ensure_roles()
    for name in created:
        print(f"✓ Role '{name}' created")
    print("✅ Database initialized")


def create_admin_user_command(email=None, password=None, full_name=None):
    """Create or update admin user."""
    from flask import current_app
    from flask_security import SQLAlchemyUserDatastore

    from aghosh.extensions import user_datastore as uds_imported
    uds = uds_imported if uds_imported is not None else SQLAlchemyUserDatastore(db, User, Role)

    if not email:
        email = current_app.config.get('ADMIN_USER_EMAIL', 'admin@aghosh.org')

    if not password:
        password = current_app.config.get('ADMIN_PASSWORD')
        if not password:
            if current_app.config.get('ENV') == 'development':
                password = 'admin123'
                print("⚠️  Using default password 'admin123' (development only)")
            else:
                print("❌ ERROR: ADMIN_PASSWORD not configured and no password provided.")
                print("   Set ADMIN_PASSWORD environment variable or use --password option.")
                return False

    ensure_roles()
    admin_role = Role.query.filter_by(name='admin').first()

    admin_user = User.query.filter_by(email=email).first()
    if admin_user:
        print(f"User with email '{email}' already exists. Ensuring admin role...")
        if admin_role not in admin_user.roles:
            uds.add_role_to_user(admin_user, admin_role)
            print("✓ Admin role added to user")
        admin_user.password = hash_password(password)
        admin_user.active = True
        if not admin_user.confirmed_at:
            admin_user.confirmed_at = datetime.now()
        if full_name:
            admin_user.full_name = full_name
        db.session.commit()
        print(f"✅ Admin user updated: {email}")
        return True

    uds.create_user(
        email=email,
        full_name=full_name or 'Administrator',
        password=hash_password(password),
        active=True,
        confirmed_at=datetime.now(),
        roles=[admin_role],
    )
    db.session.commit()
    print(f"✅ Admin user created: {email}")
    if current_app.config.get('ENV') == 'development':
        print(f"   Password: {password} (change after first login!)")
    return True


def create_child_command(name, monthly_amount=None, age=None, gender=None):
    """Add a child who can be sponsored"""
    from flask import current_app

    child = Child(
        name=name,
        age=age,
        gender=gender,
        monthly_amount=monthly_amount or current_app.config.get('DEFAULT_SPONSORSHIP_AMOUNT'),
    )
    db.session.add(child)
    db.session.commit()
    print(f"✅ Child created: {child.name} (id={child.id}, {child.monthly_amount} PKR/month)")
    return child


def create_event_command(title, date=None, location=None, description=None):
    """Add a fundraising event donors can contribute to"""
    event = Event(title=title, date=date, location=location, description=description, is_active=True)
    db.session.add(event)
    db.session.commit()
    print(f"✅ Event created: {event.title} (id={event.id})")
    return event
