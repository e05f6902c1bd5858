"""
Rate limiting for Flask-Security-Too endpoints
"""


def apply_security_rate_limits(app, limiter):
    """
    Apply rate limits to Flask-Security-Too endpoints after they're registered.

    Args:
        app: Flask application instance
        limiter: Flask-Limiter instance
    """
    login_limit = limiter.shared_limit("10 per hour", scope="login", methods=["POST"])
    register_limit = limiter.shared_limit("5 per hour", scope="register", methods=["POST"])

    # Flask-Security-Too registers its views during init_app, so wrap them afterwards
    for endpoint, limit, label in (
        ('security.login', login_limit, '10 per hour'),
        ('security.register', register_limit, '5 per hour'),
    ):
        if endpoint in app.view_functions:
            app.view_functions[endpoint] = limit(app.view_functions[endpoint])
            app.logger.info(f'Rate limit applied to {endpoint}: {label}')


def payment_rate_limit():
    """Limit string for endpoints that create processor objects"""
    from flask import current_app
    return current_app.config.get('PAYMENT_RATE_LIMIT', '30 per hour')
