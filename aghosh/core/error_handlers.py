"""
Error handlers for the application
"""
from flask import jsonify, request
from aghosh.extensions import db
from aghosh.payments.errors import PaymentError, WebhookSignatureInvalid


def register_error_handlers(app):
    """Register error handlers"""
    @app.errorhandler(PaymentError)
    def payment_error(error):
        if isinstance(error, WebhookSignatureInvalid):
            # Usually means a proxy or middleware altered the raw body
            app.logger.error(f'Webhook signature error on {request.path}: {error.message}')
        elif error.status_code >= 500:
            app.logger.error(f'{error.__class__.__name__} on {request.path}: {error.message}')
        else:
            app.logger.warning(f'{error.__class__.__name__} on {request.path}: {error.message}')
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(f'400 error: {request.url}')
        return jsonify({'message': getattr(error, 'description', None) or 'Bad request'}), 400

    @app.errorhandler(401)
    def unauthorized_error(error):
        return jsonify({'message': 'Authentication required'}), 401

    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.warning(f'404 error: {request.url}')
        return jsonify({'message': 'Not found'}), 404

    @app.errorhandler(429)
    def rate_limited_error(error):
        app.logger.warning(f'429 error: {request.url} ({request.remote_addr})')
        return jsonify({'message': 'Too many requests. Please try again later.'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'500 error: {str(error)}', exc_info=True)
        return jsonify({'message': 'Internal server error'}), 500

    @app.errorhandler(403)
    def forbidden_error(error):
        app.logger.warning(f'403 error: {request.url}')
        return jsonify({'message': 'Forbidden'}), 403
