"""
Celery application bound to the Flask app
"""
from celery import Celery, Task


def make_celery(app):
    """Create a Celery app whose tasks run inside the Flask application context"""

    class FlaskTask(Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery = Celery(
        app.import_name,
        broker=app.config['CELERY_BROKER_URL'],
        backend=app.config['CELERY_RESULT_BACKEND'],
        task_cls=FlaskTask,
    )
    celery.conf.update(
        task_always_eager=app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
        task_eager_propagates=app.config.get('TESTING', False),
        task_serializer='json',
        result_serializer='json',
        accept_content=['json'],
        timezone=app.config.get('BABEL_DEFAULT_TIMEZONE', 'UTC'),
        broker_connection_retry_on_startup=True,
    )
    celery.set_default()
    app.extensions['celery'] = celery
    return celery
