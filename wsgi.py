"""
Production entry point for the donations API (gunicorn wsgi:app)
"""
import os

from aghosh import create_app

app = create_app('production')

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), threaded=True)
