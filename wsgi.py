"""
WSGI / Flask CLI entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi seed-demo
    flask --app wsgi db migrate     # SQL backend schema migrations (Flask-Migrate)
"""

from shiftboard import create_app

app = create_app()
