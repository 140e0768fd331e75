"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy and marshmallow as module-level objects so they can be
imported anywhere without creating circular dependencies.

    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` or `ma` from here wherever needed.

Services never import `db`; they receive a Session from the ServiceRegistry.
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Schema inheritance rule:
#   Validation schemas in app/schemas/ inherit from marshmallow.Schema, not
#   ma.Schema. ma.Schema needs an application context, and the unit tests
#   load schemas without one.
ma = Marshmallow()
