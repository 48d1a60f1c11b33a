# clinic_admin/extensions.py
"""
Flask extension instances, initialised by the application factory
"""
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
