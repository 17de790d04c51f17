"""
Flask extensions initialization.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .database import DatabaseHandle

# Database
db = SQLAlchemy()

# Migrations
migrate = Migrate()

# Handle injected into the stores (session access, health, reconnect policy)
database = DatabaseHandle(db)
