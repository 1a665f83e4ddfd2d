"""Flask extensions initialization."""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
