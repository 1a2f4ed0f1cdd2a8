"""WSGI entry point for production deployment (gunicorn wsgi:application)."""
import os
from app import create_app

config_name = os.environ.get('FLASK_ENV', 'production')

# Refuse to boot production without a real secret key and database path
if config_name == 'production':
    from config import ProductionConfig
    ProductionConfig.validate()

application = create_app(config_name)
