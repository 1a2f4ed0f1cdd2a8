"""
Database connection management.
Handles per-request connections, initialization, and teardown.
"""

import logging
import os
import sqlite3
from flask import g, current_app

logger = logging.getLogger(__name__)


def get_db():
    """
    Get the request-scoped database connection with row factory.

    Returns:
        sqlite3.Connection: Database connection object
    """
    if 'db' not in g:
        db_path = current_app.config.get('DATABASE_PATH', 'instance/dockslot.db')
        if db_path != ':memory:':
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        g.db = sqlite3.connect(db_path, timeout=10)
        g.db.row_factory = sqlite3.Row
        # Enable foreign key constraints
        g.db.execute('PRAGMA foreign_keys = ON')
        # Enable WAL mode for better concurrency
        g.db.execute('PRAGMA journal_mode = WAL')
    return g.db


def close_db(e=None):
    """
    Close database connection.

    Args:
        e: Exception if any (from Flask teardown context)
    """
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db(seed: bool = True):
    """
    Initialize database: drop existing tables, create new schema, insert seed data.
    WARNING: This will delete all existing data!

    Args:
        seed: Insert the demo captain when True
    """
    from database.schema import drop_tables, create_tables, create_indexes
    from database.seed import seed_database

    db = get_db()

    drop_tables(db)
    create_tables(db)
    create_indexes(db)

    if seed:
        seed_database(db)

    db.commit()
    logger.info("Database initialized at %s", current_app.config.get('DATABASE_PATH'))
