#!/usr/bin/env python
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from labtrack import create_app, ensure_hod
from labtrack.extensions import db
from labtrack.services.asset_types import seed_asset_types
from labtrack.services.labs import seed_labs
import logging


# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_database():
    """Create tables, seed reference data and the HOD account.

    The HOD account is read from the environment:
    - HOD_EMAIL
    - HOD_PASSWORD
    - HOD_NAME

    Returns:
        bool: True if initialization successful, False otherwise
    """
    app = create_app()

    with app.app_context():
        try:
            db.create_all()
            labs = seed_labs()
            asset_types = seed_asset_types()
            logger.info(f'Seeded {len(labs)} lab(s) and {len(asset_types)} asset type(s)')

            if not current_app.config['HOD_PASSWORD']:
                logger.warning('HOD_PASSWORD is not set, skipping HOD account')
            else:
                ensure_hod(app)
            return True

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f'Error initializing database: {str(e)}')
            return False


if __name__ == '__main__':
    success = init_database()
    exit(0 if success else 1)
