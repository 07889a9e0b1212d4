#!/usr/bin/env python3
"""Initialize database tables"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from travelhub import create_app
from travelhub.extensions import db
from travelhub.models import EmailSetting
from travelhub.notifications import default_email_settings

def init_database():
    app = create_app()
    with app.app_context():
        db.create_all()

        # Seed email settings so the admin panel shows every key
        existing = {row.setting_key for row in EmailSetting.query.all()}
        for key, value in default_email_settings().items():
            if key not in existing:
                db.session.add(EmailSetting(setting_key=key, setting_value=value, description=""))
        db.session.commit()
        print("✅ Database tables initialized successfully")

if __name__ == "__main__":
    init_database()
