"""Create every table directly from the models (local sqlite or a scratch database).

Deployed databases are managed by Alembic (alembic upgrade head); use this only
where migrations are not run.
"""
from dotenv import load_dotenv
load_dotenv()

from app.db.session import engine
from app.db.base import Base
from app.models import BillingActive, BillingHistory, CalendarEvent, CronJobLog, Subscription  # noqa: F401

print("Creating database tables...")
Base.metadata.create_all(bind=engine)
print(f"✅ Created {len(Base.metadata.tables)} tables: {', '.join(sorted(Base.metadata.tables))}")
