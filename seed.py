"""
Seed the configured database with a demo account, events and recipients.

Usage:
    python seed.py
"""
from datetime import timedelta

from eventsync.config import get_settings
from eventsync.database import Database
from eventsync.logging_config import get_logger
from eventsync.models.user import User
from eventsync.schemas import EventCreate, MessageCreate, RecipientCreate
from eventsync.services import (
    EventService,
    IdentityService,
    MessageService,
    RecipientService,
)
from eventsync.types import utcnow

DEMO_EMAIL = "demo@eventsync.dev"
DEMO_PASSWORD = "demopassword"

settings = get_settings()
logger = get_logger("seed")

database = Database(settings.database_url).open()
database.create_all()
db = database.session()

# Start over with a clean demo account
existing = db.query(User).filter(User.email == DEMO_EMAIL).first()
if existing:
    db.delete(existing)
    db.commit()

user, _ = IdentityService(db, logger).register(
    DEMO_EMAIL,
    DEMO_PASSWORD,
    first_name="Demo",
    last_name="Organizer",
    company_name="EventSync",
)

now = utcnow()

# Sample recipients
recipients, _ = RecipientService(db, logger).bulk_create(user.id, [
    RecipientCreate(
        email="alice@example.com",
        first_name="Alice",
        last_name="Martin",
        company="Acme",
        position="CTO",
        tags=["vip", "speaker"],
    ),
    RecipientCreate(
        email="bob@example.com",
        first_name="Bob",
        last_name="Nguyen",
        company="Initech",
        tags=["attendee"],
    ),
    RecipientCreate(
        email="carol@example.com",
        first_name="Carol",
        last_name="Okafor",
        tags=["attendee", "sponsor"],
    ),
])

# Sample events
events = EventService(db, logger)
launch = events.create(user.id, EventCreate(
    title="Product Launch",
    description="Unveiling of the spring release",
    event_date=now + timedelta(days=14),
    location="Main Hall",
    status="active",
    max_participants=200,
    is_public=True,
    tags=["launch", "public"],
))
events.create(user.id, EventCreate(
    title="Partner Workshop",
    event_date=now + timedelta(days=30),
    location="Room 4B",
    tags=["partners"],
))

for recipient, status in zip(recipients, ["confirmed", "invited", "confirmed"]):
    events.add_participant(launch.id, recipient.id, user.id, status=status)

# Sample messages
messages = MessageService(db, logger)
messages.create(user.id, MessageCreate(
    event_id=launch.id,
    subject="You're invited: Product Launch",
    content="Join us for the spring release.",
))
messages.create(user.id, MessageCreate(
    event_id=launch.id,
    subject="Reminder: Product Launch tomorrow",
    content="See you at the Main Hall.",
    scheduled_at=now + timedelta(days=13),
))

db.close()
database.close()

print("Database seeded successfully!")
print(f"  - Demo login: {DEMO_EMAIL} / {DEMO_PASSWORD}")
print(f"  - {len(recipients)} recipients")
print("  - 2 events")
print("  - 2 messages")
