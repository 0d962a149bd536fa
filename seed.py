from datetime import date, timedelta

from content_review.auth import get_password_hash
from content_review.config import get_settings
from content_review.database import SessionLocal, engine, Base
from content_review.lifecycle import approve, apply_changes, reject
from content_review.models import AuthUser, ContentItem, Profile

settings = get_settings()

# Create tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

admin_email = settings.admin_bootstrap_email or "admin@example.com"
if not settings.admin_bootstrap_email:
    print("ADMIN_BOOTSTRAP_EMAIL is not set; the seeded admin will be a regular profile.")

identities = [
    (admin_email, "Studio Admin"),
    ("client.one@example.com", "Client One"),
    ("client.two@example.com", "Client Two"),
]

users = {}
for email, full_name in identities:
    user = db.query(AuthUser).filter(AuthUser.email == email).first()
    if not user:
        user = AuthUser(
            email=email,
            hashed_password=get_password_hash("changeme123"),
            full_name=full_name,
        )
        db.add(user)
        db.commit()
    users[email] = user

admin = db.query(Profile).filter(Profile.id == users[admin_email].id).one()
client_one = db.query(Profile).filter(Profile.email == "client.one@example.com").one()
client_two = db.query(Profile).filter(Profile.email == "client.two@example.com").one()

today = date.today()

# Sample content items
items = [
    ContentItem(
        title="Spring teaser",
        caption="Something new is coming. Stay tuned.",
        content_type="Reel",
        media_url="https://drive.google.com/file/d/spring-teaser/view",
        schedule_date=today + timedelta(days=2),
        created_by=admin.id,
        assigned_to=client_one.id,
    ),
    ContentItem(
        caption="Behind the scenes at the shoot",
        content_type="Story",
        media_url="https://drive.google.com/file/d/bts/view",
        schedule_date=today,
        created_by=admin.id,
        assigned_to=client_one.id,
    ),
    ContentItem(
        title="Tour dates",
        caption="Full list of dates on our site",
        content_type="Post",
        media_url="https://drive.google.com/file/d/tour-dates/view",
        schedule_date=today + timedelta(days=5),
        created_by=admin.id,
        assigned_to=client_two.id,
    ),
    ContentItem(
        caption="Last month's recap",
        content_type="TikTok",
        media_url="https://drive.google.com/file/d/recap/view",
        schedule_date=today - timedelta(days=20),
        created_by=admin.id,
        assigned_to=client_two.id,
    ),
]

db.add_all(items)
db.commit()

# Record a couple of decisions so every status is represented
apply_changes(items[3], approve(items[3]))
apply_changes(items[2], reject(items[2], "Please use the updated tour poster"))
db.commit()

print("Database seeded successfully!")
print(f"  - {len(users)} identities (admin: {admin.email}, is_admin={admin.is_admin})")
print(f"  - {len(items)} content items")

db.close()
