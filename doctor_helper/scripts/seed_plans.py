"""
Script to seed the default plans and an admin account
Run with: python -m doctor_helper.scripts.seed_plans
"""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from doctor_helper.database import AsyncSessionLocal, init_db
from doctor_helper.models.plan import Plan
from doctor_helper.models.user import User, UserRole, UserStatus
from doctor_helper.core.security import get_password_hash
from sqlalchemy import select

DEFAULT_PLANS = [
    {
        "title": "Free",
        "description": "Perfect for getting started",
        "features": [
            "3 AI consultations per month",
            "Basic health information",
            "Email support",
        ],
        "monthly_price": 0,
        "yearly_price": 0,
        "is_popular": False,
        "interactions_limit": 3,
    },
    {
        "title": "Basic",
        "description": "Great for regular users",
        "features": [
            "50 AI consultations per month",
            "Image analysis",
            "Health history tracking",
        ],
        "monthly_price": 9.99,
        "yearly_price": 99.99,
        "is_popular": True,
        "interactions_limit": 50,
    },
    {
        "title": "Premium",
        "description": "For healthcare professionals",
        "features": [
            "Unlimited AI consultations",
            "Unlimited image analysis",
            "Custom health reports",
            "Priority support",
        ],
        "monthly_price": 29.99,
        "yearly_price": 299.99,
        "is_popular": False,
        "interactions_limit": None,  # Unlimited
    },
]


async def seed_data():
    """Seed plans and the admin user"""
    print("Seeding plans...")
    await init_db()

    async with AsyncSessionLocal() as db:
        for plan_data in DEFAULT_PLANS:
            result = await db.execute(select(Plan).where(Plan.title == plan_data["title"]))
            if result.scalar_one_or_none():
                print(f"Plan '{plan_data['title']}' already exists, skipping...")
                continue
            db.add(Plan(**plan_data))
            print(f"Created plan '{plan_data['title']}'")

        result = await db.execute(select(User).where(User.email == "admin@example.com"))
        if not result.scalar_one_or_none():
            db.add(User(
                email="admin@example.com",
                password_hash=get_password_hash("admin123"),
                first_name="Admin",
                role=UserRole.ADMIN,
                status=UserStatus.ACTIVE,
                plan="Premium",
            ))
            print("Created admin user")
        else:
            print("Admin user already exists, skipping...")

        await db.commit()

    print("\n✅ Plans seeded successfully!")
    print("\nLogin credentials:")
    print("Admin: admin@example.com / admin123")


if __name__ == "__main__":
    asyncio.run(seed_data())
