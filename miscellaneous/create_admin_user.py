#!/usr/bin/env python3
"""
Script to create an admin user for the Crowd Ticketing platform.
"""

import asyncio
import os
import sys
from getpass import getpass

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from crowd_ticketing.database import close_database, get_db_session, init_database
from crowd_ticketing.models.user import User, UserRole
from crowd_ticketing.utils.auth import get_password_hash


async def create_admin_user():
    """Create an admin user interactively, or promote an existing account."""
    print("Crowd Ticketing - Admin User Creation")
    print("=" * 40)

    email = input("Enter admin email: ").strip().lower()
    if not email:
        print("Email is required!")
        return

    first_name = input("Enter first name: ").strip()
    last_name = input("Enter last name: ").strip()
    if not first_name or not last_name:
        print("First and last name are required!")
        return

    password = getpass("Enter password: ").strip()
    if len(password) < 6:
        print("Password must be at least 6 characters!")
        return
    if password != getpass("Confirm password: ").strip():
        print("Passwords do not match!")
        return

    await init_database()
    try:
        async with get_db_session() as db:
            result = await db.execute(select(User).where(User.email == email))
            existing_user = result.scalar_one_or_none()

            if existing_user:
                print(f"User with email {email} already exists!")
                if input("Make existing user an admin? (y/N): ").strip().lower() == "y":
                    existing_user.role = UserRole.ADMIN
                    print(f"User {email} is now an admin!")
                return

            admin_user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                password_hash=get_password_hash(password),
                role=UserRole.ADMIN,
                is_active=True,
                is_verified=True,
            )
            db.add(admin_user)
            await db.flush()

            print("Admin user created successfully!")
            print(f"   Email: {admin_user.email}")
            print(f"   Name: {admin_user.full_name}")
            print(f"   ID: {admin_user.id}")
    finally:
        await close_database()


async def list_admin_users():
    """List all admin users."""
    await init_database()
    try:
        async with get_db_session() as db:
            result = await db.execute(select(User).where(User.role == UserRole.ADMIN))
            admin_users = result.scalars().all()

            if not admin_users:
                print("No admin users found.")
            for user in admin_users:
                status = "Active" if user.is_active else "Inactive"
                print(f"{user.email}")
                print(f"   Name: {user.full_name}")
                print(f"   Status: {status}")
                print(f"   ID: {user.id}")
                print()
    finally:
        await close_database()


async def main():
    if len(sys.argv) > 1 and sys.argv[1] == "list":
        await list_admin_users()
    else:
        await create_admin_user()


if __name__ == "__main__":
    asyncio.run(main())
