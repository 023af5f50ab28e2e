"""
Create an admin user, optionally with a first article to attach references to.

Usage:
    python scripts/create_admin_user.py admin@example.com 'Secret123!' --article "Launch notes"
"""

import argparse
import asyncio
import sys
from uuid import uuid4

sys.path.insert(0, ".")

from sqlalchemy import select

from article_admin.database import async_session_maker
from article_admin.models import Article, User
from article_admin.utils.security import get_password_hash


async def create_admin_user(email: str, password: str, article_title: str | None) -> None:
    async with async_session_maker() as db:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(
                id=uuid4(),
                email=email,
                password_hash=get_password_hash(password),
                display_name=email.split("@")[0],
                is_admin=True,
            )
            db.add(user)
            await db.flush()
            print(f"Created admin user: {email}")
        else:
            user.is_admin = True
            print(f"User {email} already exists, granted admin")

        if article_title:
            article = Article(id=uuid4(), title=article_title, author_id=user.id)
            db.add(article)
            await db.flush()
            print(f"Created article: {article.title} ({article.id})")

        await db.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--article", dest="article_title", default=None)
    args = parser.parse_args()
    asyncio.run(create_admin_user(args.email, args.password, args.article_title))


if __name__ == "__main__":
    main()
