#!/usr/bin/env python3
"""
seed_demo_data.py - Demo accounts and a sample catalog

Creates an admin, a seller and a customer, plus the TSHIRT-001 product with
color x size variants generated from its options. Safe to re-run: existing
users are kept and the product is skipped when its base SKU is taken.

Usage:
    # Tables must exist first
    alembic upgrade head

    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --password demo1234
"""

import sys
import asyncio
import argparse
import logging
from pathlib import Path

from sqlalchemy import select

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ecommerce.core.db.engine import AsyncSessionLocal, dispose_engine  # noqa: E402
from ecommerce.core.exceptions import AppError  # noqa: E402
from ecommerce.modules.products.models import Product  # noqa: E402
from ecommerce.modules.products.schemas import CreateProductRequest  # noqa: E402
from ecommerce.modules.products.service import ProductService  # noqa: E402
from ecommerce.modules.users.models import Role, User  # noqa: E402
from ecommerce.modules.users.schemas import RegisterRequest  # noqa: E402
from ecommerce.modules.users.service import UsersService  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("seed")

DEMO_USERS = [
    ("admin", "Demo Admin", Role.ADMIN),
    ("seller", "Demo Seller", Role.SELLER),
    ("customer", "Demo Customer", Role.CUSTOMER),
]

DEMO_PRODUCT = {
    "name": "Basic T-Shirt",
    "brand": "Acme",
    "baseSku": "TSHIRT-001",
    "shortDescription": "Everyday cotton tee",
    "tags": ["cotton", "summer"],
    "options": [
        {
            "name": "color",
            "displayName": "Color",
            "values": [
                {"value": "red", "displayName": "Red", "colorCode": "#FF0000"},
                {"value": "blue", "displayName": "Blue", "colorCode": "#0000FF"},
            ],
        },
        {
            "name": "size",
            "displayName": "Size",
            "values": [
                {"value": "s", "displayName": "S"},
                {"value": "m", "displayName": "M"},
            ],
        },
    ],
    "autoGenerateVariants": True,
    "defaultVariantSettings": {"price": 19.99, "stock": 25, "images": ["tshirt-red.jpg"]},
}


async def ensure_user(session, username: str, name: str, role: Role, password: str) -> int:
    user_id = await session.scalar(select(User.id).where(User.username == username))
    if user_id is not None:
        logger.info("User %s exists (id=%s)", username, user_id)
        return user_id

    created = await UsersService.create(
        session,
        RegisterRequest(
            username=username,
            password=password,
            name=name,
            role=role,
            store_name="Demo Threads" if role == Role.SELLER else None,
        ),
        allow_admin=True,
    )
    await session.commit()
    logger.info("Created %s %s (id=%s)", role.value, username, created.user.id)
    return created.user.id


async def seed(password: str) -> bool:
    async with AsyncSessionLocal() as session:
        user_ids = {}
        for username, name, role in DEMO_USERS:
            user_ids[username] = await ensure_user(session, username, name, role, password)

        taken = await session.scalar(
            select(Product.id).where(Product.base_sku == DEMO_PRODUCT["baseSku"])
        )
        if taken is not None:
            logger.info("Product %s exists (id=%s), skipping", DEMO_PRODUCT["baseSku"], taken)
            return True

        try:
            product = await ProductService.create_product(
                session, user_ids["seller"], CreateProductRequest(**DEMO_PRODUCT)
            )
            await session.commit()
        except AppError as exc:
            logger.error("Seeding failed: %s (%s)", exc.message, exc.error_code)
            return False

        logger.info(
            "Created product %s with variants: %s",
            product.id, ", ".join(variant.sku for variant in product.variants),
        )
    return True


async def run(password: str) -> bool:
    try:
        return await seed(password)
    finally:
        await dispose_engine()


def main():
    parser = argparse.ArgumentParser(description="Seed demo users and a sample product")
    parser.add_argument(
        "--password",
        default="password123",
        help="Password for all demo accounts (default: password123)",
    )
    args = parser.parse_args()

    success = asyncio.run(run(args.password))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
