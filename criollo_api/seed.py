"""
Seed data for development and first deployment.
Creates the staff roles, the administrator account and, optionally, a sample
floor plan and Dominican menu. Every step is idempotent.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from criollo_api.models import Category, Employee, Inventory, Product, Role, Table, User
from criollo_shared.config.constants import Roles
from criollo_shared.config.logging import get_logger
from criollo_shared.config.settings import settings
from criollo_shared.security.password import hash_password

logger = get_logger(__name__)

ADMIN_CEDULA = "001-0000001-1"

DEMO_TABLES = [
    # (number, capacity, location)
    (1, 2, "Salón"),
    (2, 2, "Salón"),
    (3, 4, "Salón"),
    (4, 4, "Salón"),
    (5, 4, "Salón"),
    (6, 6, "Salón"),
    (7, 4, "Terraza"),
    (8, 6, "Terraza"),
    (9, 8, "Terraza"),
    (10, 10, "Privado"),
]

DEMO_MENU = {
    "Platos Principales": [
        # (name, price, cost, stock)
        ("La Bandera Dominicana", "450.00", "180.00", 40),
        ("Pollo Guisado", "350.00", "140.00", 40),
        ("Sancocho de Siete Carnes", "550.00", "230.00", 25),
        ("Chivo Guisado", "600.00", "260.00", 20),
        ("Pescado Frito con Tostones", "650.00", "280.00", 15),
    ],
    "Acompañantes": [
        ("Tostones", "150.00", "40.00", 60),
        ("Moro de Guandules", "175.00", "50.00", 50),
        ("Yuca con Cebolla", "125.00", "35.00", 40),
    ],
    "Desayunos": [
        ("Mangú con Los Tres Golpes", "375.00", "130.00", 30),
    ],
    "Bebidas": [
        ("Morir Soñando", "125.00", "35.00", 50),
        ("Jugo de Chinola", "100.00", "25.00", 50),
        ("Cerveza Presidente", "175.00", "90.00", 120),
    ],
    "Postres": [
        ("Habichuelas con Dulce", "150.00", "45.00", 20),
        ("Dulce de Leche Cortado", "125.00", "30.00", 20),
    ],
}


def seed_roles(db: Session) -> dict[str, Role]:
    existing = {r.name: r for r in db.execute(select(Role)).scalars()}
    for name in Roles.ALL:
        if name not in existing:
            role = Role(name=name, description=Roles.DESCRIPTIONS[name])
            db.add(role)
            existing[name] = role
            logger.info("Role created", role=name)
    db.flush()
    return existing


def seed_admin(db: Session, roles: dict[str, Role]) -> User:
    """Administrator account and its employee record."""
    admin = db.scalar(select(User).where(User.username == settings.admin_username))
    if admin is not None:
        return admin

    admin = User(
        username=settings.admin_username,
        email=settings.admin_email,
        password_hash=hash_password(settings.admin_password),
        role_id=roles[Roles.ADMIN].id,
        role=roles[Roles.ADMIN],
    )
    db.add(admin)
    db.flush()

    employee = db.scalar(select(Employee).where(Employee.cedula == ADMIN_CEDULA))
    if employee is None:
        employee = Employee(
            cedula=ADMIN_CEDULA,
            first_name="Administrador",
            last_name="General",
            email=settings.admin_email,
            position="Gerente",
        )
        db.add(employee)
    employee.user_id = admin.id
    logger.info("Administrator created", username=admin.username)
    return admin


def seed_tables(db: Session) -> None:
    if db.scalar(select(Table.id).limit(1)):
        return
    for number, capacity, location in DEMO_TABLES:
        db.add(Table(number=number, capacity=capacity, location=location))
    logger.info("Tables created", count=len(DEMO_TABLES))


def seed_menu(db: Session) -> None:
    if db.scalar(select(Product.id).limit(1)):
        return
    for category_name, dishes in DEMO_MENU.items():
        category = db.scalar(select(Category).where(Category.name == category_name))
        if category is None:
            category = Category(name=category_name)
            db.add(category)
            db.flush()
        for name, price, cost, stock in dishes:
            product = Product(
                name=name,
                category_id=category.id,
                price=Decimal(price),
                cost=Decimal(cost),
            )
            db.add(product)
            db.flush()
            db.add(
                Inventory(
                    product_id=product.id,
                    available=stock,
                    minimum=settings.default_minimum_stock,
                )
            )
    logger.info("Menu created", categories=len(DEMO_MENU))


def seed(db: Session, demo: bool | None = None) -> None:
    """
    Seed roles, the administrator and (optionally) demo data.
    Safe to call on every startup.
    """
    demo = settings.seed_demo_data if demo is None else demo
    roles = seed_roles(db)
    seed_admin(db, roles)
    if demo:
        seed_tables(db)
        seed_menu(db)
    db.commit()
    logger.info("Seed completed", demo=demo)
