"""
Factory Boy factories for generating consistent row data.

Rows are plain dictionaries shaped the way the backend returns them, so they
can be loaded into the fake backend or fed straight to inference functions.
"""

import factory
import factory.fuzzy

# ==================== BASE FACTORIES ====================


class RowFactory(factory.DictFactory):
    """Base factory for backend rows."""

    id = factory.Faker("uuid4")
    created_at = "2024-05-01T10:00:00Z"
    updated_at = "2024-05-02T12:30:00Z"


# ==================== TABLE FACTORIES ====================


class CustomerRowFactory(RowFactory):
    """Factory for rows of the customers table."""

    name = factory.Faker("company")
    email = factory.Sequence(lambda n: f"customer{n}@example.com")


class ProductRowFactory(RowFactory):
    """Factory for rows of the products table."""

    id = factory.Sequence(lambda n: n + 1)
    name = factory.Sequence(lambda n: f"Product {n}")
    price = factory.fuzzy.FuzzyFloat(1.5, 500.5)
    in_stock = True


class OrderRowFactory(RowFactory):
    """Factory for rows of the orders table."""

    customer_id = factory.Faker("uuid4")
    total = 99.5
    status = "pending"


class UserRowFactory(RowFactory):
    """Factory for rows of the users table."""

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
