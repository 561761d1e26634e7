"""Tests for foreign-key inference, related-row loading and labels."""

import asyncio

import pytest

from dynamic_crud_client.config import RelationshipConfig
from dynamic_crud_client.constants import RelationshipOrigin
from dynamic_crud_client.exceptions import SessionDeadError
from dynamic_crud_client.relationships import (
    RelationshipResolver,
    alternate_table_name,
    infer_relationship,
    label_for,
    pluralize,
    singularize,
)
from dynamic_crud_client.schema import SchemaResolver
from dynamic_crud_client.schemas.table_schema import SchemaMetadata
from tests.fixtures.factories import CustomerRowFactory, UserRowFactory


@pytest.fixture
def metadata(shop_metadata) -> SchemaMetadata:
    return SchemaMetadata.model_validate(shop_metadata)


@pytest.fixture
def resolver(signed_in_pipeline, shop_metadata) -> RelationshipResolver:
    """Relationship resolver over the shop metadata."""
    return RelationshipResolver(SchemaResolver(signed_in_pipeline, metadata=shop_metadata))


class TestNaming:
    """Test table name helpers."""

    @pytest.mark.parametrize(
        "singular,plural",
        [("customer", "customers"), ("category", "categories"), ("box", "boxes"), ("day", "days")],
    )
    def test_plural_forms(self, singular, plural):
        assert pluralize(singular) == plural
        assert singularize(plural) == singular

    def test_alternate_table_name(self):
        assert alternate_table_name("users") == "user"
        assert alternate_table_name("user") == "users"


class TestInferRelationship:
    """Test the precedence rules."""

    def test_primary_key_is_never_a_reference(self, metadata):
        assert infer_relationship("orders", "id", metadata, ["orders"]) is None

    def test_declared_primary_key_is_never_a_reference(self, accounts_metadata):
        """Test a primary key named `<x>_id` is taken from its constraint."""
        metadata = SchemaMetadata.model_validate(accounts_metadata)

        assert metadata.table("accounts").primary_key == "account_id"
        assert infer_relationship("accounts", "account_id", metadata) is None
        assert infer_relationship("accounts", "owner_id", metadata).target_table == "users"

    def test_explicit_primary_key(self):
        assert infer_relationship("accounts", "account_id", primary_key="account_id") is None
        assert infer_relationship("accounts", "account_id").target_table == "accounts"

    def test_declared(self, metadata):
        """Test a declaration on the current table wins."""
        rel = infer_relationship("reviews", "written_by", metadata)

        assert rel.target_table == "customers"
        assert rel.target_field == "id"
        assert rel.origin == RelationshipOrigin.DECLARED

    def test_incomplete_declaration_is_skipped(self, metadata):
        """Test a declaration missing its columns is ignored."""
        assert infer_relationship("reviews", "order_ref", metadata) is None

    def test_reverse_declared(self, metadata):
        """Test another table's declaration targeting this table is used."""
        rel = infer_relationship("orders", "legacy_ref", metadata)

        assert rel.target_table == "customers_archive"
        assert rel.origin == RelationshipOrigin.REVERSE_DECLARED

    def test_known_table(self, metadata):
        """Test the stem is matched against known tables."""
        rel = infer_relationship("orders", "customer_id", metadata, metadata.table_names)

        assert rel.target_table == "customers"
        assert rel.origin == RelationshipOrigin.KNOWN_TABLE

    def test_known_table_ies(self):
        rel = infer_relationship("products", "category_id", known_tables=["categories"])
        assert rel.target_table == "categories"

    def test_known_table_beats_static_map(self):
        """Test a known table named after the stem wins over the dictionary."""
        rel = infer_relationship("posts", "author_id", known_tables=["authors"])
        assert rel.target_table == "authors"

    def test_static_map(self):
        """Test the built-in dictionary and extra mappings."""
        assert infer_relationship("posts", "author_id").target_table == "users"
        assert infer_relationship("categories", "parent_id").target_table == "categories"

        rel = infer_relationship("posts", "author_id", field_table_map={"author_id": "people"})
        assert rel.target_table == "people"
        assert rel.origin == RelationshipOrigin.STATIC_MAP

    def test_guessed(self):
        """Test remaining foreign-key names are guessed as the plural stem."""
        rel = infer_relationship("orders", "widget_id")

        assert rel.target_table == "widgets"
        assert rel.origin == RelationshipOrigin.GUESSED

    def test_plain_field(self):
        assert infer_relationship("orders", "total") is None


class TestLabels:
    """Test display label selection."""

    def test_generic_name(self):
        """Test the name field is preferred."""
        row = {"id": "c-1", "name": "Acme", "email": "a@example.com"}
        assert label_for(row, "customers") == "Acme"

    def test_first_and_last_name(self):
        row = {"id": "p-1", "first_name": "Ada", "last_name": "Lovelace"}
        assert label_for(row, "people") == "Ada Lovelace"

    def test_user_override(self):
        """Test users fall back from name to username to email."""
        assert label_for({"id": 1, "title": "Dr", "username": "ada"}, "users") == "ada"
        assert label_for({"id": 1, "email": "ada@example.com"}, "users") == "ada@example.com"

    def test_loan_override(self):
        row = {"id": "abcdef123456", "loan_date": "2024-03-01T10:00:00Z", "name": "ignored"}
        assert label_for(row, "loans") == "Loan abcdef12 (2024-03-01)"

    def test_any_name_like_field(self):
        row = {"id": 7, "company_name": "Initech", "size": 40}
        assert label_for(row, "vendors") == "Initech"

    def test_fallback_to_table_and_id(self):
        """Test rows with nothing displayable use the table and short id."""
        row = {"id": "0123456789abcdef", "size": 40}
        assert label_for(row, "categories") == "Category 01234567"


class TestRelationshipResolver:
    """Test the resolver's caching and loading."""

    def test_find_relationship_is_cached(self, resolver, monkeypatch):
        """Test each pair is inferred once."""
        first = resolver.find_relationship("orders", "customer_id")
        monkeypatch.setattr(resolver.schema_resolver, "_metadata", None)

        assert resolver.find_relationship("orders", "customer_id") is first

        resolver.reset_relationships()
        relationship = resolver.find_relationship("orders", "customer_id")
        assert relationship.origin == RelationshipOrigin.GUESSED

    @pytest.mark.asyncio
    async def test_relationships_for_schema(self, resolver):
        schema = await resolver.schema_resolver.resolve("orders")
        relationships = resolver.relationships_for(schema)

        assert [(r.source_field, r.target_table) for r in relationships] == [
            ("customer_id", "customers")
        ]

    @pytest.mark.asyncio
    async def test_relationships_skip_non_id_primary_key(self, signed_in_pipeline, accounts_metadata):
        resolver = RelationshipResolver(
            SchemaResolver(signed_in_pipeline, metadata=accounts_metadata)
        )
        schema = await resolver.schema_resolver.resolve("accounts")

        assert resolver.find_relationship("accounts", "account_id") is None
        assert [r.source_field for r in resolver.relationships_for(schema)] == ["owner_id"]

    @pytest.mark.asyncio
    async def test_options_for_foreign_key(self, resolver, backend):
        """Test picker options for a reference to a known table."""
        backend.add_table(
            "customers",
            [
                CustomerRowFactory.build(id="c-1", name="Acme"),
                CustomerRowFactory.build(id="c-2", name="Globex"),
            ],
        )

        options = await resolver.options_for("orders", "customer_id")

        assert [(o.value, o.label) for o in options] == [("c-1", "Acme"), ("c-2", "Globex")]
        request = backend.calls("GET", "/customers")[0]
        assert request.url.params["limit"] == "100"

    @pytest.mark.asyncio
    async def test_options_for_plain_field(self, resolver, backend):
        assert await resolver.options_for("orders", "total") == []
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_related_rows_cached(self, resolver, backend):
        """Test related rows are loaded once per session."""
        backend.add_table("customers", CustomerRowFactory.build_batch(2))

        await resolver.load_related("customers")
        resolver.pipeline.cache.clear_all()
        await resolver.load_related("customers")

        assert len(backend.calls("GET", "/customers")) == 1

    @pytest.mark.asyncio
    async def test_invalidate_related(self, resolver, backend):
        backend.add_table("customers", CustomerRowFactory.build_batch(2))
        await resolver.load_related("customers")

        resolver.invalidate_related("customers")
        resolver.pipeline.cache.clear_all()
        await resolver.load_related("customers")

        assert len(backend.calls("GET", "/customers")) == 2

    @pytest.mark.asyncio
    async def test_concurrent_loads_share_one_request(self, resolver, backend):
        backend.add_table("customers", CustomerRowFactory.build_batch(2))

        first, second = await asyncio.gather(
            resolver.load_related("customers"), resolver.load_related("customers")
        )

        assert first == second
        assert len(backend.calls("GET", "/customers")) == 1

    @pytest.mark.asyncio
    async def test_alternate_name_fallback(self, resolver, backend):
        """Test the singular table is tried when the plural one fails."""
        backend.add_table("user", UserRowFactory.build_batch(3))

        rows = await resolver.load_related("users")

        assert len(rows) == 3
        assert len(backend.calls("GET", "/users")) == 1
        assert len(backend.calls("GET", "/user")) == 1

    @pytest.mark.asyncio
    async def test_failure_is_empty_and_not_cached(self, resolver, backend):
        """Test a table that cannot be loaded yields [] and is retried later."""
        assert await resolver.load_related("widgets") == []

        backend.add_table("widgets", [{"id": 1, "name": "Sprocket"}])
        assert await resolver.load_related("widgets") == [{"id": 1, "name": "Sprocket"}]

    @pytest.mark.asyncio
    async def test_dead_session_propagates(self, resolver, backend):
        backend.valid_tokens.clear()
        backend.refresh_fails = True

        with pytest.raises(SessionDeadError):
            await resolver.load_related("customers")

    def test_configured_field_map(self, signed_in_pipeline):
        """Test extra field mappings come from configuration."""
        resolver = RelationshipResolver(
            SchemaResolver(signed_in_pipeline),
            config=RelationshipConfig(field_table_map={"owner_id": "accounts"}),
        )
        assert resolver.find_relationship("projects", "owner_id").target_table == "accounts"
