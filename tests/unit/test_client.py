"""
Tests for the client facade.

Exercises the assembled components together against the fake backend:
lifecycle, login/logout, discovery-driven forms and error events.
"""

import pytest

from dynamic_crud_client.client import DynamicCrudClient
from dynamic_crud_client.config import ApiConfig, AppConfig
from dynamic_crud_client.constants import EventName, FormMode, OperationState, SchemaSource
from dynamic_crud_client.exceptions import ApiRequestError, SessionDeadError
from tests.fixtures.factories import CustomerRowFactory, OrderRowFactory
from tests.fixtures.fake_backend import TEST_BASE_URL, respond


class TestLifecycle:
    """Test init, handoff and dispose."""

    def test_init_is_chainable(self, crud_client):
        client = crud_client.init("access", "refresh", identity="alice", plan="pro")

        assert client is crud_client
        assert client.session.is_active()
        assert client.snapshot()["userPlan"] == "pro"

    def test_restore(self, crud_client):
        assert crud_client.restore({"accessToken": "a", "refreshToken": "r", "username": "bob"})
        assert crud_client.session.identity == "bob"

    @pytest.mark.asyncio
    async def test_dispose_wipes_state(self, signed_in_client, backend):
        """Test dispose clears the session and every cache."""
        backend.add_table("customers", CustomerRowFactory.build_batch(2))
        await signed_in_client.list("customers")
        await signed_in_client.load_related("customers")

        await signed_in_client.dispose()

        assert signed_in_client.session.disposed
        assert signed_in_client.cache.backend.keys() == []
        assert not signed_in_client.session.is_active()

    @pytest.mark.asyncio
    async def test_context_manager(self, crud_client):
        async with crud_client.init("access", "refresh") as client:
            assert client.session.is_active()

        assert crud_client.session.disposed

    @pytest.mark.asyncio
    async def test_owned_http_client_closed(self, app_config):
        """Test a client built without an injected transport closes its own."""
        client = DynamicCrudClient(config=app_config)
        http_client = await client.pipeline.get_client()

        await client.dispose()

        assert http_client.is_closed
        assert str(http_client.base_url).rstrip("/") == TEST_BASE_URL


class TestAuth:
    """Test login and logout through the facade."""

    @pytest.mark.asyncio
    async def test_login_then_list(self, crud_client, backend):
        backend.add_table("customers", CustomerRowFactory.build_batch(3))

        await crud_client.login("alice", "secret")
        result = await crud_client.list("customers")

        assert result.success
        assert len(result.data) == 3
        request = backend.calls("GET", "/customers")[0]
        assert request.headers["XAuthUserId"] == "alice"

    @pytest.mark.asyncio
    async def test_logout_clears_related_rows(self, signed_in_client, backend):
        backend.add_table("customers", CustomerRowFactory.build_batch(1))
        await signed_in_client.load_related("customers")

        await signed_in_client.logout()
        signed_in_client.init(*backend.issue_tokens())
        await signed_in_client.load_related("customers")

        assert not signed_in_client.session.identity
        assert len(backend.calls("GET", "/customers")) == 2

    @pytest.mark.asyncio
    async def test_session_expired_event(self, signed_in_client, backend):
        """Test a dead session propagates and is announced."""
        expired = []
        signed_in_client.on(EventName.SESSION_EXPIRED, expired.append)
        backend.valid_tokens.clear()
        backend.refresh_fails = True

        with pytest.raises(SessionDeadError):
            await signed_in_client.list("customers")

        assert len(expired) == 1
        assert not signed_in_client.session.is_active()


class TestDiscoveryDrivenForms:
    """Test forms built from discovered metadata."""

    @pytest.fixture
    def shop(self, backend, shop_metadata):
        backend.metadata = shop_metadata
        backend.add_table(
            "customers",
            [
                CustomerRowFactory.build(id="c-1", name="Acme"),
                CustomerRowFactory.build(id="c-2", name="Globex"),
            ],
        )
        backend.add_table("orders", [OrderRowFactory.build(id="o-1", customer_id="c-1")])
        return backend

    @pytest.mark.asyncio
    async def test_order_form_with_customer_picker(self, signed_in_client, shop):
        """Test an order form offers customers labelled by name."""
        await signed_in_client.discover()

        schema = await signed_in_client.resolve("orders")
        relationship = signed_in_client.find_relationship("orders", "customer_id")
        options = await signed_in_client.options_for("orders", "customer_id")

        assert schema.source == SchemaSource.METADATA
        assert relationship.target_table == "customers"
        assert [option.label for option in options] == ["Acme", "Globex"]

    @pytest.mark.asyncio
    async def test_create_through_form(self, signed_in_client, shop):
        await signed_in_client.discover()
        form = await signed_in_client.open_form("orders")
        form.values.update({"customer_id": "c-2", "total": "42"})

        result = await signed_in_client.submit(form)

        assert result.success
        assert shop.tables["orders"][-1]["total"] == 42

    @pytest.mark.asyncio
    async def test_rejected_form(self, signed_in_client, shop):
        await signed_in_client.discover()
        form = await signed_in_client.open_form("orders")

        result = await signed_in_client.submit(form)

        assert result.state == OperationState.REJECTED
        assert result.field_errors["customer_id"] == "Please select a value for Customer"
        assert shop.calls("POST", "/orders") == []

    @pytest.mark.asyncio
    async def test_declared_reference_rejected(self, signed_in_client, shop):
        """Test the facade validates declared references through its resolver."""
        await signed_in_client.discover()

        result = await signed_in_client.create("reviews", {"written_by": " "})

        assert result.state == OperationState.REJECTED
        assert result.field_errors == {"written_by": "Please select a value for Written by"}
        assert shop.calls("POST") == []

    @pytest.mark.asyncio
    async def test_update_and_delete(self, signed_in_client, shop):
        await signed_in_client.discover()

        updated = await signed_in_client.update("orders", "o-1", {"customer_id": "c-2", "total": 7})
        fetched = await signed_in_client.get("orders", "o-1")
        deleted = await signed_in_client.delete("orders", "o-1")

        assert updated.success and deleted.success
        assert fetched.data["customer_id"] == "c-2"
        assert shop.tables["orders"] == []

    @pytest.mark.asyncio
    async def test_new_metadata_resets_relationships(self, signed_in_client, shop, shop_metadata):
        """Test installing metadata drops relationships inferred before it."""
        before = signed_in_client.find_relationship("orders", "legacy_ref")
        signed_in_client.set_metadata(shop_metadata)
        after = signed_in_client.find_relationship("orders", "legacy_ref")

        assert before is None
        assert after.target_table == "customers_archive"

    @pytest.mark.asyncio
    async def test_unknown_table_form(self, signed_in_client, shop):
        """Test an empty-state form for a table that is unknown and empty."""
        shop.add_table("doctors", [])

        form = await signed_in_client.open_form("doctors", FormMode.CREATE)

        assert form.values == {}
        assert (await signed_in_client.resolve("doctors")).field_names == [
            "id",
            "created_at",
            "updated_at",
        ]


class TestErrors:
    """Test error display and events."""

    @pytest.mark.asyncio
    async def test_api_error_event_and_failed_result(self, signed_in_client, backend):
        published = []
        signed_in_client.on("api_error", published.append)
        backend.force("GET", "/customers", respond(500, {"message": "db down"}))

        result = await signed_in_client.list("customers")

        assert result.state == OperationState.FAILED
        assert result.error_message == "db down"
        assert len(published) == 1

    def test_format_error_outside_development(self, crud_client):
        error = ApiRequestError("Bad", status_code=400, request_id="r-1")
        assert crud_client.format_error(error) == "Bad"

    def test_format_error_in_development(self, http_client):
        client = DynamicCrudClient(
            config=AppConfig(environment="development", api=ApiConfig(base_url=TEST_BASE_URL)),
            http_client=http_client,
        )
        error = ApiRequestError("Bad", status_code=400, request_id="r-1")
        assert client.format_error(error) == "Bad (Request ID: r-1)"

    @pytest.mark.asyncio
    async def test_cache_duration(self, signed_in_client, backend):
        """Test a zero duration disables caching for that endpoint."""
        backend.add_table("customers", CustomerRowFactory.build_batch(1))
        signed_in_client.configure_cache_duration("/customers", 0)

        await signed_in_client.execute("/customers")
        await signed_in_client.execute("/customers")

        assert len(backend.calls("GET", "/customers")) == 2

    def test_label_for(self):
        assert DynamicCrudClient.label_for({"id": 1, "title": "Intro"}, "posts") == "Intro"
