"""
Client facade.

Wires the session manager, response cache, event bus, request pipeline,
schema and relationship resolvers and CRUD executor into one object with an
explicit init()/dispose() lifecycle.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx

from .cache.response_cache import ResponseCache
from .config import AppConfig, get_config
from .constants import EventName, FormMode, HttpMethod
from .crud.executor import CrudExecutor
from .events import EventBus
from .exceptions import BaseError
from .pipeline.auth import AuthService
from .pipeline.request_pipeline import RequestPipeline
from .pipeline.responses import format_api_error
from .relationships.labels import label_for
from .relationships.resolver import RelationshipResolver
from .schema.resolver import SchemaResolver
from .schemas.crud_schema import CrudResult, FormRecord
from .schemas.table_schema import RelatedOption, Relationship, SchemaMetadata, TableSchema
from .session import SessionManager
from .utils.logger import get_logger


class DynamicCrudClient:
    """CRUD client for tables whose schema is discovered at runtime."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        session: Optional[SessionManager] = None,
        cache: Optional[ResponseCache] = None,
        events: Optional[EventBus] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        metadata: Optional[Union[SchemaMetadata, Mapping[str, Any]]] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration (defaults to the global config)
            session: Session manager (a fresh one when omitted)
            cache: Response cache (built from config when omitted)
            events: Event bus
            http_client: Pre-built httpx client, e.g. with a mock transport
            metadata: Schema metadata document to install immediately
        """
        self.config = config or get_config()
        self.session = session or SessionManager()
        self.events = events or EventBus()
        self.cache = cache or ResponseCache(config=self.config.cache)
        self.pipeline = RequestPipeline(
            self.session, self.cache, config=self.config, events=self.events, client=http_client
        )
        self.auth = AuthService(self.pipeline, self.session, self.cache)
        self.schemas = SchemaResolver(self.pipeline, metadata=metadata)
        self.relationships = RelationshipResolver(self.schemas)
        self.crud = CrudExecutor(
            self.pipeline, self.schemas, config=self.config, relationships=self.relationships
        )
        self.logger = get_logger()

    # ==================== LIFECYCLE ====================

    def init(
        self,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        identity: Optional[str] = None,
        plan: Optional[str] = None,
    ) -> "DynamicCrudClient":
        """Start a session with known credentials; returns self for chaining."""
        self.session.init(access_token, refresh_token, identity, plan)
        return self

    def restore(self, persisted: Mapping[str, Optional[str]]) -> bool:
        """Start a session from credentials persisted by the host application."""
        return self.session.restore(persisted)

    def snapshot(self) -> Dict[str, Optional[str]]:
        """Session state in the persisted-key layout."""
        return self.session.snapshot()

    async def dispose(self) -> None:
        """Wipe session, caches and counters, then close the HTTP client."""
        self.session.dispose()
        self.cache.clear_all()
        self.relationships.invalidate_related()
        self.crud.generations.reset()
        await self.pipeline.close()
        self.logger.debug("Client disposed")

    async def __aenter__(self) -> "DynamicCrudClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    def on(
        self, event: Union[str, EventName], handler: Callable[[Any], None]
    ) -> Callable[[], bool]:
        """Subscribe to an event; returns an unsubscribe callable."""
        return self.events.subscribe(event, handler)

    # ==================== AUTH ====================

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        return await self.auth.login(username, password)

    async def logout(self) -> None:
        await self.auth.logout()
        self.relationships.invalidate_related()

    # ==================== RAW REQUESTS ====================

    async def execute(
        self,
        endpoint: str,
        method: str = HttpMethod.GET.value,
        body: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
        skip_cache: bool = False,
        headers: Optional[Mapping[str, str]] = None,
        skip_auth: bool = False,
    ) -> Any:
        return await self.pipeline.execute(
            endpoint,
            method=method,
            body=body,
            params=params,
            skip_cache=skip_cache,
            headers=headers,
            skip_auth=skip_auth,
        )

    def configure_cache_duration(self, endpoint_prefix: str, seconds: int) -> None:
        self.cache.configure_duration(endpoint_prefix, seconds)

    def format_error(self, error: Optional[BaseError]) -> str:
        """Display text for an error; request ids are shown in development."""
        return format_api_error(error, include_request_id=self.config.is_development)

    # ==================== SCHEMA & RELATIONSHIPS ====================

    def set_metadata(self, metadata: Union[SchemaMetadata, Mapping[str, Any]]) -> SchemaMetadata:
        installed = self.schemas.set_metadata(metadata)
        self.relationships.reset_relationships()
        return installed

    async def discover(self, endpoint: str = "/schema") -> SchemaMetadata:
        installed = await self.schemas.discover(endpoint)
        self.relationships.reset_relationships()
        return installed

    async def resolve(self, table: str) -> TableSchema:
        return await self.schemas.resolve(table)

    def find_relationship(self, table: str, field: str) -> Optional[Relationship]:
        return self.relationships.find_relationship(table, field)

    async def load_related(self, table: str) -> List[Dict[str, Any]]:
        return await self.relationships.load_related(table)

    async def options_for(self, table: str, field: str) -> List[RelatedOption]:
        return await self.relationships.options_for(table, field)

    def invalidate_related(self, table: Optional[str] = None) -> None:
        self.relationships.invalidate_related(table)

    @staticmethod
    def label_for(row: Mapping[str, Any], table: str) -> str:
        return label_for(row, table)

    # ==================== CRUD ====================

    async def list(self, table: str, page: int = 1, limit: Optional[int] = None) -> CrudResult:
        return await self.crud.list(table, page=page, limit=limit)

    async def get(self, table: str, record_id: Any) -> CrudResult:
        return await self.crud.get(table, record_id)

    async def create(self, table: str, values: Mapping[str, Any]) -> CrudResult:
        return await self.crud.create(table, values)

    async def update(self, table: str, record_id: Any, values: Mapping[str, Any]) -> CrudResult:
        return await self.crud.update(table, record_id, values)

    async def delete(self, table: str, record_id: Any) -> CrudResult:
        return await self.crud.delete(table, record_id)

    async def open_form(
        self,
        table: str,
        mode: FormMode = FormMode.CREATE,
        record_id: Optional[Any] = None,
        values: Optional[Mapping[str, Any]] = None,
    ) -> FormRecord:
        return await self.crud.open_form(table, mode=mode, record_id=record_id, values=values)

    async def submit(self, form: FormRecord) -> CrudResult:
        return await self.crud.submit(form)
