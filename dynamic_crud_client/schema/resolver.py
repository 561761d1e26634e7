"""
Schema resolver.

Resolves the shape of a table from, in order: the explicit metadata document,
a schema memoized earlier in the session, inference from a sample row, and a
name-based default. The caller always receives a usable schema.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..config import SchemaConfig
from ..constants import SchemaSource
from ..exceptions import BaseError, ResponseShapeError, SessionDeadError
from ..pipeline.request_pipeline import RequestPipeline
from ..pipeline.responses import parse_list_response
from ..schemas.table_schema import SchemaMetadata, TableMetadata, TableSchema
from ..utils.logger import get_logger
from .inference import default_schema, schema_from_metadata, schema_from_sample


class SchemaResolver:
    """Resolves table schemas for the current session."""

    def __init__(
        self,
        pipeline: RequestPipeline,
        metadata: Optional[Union[SchemaMetadata, Mapping[str, Any]]] = None,
        config: Optional[SchemaConfig] = None,
    ):
        """
        Initialize the resolver.

        Args:
            pipeline: Request pipeline used for discovery and sample rows
            metadata: Optional metadata document to install immediately
            config: Schema inference configuration
        """
        self.pipeline = pipeline
        self.config = config or pipeline.config.schema_inference
        self.logger = get_logger()
        self._metadata: Optional[SchemaMetadata] = None
        self._memo: Dict[str, TableSchema] = {}
        if metadata is not None:
            self.set_metadata(metadata)

    # ==================== METADATA ====================

    @property
    def metadata(self) -> Optional[SchemaMetadata]:
        return self._metadata

    def set_metadata(self, metadata: Union[SchemaMetadata, Mapping[str, Any]]) -> SchemaMetadata:
        """
        Install a metadata document.

        Memoized schemas are dropped so declared tables always win over
        earlier sample-row inference.

        Raises:
            ResponseShapeError: If the document is not a valid metadata mapping
        """
        if not isinstance(metadata, SchemaMetadata):
            try:
                metadata = SchemaMetadata.model_validate(metadata)
            except PydanticValidationError as e:
                raise ResponseShapeError("Invalid schema metadata document", cause=e)
        self._metadata = metadata
        self._memo.clear()
        self.logger.info("Schema metadata installed", extra={"tables": len(metadata.tables)})
        return metadata

    async def discover(self, endpoint: str = "/schema") -> SchemaMetadata:
        """
        Fetch the metadata document from the backend and install it.

        Accepts the document bare or wrapped as `{data: {...}}`.

        Args:
            endpoint: Path serving the "describe all tables" document

        Returns:
            The installed metadata
        """
        payload = await self.pipeline.execute(endpoint)
        if isinstance(payload, dict) and "tables" not in payload:
            wrapped = payload.get("data")
            if isinstance(wrapped, dict):
                payload = wrapped
        if not isinstance(payload, dict):
            raise ResponseShapeError(
                "Unrecognized schema metadata response", payload_type=type(payload).__name__
            )
        return self.set_metadata(payload)

    def table_metadata(self, table: str) -> Optional[TableMetadata]:
        """Declared metadata for a table, if any."""
        if self._metadata is None:
            return None
        return self._metadata.table(table)

    @property
    def known_tables(self) -> List[str]:
        """Tables declared in metadata or resolved earlier in the session."""
        names = list(self._metadata.table_names) if self._metadata else []
        names.extend(name for name in self._memo if name not in names)
        return names

    # ==================== RESOLUTION ====================

    async def resolve(self, table: str) -> TableSchema:
        """
        Resolve a table's schema; the first successful step wins.

        Args:
            table: Table name

        Returns:
            TableSchema; never raises for a missing or empty table

        Raises:
            SessionDeadError: If the session died while sampling
        """
        declared = self.table_metadata(table)
        if declared is not None:
            return schema_from_metadata(declared)

        memoized = self._memo.get(table)
        if memoized is not None:
            self.logger.debug("Schema memo hit", extra={"table": table})
            return memoized.model_copy(update={"source": SchemaSource.MEMO})

        sampled = await self._sample(table)
        if sampled is not None:
            self._memo[table] = sampled
            return sampled

        self.logger.warning("Schema unavailable, using default", extra={"table": table})
        return default_schema(table)

    async def _sample(self, table: str) -> Optional[TableSchema]:
        try:
            payload = await self.pipeline.execute(
                f"/{table}", params={"page": 1, "limit": self.config.sample_limit}
            )
            rows = parse_list_response(payload).rows
        except SessionDeadError:
            raise
        except BaseError as e:
            self.logger.warning(
                "Sample-row inference failed",
                extra={"table": table, "error_message": e.message},
            )
            return None

        if not rows:
            return None
        return schema_from_sample(table, rows[0], self.config.longtext_threshold)

    def invalidate(self, table: Optional[str] = None) -> None:
        """Forget memoized schemas for one table, or all of them."""
        if table is None:
            self._memo.clear()
        else:
            self._memo.pop(table, None)
