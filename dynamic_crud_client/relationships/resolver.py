"""
Relationship resolver.

Finds the table a foreign-key field references and loads that table's rows to
populate pickers. Related rows are cached per table for the session and are
not invalidated by mutations; call `invalidate_related()` to refresh them.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from ..config import RelationshipConfig
from ..exceptions import BaseError, SessionDeadError
from ..pipeline.request_pipeline import RequestPipeline
from ..pipeline.responses import parse_list_response
from ..schema.resolver import SchemaResolver
from ..schemas.table_schema import RelatedOption, Relationship, TableSchema
from ..utils.logger import get_logger
from .inference import alternate_table_name, infer_relationship
from .labels import label_for


class RelationshipResolver:
    """Resolves foreign keys and caches referenced rows."""

    def __init__(
        self,
        schema_resolver: SchemaResolver,
        pipeline: Optional[RequestPipeline] = None,
        config: Optional[RelationshipConfig] = None,
    ):
        self.schema_resolver = schema_resolver
        self.pipeline = pipeline or schema_resolver.pipeline
        self.config = config or self.pipeline.config.relationships
        self.logger = get_logger()

        self._relationships: Dict[Tuple[str, str], Optional[Relationship]] = {}
        self._related: Dict[str, List[Dict[str, Any]]] = {}
        self._inflight: Dict[str, "asyncio.Task[List[Dict[str, Any]]]"] = {}

    # ==================== FOREIGN KEYS ====================

    def find_relationship(
        self, table: str, field: str, primary_key: Optional[str] = None
    ) -> Optional[Relationship]:
        """
        Find the table a field references.

        Args:
            table: Table holding the field
            field: Field name
            primary_key: Primary key of `table` when the caller knows it

        Returns:
            Relationship, or None when the field is not a foreign key
        """
        key = (table, field)
        if key not in self._relationships:
            self._relationships[key] = infer_relationship(
                table,
                field,
                metadata=self.schema_resolver.metadata,
                known_tables=self.schema_resolver.known_tables,
                field_table_map=self.config.field_table_map,
                primary_key=primary_key,
            )
        return self._relationships[key]

    def relationships_for(self, schema: TableSchema) -> List[Relationship]:
        """Every relationship among a schema's fields, in field order."""
        found = []
        for field in schema.field_names:
            relationship = self.find_relationship(
                schema.table_name, field, primary_key=schema.primary_key
            )
            if relationship is not None:
                found.append(relationship)
        return found

    def reset_relationships(self) -> None:
        """Forget inferred relationships, e.g. after new metadata is installed."""
        self._relationships.clear()

    # ==================== RELATED ROWS ====================

    async def load_related(self, table: str) -> List[Dict[str, Any]]:
        """
        Load the rows of a referenced table.

        Concurrent loads of the same table share one request. A load that
        fails for both the table name and its singular/plural alternate
        yields an empty list and is not cached.

        Args:
            table: Referenced table

        Returns:
            Rows of the table (at most the configured page limit)

        Raises:
            SessionDeadError: If the session died while loading
        """
        if table in self._related:
            self.logger.debug("Related records cache hit", extra={"table": table})
            return self._related[table]

        task = self._inflight.get(table)
        if task is None:
            task = asyncio.ensure_future(self._load(table))
            self._inflight[table] = task
            task.add_done_callback(lambda _: self._inflight.pop(table, None))
        return await task

    async def _load(self, table: str) -> List[Dict[str, Any]]:
        for name in (table, alternate_table_name(table)):
            try:
                payload = await self.pipeline.execute(
                    f"/{name}", params={"page": 1, "limit": self.config.related_page_limit}
                )
                rows = parse_list_response(payload).rows
            except SessionDeadError:
                raise
            except BaseError as e:
                self.logger.warning(
                    "Loading related records failed",
                    extra={"table": name, "error_message": e.message},
                )
                continue
            self._related[table] = rows
            return rows

        self.logger.warning("Related records unavailable", extra={"table": table})
        return []

    async def options_for(self, table: str, field: str) -> List[RelatedOption]:
        """
        Picker options for a foreign-key field.

        Args:
            table: Table holding the field
            field: Foreign-key field

        Returns:
            Options labelled for display; empty when the field is not a foreign key
        """
        relationship = self.find_relationship(table, field)
        if relationship is None:
            return []
        rows = await self.load_related(relationship.target_table)
        return [
            RelatedOption(
                value=row[relationship.target_field],
                label=label_for(row, relationship.target_table),
            )
            for row in rows
            if row.get(relationship.target_field) is not None
        ]

    def invalidate_related(self, table: Optional[str] = None) -> None:
        """Drop cached related rows for one table, or for all tables."""
        if table is None:
            self._related.clear()
        else:
            self._related.pop(table, None)
