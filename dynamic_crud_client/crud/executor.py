"""
Generic CRUD executor.

Thin orchestration over the request pipeline using each table's resource path.
Create and update coerce values per the resolved schema and validate them
before anything is sent; a rejected submission never reaches the network.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..config import AppConfig
from ..constants import TIMESTAMP_FIELDS, FormMode, HttpMethod, OperationState, SemanticType
from ..exceptions import BaseError, ErrorCode, FormValidationError, SessionDeadError, not_found
from ..pipeline.request_pipeline import RequestPipeline
from ..pipeline.responses import format_api_error, parse_list_response, parse_record_response
from ..relationships.resolver import RelationshipResolver
from ..schema.resolver import SchemaResolver
from ..schemas.crud_schema import CrudResult, FormRecord
from ..schemas.table_schema import TableSchema
from ..utils.logger import get_logger
from .coercion import coerce_values
from .generations import RequestGenerations
from .validation import humanize, missing_selections, validate_submission


class CrudExecutor:
    """
    Executes CRUD operations against dynamically resolved tables.

    Every operation returns a CrudResult. A dead session propagates as
    SessionDeadError; every other client error becomes a failed result.
    """

    def __init__(
        self,
        pipeline: RequestPipeline,
        schema_resolver: SchemaResolver,
        config: Optional[AppConfig] = None,
        relationships: Optional[RelationshipResolver] = None,
    ):
        """
        Initialize the executor.

        Args:
            pipeline: Request pipeline
            schema_resolver: Resolver supplying table schemas for coercion and validation
            config: Client configuration (defaults to the pipeline's)
            relationships: Resolver deciding which fields reference another table
        """
        self.pipeline = pipeline
        self.schema_resolver = schema_resolver
        self.config = config or pipeline.config
        self.relationships = relationships or RelationshipResolver(schema_resolver, pipeline)
        self.generations = RequestGenerations()
        self.logger = get_logger()

    # ==================== READS ====================

    async def list(self, table: str, page: int = 1, limit: Optional[int] = None) -> CrudResult:
        """
        List one page of a table.

        Args:
            table: Table name
            page: 1-based page number
            limit: Page size (defaults to config)

        Returns:
            CrudResult with rows as data and pagination when the backend sent it
        """
        key = f"list:{table}"
        generation = self.generations.next(key)
        params = {"page": page, "limit": limit or self.config.crud.default_page_limit}

        try:
            payload = await self.pipeline.execute(f"/{table}", params=params)
            parsed = parse_list_response(payload)
        except SessionDeadError:
            raise
        except BaseError as e:
            return self._failure(table, e, stale=self._is_stale(key, generation))

        return CrudResult.success_result(
            table,
            data=parsed.rows,
            pagination=parsed.pagination,
            stale=self._is_stale(key, generation),
        )

    async def get(self, table: str, record_id: Any) -> CrudResult:
        """Fetch a single record by id."""
        key = f"get:{table}:{record_id}"
        generation = self.generations.next(key)

        try:
            record = await self._load_record(table, record_id)
        except SessionDeadError:
            raise
        except BaseError as e:
            return self._failure(table, e, stale=self._is_stale(key, generation))

        return CrudResult.success_result(
            table, data=record, stale=self._is_stale(key, generation)
        )

    async def _load_record(self, table: str, record_id: Any) -> Dict[str, Any]:
        payload = await self.pipeline.execute(f"/{table}/{record_id}")
        # Some backends answer a missing id with 200 and an empty or null record
        if not payload or (isinstance(payload, dict) and "data" in payload and not payload["data"]):
            raise not_found(table, id=record_id)
        return parse_record_response(payload)

    def _is_stale(self, key: str, generation: int) -> bool:
        if self.generations.is_current(key, generation):
            return False
        self.logger.debug(
            "Superseded response", extra={"operation_key": key, "generation": generation}
        )
        return True

    # ==================== WRITES ====================

    async def create(self, table: str, values: Mapping[str, Any]) -> CrudResult:
        """
        Create a record.

        Args:
            table: Table name
            values: Raw form values

        Returns:
            CrudResult: rejected (no network call), succeeded or failed
        """
        return await self._submit(table, FormMode.CREATE, values)

    async def update(self, table: str, record_id: Any, values: Mapping[str, Any]) -> CrudResult:
        """
        Update a record.

        Args:
            table: Table name
            record_id: Record id
            values: Raw form values

        Returns:
            CrudResult: rejected (no network call), succeeded or failed
        """
        return await self._submit(table, FormMode.UPDATE, values, record_id)

    async def delete(self, table: str, record_id: Any) -> CrudResult:
        """Delete a record."""
        self._transition(table, FormMode.DELETE, OperationState.SUBMITTING)
        try:
            payload = await self.pipeline.execute(
                f"/{table}/{record_id}", method=HttpMethod.DELETE.value
            )
        except SessionDeadError:
            raise
        except BaseError as e:
            self._transition(table, FormMode.DELETE, OperationState.FAILED)
            return self._failure(table, e)

        self._transition(table, FormMode.DELETE, OperationState.SUCCEEDED)
        return CrudResult.success_result(table, data=payload)

    async def _submit(
        self,
        table: str,
        mode: FormMode,
        values: Mapping[str, Any],
        record_id: Optional[Any] = None,
    ) -> CrudResult:
        self._transition(table, mode, OperationState.VALIDATING)
        schema = await self.schema_resolver.resolve(table)

        body, errors = coerce_values(schema, values)
        if mode == FormMode.UPDATE:
            body.setdefault(schema.primary_key, record_id)
        self._stamp_timestamps(schema, body, mode)

        identity_field = self.config.crud.identity_field
        references = self._reference_fields(schema, body)
        selections = missing_selections(body, references, identity_field)
        for field, message in validate_submission(
            schema, body, mode, identity_field, reference_fields=references
        ).items():
            errors.setdefault(field, message)

        if errors:
            self._transition(table, mode, OperationState.REJECTED, fields=list(errors))
            return self._rejected(table, errors, missing_selection=bool(selections))

        self._transition(table, mode, OperationState.SUBMITTING)
        if mode == FormMode.CREATE:
            endpoint, method = f"/{table}", HttpMethod.POST.value
        else:
            endpoint, method = f"/{table}/{record_id}", HttpMethod.PUT.value

        try:
            payload = await self.pipeline.execute(endpoint, method=method, body=body)
        except SessionDeadError:
            raise
        except BaseError as e:
            self._transition(table, mode, OperationState.FAILED)
            return self._failure(table, e)

        self._transition(table, mode, OperationState.SUCCEEDED)
        data = parse_record_response(payload) if isinstance(payload, dict) else payload
        return CrudResult.success_result(table, data=data)

    def _reference_fields(self, schema: TableSchema, values: Mapping[str, Any]) -> List[str]:
        return [
            field
            for field in values
            if self.relationships.find_relationship(
                schema.table_name, field, primary_key=schema.primary_key
            )
            is not None
        ]

    @staticmethod
    def _stamp_timestamps(schema: TableSchema, body: Dict[str, Any], mode: FormMode) -> None:
        now = datetime.now(timezone.utc)
        created_at, updated_at = TIMESTAMP_FIELDS
        stamped = (created_at, updated_at) if mode == FormMode.CREATE else (updated_at,)
        for field in stamped:
            spec = schema.get(field)
            if spec is None or body.get(field) not in (None, ""):
                continue
            if spec.semantic_type == SemanticType.DATE:
                body[field] = now.date().isoformat()
            else:
                body[field] = now.isoformat()

    # ==================== FORMS ====================

    async def open_form(
        self,
        table: str,
        mode: FormMode = FormMode.CREATE,
        record_id: Optional[Any] = None,
        values: Optional[Mapping[str, Any]] = None,
    ) -> FormRecord:
        """
        Open a form for a table.

        Create forms start with one blank value per editable field. Other
        modes load the record when no values are supplied.

        Args:
            table: Table name
            mode: Form mode
            record_id: Record id for read/update/delete
            values: Initial values overriding the defaults

        Returns:
            FormRecord ready for editing and submit()

        Raises:
            BaseError: If loading the existing record fails
        """
        if mode == FormMode.CREATE:
            schema = await self.schema_resolver.resolve(table)
            initial: Dict[str, Any] = {
                field: False if spec.semantic_type == SemanticType.BOOLEAN else ""
                for field, spec in schema.fields.items()
                if field != schema.primary_key and field not in TIMESTAMP_FIELDS
            }
            initial.update(values or {})
            return FormRecord(table_name=table, mode=mode, values=initial)

        if values is None and record_id is not None:
            values = await self._load_record(table, record_id)
        return FormRecord(
            table_name=table, mode=mode, values=dict(values or {}), record_id=record_id
        )

    async def submit(self, form: FormRecord) -> CrudResult:
        """
        Submit a form, dispatching on its mode.

        Returns:
            CrudResult of the dispatched operation; a rejected result when an
            update/delete/read form carries no record id
        """
        if form.mode == FormMode.CREATE:
            return await self.create(form.table_name, form.values)

        if form.record_id is None:
            return self._rejected(
                form.table_name,
                {"id": f"A record id is required to {form.mode.value} {humanize(form.table_name)}"},
            )
        if form.mode == FormMode.UPDATE:
            return await self.update(form.table_name, form.record_id, form.values)
        if form.mode == FormMode.DELETE:
            return await self.delete(form.table_name, form.record_id)
        return await self.get(form.table_name, form.record_id)

    # ==================== HELPERS ====================

    def _transition(self, table: str, mode: FormMode, state: OperationState, **extra) -> None:
        self.logger.debug(
            "CRUD state change",
            extra={"table": table, "mode": mode.value, "state": state.value, **extra},
        )

    @staticmethod
    def _rejected(
        table: str, field_errors: Dict[str, str], missing_selection: bool = False
    ) -> CrudResult:
        error = FormValidationError(
            field_errors,
            table=table,
            error_code=(
                ErrorCode.MISSING_SELECTION if missing_selection else ErrorCode.VALIDATION_FAILED
            ),
        )
        return CrudResult.rejected_result(
            table,
            error.field_errors,
            error_code=error.error_code.value,
            status_code=error.status_code,
        )

    def _failure(self, table: str, error: BaseError, stale: bool = False) -> CrudResult:
        return CrudResult.failure_result(
            table,
            error_message=format_api_error(error, include_request_id=self.config.is_development),
            error_code=error.error_code.value,
            status_code=error.status_code,
            stale=stale,
        )
