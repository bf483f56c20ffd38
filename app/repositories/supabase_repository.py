"""
Supabase (PostgREST) implementation of PropertyRepository.
Read-only queries against the hosted property table.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError
from supabase import AsyncClient, acreate_client

from app.config.settings import Settings
from app.core.exceptions import DatastoreError
from app.models.schemas import Property, PropertyQuery

logger = logging.getLogger(__name__)

# Values the id column (integer or uuid) can hold; anything else is only a slug
ID_PATTERN = re.compile(
    r"^(\d+|[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})$"
)

# Nested selects: configurations, images and developer come back embedded
PROPERTY_COLUMNS = """
    id,
    slug,
    title,
    location,
    property_type,
    property_collection,
    latitude,
    longitude,
    amenities,
    status,
    property_images ( id, image_url ),
    property_configurations ( id, bhk, price, area, bedrooms, bathrooms, ready_by ),
    developer:property_developers ( id, name )
"""


class SupabasePropertyRepository:
    """
    Property datastore backed by Supabase.

    The async client is created on first use unless one is injected.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        table: str = "properties",
        client: Optional[AsyncClient] = None,
    ) -> None:
        if client is None and not (url and key):
            raise ValueError("Either a client or both url and key are required")
        self._url = url
        self._key = key
        self._table = table
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabasePropertyRepository":
        return cls(
            url=settings.SUPABASE_URL,
            key=settings.SUPABASE_KEY,
            table=settings.PROPERTIES_TABLE,
        )

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await acreate_client(self._url, self._key)
        return self._client

    async def get_property(self, property_ref: str) -> Optional[Property]:
        """Fetch an active property by slug, falling back to id."""
        columns = ["slug"]
        if ID_PATTERN.match(property_ref):
            columns.append("id")

        for column in columns:
            rows = await self._execute(
                "get_property",
                lambda client, column=column: client.table(self._table)
                .select(PROPERTY_COLUMNS)
                .eq(column, property_ref)
                .eq("status", "active")
                .limit(1),
            )
            if rows:
                return self._to_property(rows[0])
        return None

    async def find_properties(self, query: PropertyQuery) -> List[Property]:
        """Fetch properties matching the query filters."""

        def build(client: AsyncClient) -> Any:
            request = client.table(self._table).select(PROPERTY_COLUMNS).eq("status", query.status)
            if query.exclude_id is not None:
                request = request.neq("id", query.exclude_id)
            if query.property_type is not None:
                request = request.eq("property_type", query.property_type.value)
            if query.location is not None:
                request = request.eq("location", query.location)
            return request.limit(query.limit)

        rows = await self._execute("find_properties", build)
        properties = [p for p in (self._to_property(row) for row in rows) if p is not None]

        # Price band is matched on the embedded configurations, so it is applied here
        if query.min_price is not None or query.max_price is not None:
            properties = [p for p in properties if query.matches(p)]
        return properties

    async def _execute(self, operation: str, build: Any) -> List[Dict[str, Any]]:
        client = await self._get_client()
        try:
            response = await build(client).execute()
        except Exception as e:
            raise DatastoreError(operation, str(e)) from e
        return response.data or []

    @staticmethod
    def _to_property(row: Dict[str, Any]) -> Optional[Property]:
        try:
            return Property.model_validate(row)
        except SchemaValidationError as e:
            logger.warning(f"Skipping malformed property row id={row.get('id')}: {e}")
            return None
