# src/fixpoint/plugins/datasources/search.py
"""Search-index datasource for Elasticsearch-compatible REST APIs.

Accepts two kinds of fixture documents.

Index documents carry "elastic/mapping":

    {"fixpoint/datasource": "search", "elastic/index": "people",
     "elastic/mapping": {"properties": {"name": {"type": "keyword"}}}}

A mapping creates a uniquely named index ("people-<uuid4>"); a mapping of
False only declares the name without creating anything. Either way the
index key ("people") is bound to that name for the rest of the rollback
scope, and binding the same key twice is an error.

Every other document is indexed into the index bound to its key:

    {"fixpoint/datasource": "search", "elastic/index": "people",
     "elastic/id": "p-1", "name": "me", "age": 27}

Indices are created with random names, so there is nothing to roll back
inside a transaction. Instead, leaving a rollback scope deletes every index
created within it. Delete failures are logged, never raised.
"""

import copy
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Self

import httpx
import structlog

from fixpoint.contracts import InsertionError, InsertResult, NotStartedError
from fixpoint.plugins.base import BaseDatasource, iter_tags, strip_keys
from fixpoint.plugins.config_base import DatasourceConfig

logger = structlog.get_logger(__name__)

# Document key prefix for adapter options
KEY_PREFIX = "elastic"


class SearchDatasourceConfig(DatasourceConfig):
    """Configuration for the search-index datasource.

    Attributes:
        url: Base URL of the cluster, e.g. "http://localhost:9200".
        timeout_seconds: Connect and read timeout for every request.
        number_of_shards: Default shard count for created indices.
        headers: Extra headers sent with every request (e.g. Authorization).
    """

    url: str
    timeout_seconds: float = 10.0
    number_of_shards: int = 1
    headers: dict[str, str] = {}


class SearchIndexDatasource(BaseDatasource):
    """Index fixture documents into an Elasticsearch-compatible cluster.

    Config options:
        url: Cluster base URL (required)
        timeout_seconds: Request timeout (default: 10.0)
        number_of_shards: Shards per created index (default: 1)
        headers: Extra request headers (default: {})

    The transport keyword argument replaces httpx's network transport,
    e.g. with httpx.MockTransport in tests.
    """

    name = "search"

    def __init__(
        self,
        datasource_id: str,
        config: dict[str, Any] | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(datasource_id, config)
        cfg = SearchDatasourceConfig.from_dict(self.config)
        self.url = cfg.url
        self._timeout = cfg.timeout_seconds
        self._number_of_shards = cfg.number_of_shards
        self._headers = cfg.headers
        self._transport = transport

        self._client: httpx.Client | None = None
        # index key -> generated index name, for the current scope
        self._indices: dict[str, str] = {}
        self._is_view = False

    # === Lifecycle ===

    def _open(self) -> None:
        client = httpx.Client(
            base_url=self.url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )
        try:
            response = client.get("/")
            response.raise_for_status()
        except httpx.HTTPError:
            client.close()
            raise
        self._client = client

    def _close(self) -> None:
        # Views share the owner's client
        if self._is_view:
            return
        if self._client is not None:
            self._client.close()
            self._client = None

    def _handle(self) -> httpx.Client:
        if self._client is None:
            raise NotStartedError(self.datasource_id)
        return self._client

    # === Rollback ===

    @contextmanager
    def run_with_rollback(self) -> Iterator[Self]:
        """Yield a view; indices it creates are deleted on exit."""
        if not self._started:
            raise NotStartedError(self.datasource_id)

        view = copy.copy(self)
        view._indices = dict(self._indices)
        view._is_view = True
        try:
            yield view
        finally:
            created = [name for key, name in view._indices.items() if key not in self._indices]
            for index in created:
                self._delete_index(index)
            logger.debug("search_indices_rolled_back", datasource_id=self.datasource_id, indices=created)

    def _delete_index(self, index: str) -> None:
        try:
            response = self._handle().delete(f"/{index}")
        except httpx.HTTPError as e:
            logger.warning("search_index_delete_failed", datasource_id=self.datasource_id, index=index, error=str(e))
            return
        if response.is_success or response.status_code == 404:
            return
        logger.warning(
            "search_index_delete_failed",
            datasource_id=self.datasource_id,
            index=index,
            status=response.status_code,
            body=response.text,
        )

    # === Index names ===

    def index_name(self, key: str) -> str:
        """Return the generated index name bound to ``key`` in this scope.

        Raises:
            KeyError: If no index document declared ``key``.
        """
        try:
            return self._indices[key]
        except KeyError:
            raise KeyError(f"no such index within the current fixture scope: {key!r}") from None

    def _bind_index_name(self, key: str, document: dict[str, Any]) -> str:
        if key in self._indices:
            raise InsertionError(f"search fixture reuses the index key {key!r}: {document!r}", details={"index": key})
        index = f"{key}-{uuid.uuid4()}"
        self._indices[key] = index
        return index

    # === Insertion ===

    def _request(self, method: str, path: str, document: dict[str, Any], json: Any = None) -> httpx.Response:
        try:
            response = self._handle().request(method, path, json=json)
        except httpx.HTTPError as e:
            raise InsertionError(f"{method} {path} failed for search fixture: {e}", details={"error": str(e)}) from e
        if not response.is_success:
            raise InsertionError(
                f"{method} {path} failed for search fixture (status {response.status_code}): {document!r}",
                details={"status": response.status_code, "body": response.text},
            )
        return response

    def insert_document(self, document: dict[str, Any]) -> InsertResult:
        """Create/declare an index or index one document.

        Raises:
            InsertionError: If "elastic/index" is missing, an index key is
                reused or unknown, or the cluster rejects a request.
        """
        payload, options = strip_keys(document, KEY_PREFIX)
        key = options.get("index")
        if not isinstance(key, str) or not key:
            raise InsertionError(f"search fixture requires a string 'elastic/index' key: {document!r}")
        tags = frozenset(iter_tags(options.get("tags")))

        if "mapping" in options:
            return InsertResult(data=self._insert_index(key, options, document), tags=tags)
        return InsertResult(data=self._insert_document(key, payload, options, document), tags=tags)

    def _insert_index(self, key: str, options: dict[str, Any], document: dict[str, Any]) -> dict[str, Any]:
        mapping = options["mapping"]
        if mapping is not False and not isinstance(mapping, dict):
            raise InsertionError(f"'elastic/mapping' must be a mapping or False: {document!r}")

        index = self._bind_index_name(key, document)
        if mapping is False:
            logger.debug("search_index_declared", datasource_id=self.datasource_id, index=index)
            return {"id": index}

        body = {
            "settings": {"number_of_shards": self._number_of_shards, **(options.get("settings") or {})},
            "mappings": mapping,
        }
        try:
            self._request("PUT", f"/{index}", document, json=body)
        except InsertionError:
            # Nothing was created under this name
            del self._indices[key]
            raise
        logger.debug("search_index_created", datasource_id=self.datasource_id, index=index)
        return {"id": index}

    def _insert_document(
        self,
        key: str,
        payload: dict[str, Any],
        options: dict[str, Any],
        document: dict[str, Any],
    ) -> dict[str, Any]:
        index = self._indices.get(key)
        if index is None:
            raise InsertionError(f"search fixture requires the index {key!r} to be declared first: {document!r}", details={"index": key})

        doc_id = options.get("id")
        if doc_id is None:
            doc_id = f"{key}-{uuid.uuid4()}"
        doc_id = str(doc_id)

        self._request("PUT", f"/{index}/_doc/{doc_id}", document, json=payload)
        self._request("POST", f"/{index}/_refresh", document)
        return {**payload, "elastic/index": index, "elastic/id": doc_id}


def index_name(datasource_id: str, key: str) -> str:
    """Return the generated index name for ``key`` on an active search datasource."""
    from fixpoint.engine.scope import datasource

    handle = datasource(datasource_id)
    if not isinstance(handle, SearchIndexDatasource):
        raise TypeError(f"datasource {datasource_id!r} is not a search datasource: {handle!r}")
    return handle.index_name(key)
