"""
HTTP transport to the record store.
"""
from typing import Optional

import httpx

from vaultsearch.errors import RecordNotFoundError, TransportError
from vaultsearch.shared.protocol import PutRequest, QueryRequest, QueryResult, Record


class HttpTransport:
    """
    Talks to the store's JSON API over httpx.

    Any httpx.Client works, including fastapi.testclient.TestClient.
    """

    DEFAULT_TIMEOUT = 30.0  # seconds

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize transport.

        Args:
            base_url: Store URL, e.g. http://127.0.0.1:8000
            client: Pre-built httpx client (takes precedence over base_url)
            timeout: Request timeout in seconds
        """
        if client is None:
            if base_url is None:
                raise ValueError("Either base_url or client is required")
            client = httpx.Client(base_url=base_url, timeout=timeout)
        self._http = client

    def close(self) -> None:
        self._http.close()

    def health(self) -> dict:
        return self._check(self._http.get("/health")).json()

    def put_record(self, collection: str, request: PutRequest) -> None:
        self._check(
            self._http.post(f"/collections/{collection}/records", json=request.to_wire())
        )

    def get_record(self, collection: str, uuid: str) -> Record:
        body = self._check(self._http.get(f"/collections/{collection}/records/{uuid}")).json()
        return Record(body["uuid"], body.get("data"))

    def delete_record(self, collection: str, uuid: str) -> None:
        self._check(self._http.delete(f"/collections/{collection}/records/{uuid}"))

    def query(self, collection: str, request: QueryRequest) -> QueryResult:
        body = self._check(
            self._http.post(f"/collections/{collection}/query", json=request.to_wire())
        ).json()
        return QueryResult(
            records=[Record(r["uuid"], r.get("data")) for r in body["records"]],
            server_time_ms=body.get("server_time_ms", 0.0),
        )

    @staticmethod
    def _check(response: httpx.Response) -> httpx.Response:
        if response.status_code == 404:
            raise RecordNotFoundError(_detail(response), status_code=404)
        if response.status_code >= 400:
            raise TransportError(
                f"Store returned {response.status_code}: {_detail(response)}",
                status_code=response.status_code,
            )
        return response


def _detail(response: httpx.Response) -> str:
    try:
        return str(response.json().get("detail", response.text))
    except ValueError:
        return response.text
