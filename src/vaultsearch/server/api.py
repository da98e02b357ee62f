"""
FastAPI server for the encrypted filter-match record store.

Endpoints:
- GET /health - Server status
- POST /collections/{name}/records - Store a record and its index entries
- GET /collections/{name}/records/{uuid} - Fetch a record
- DELETE /collections/{name}/records/{uuid} - Delete a record
- POST /collections/{name}/query - Filter-match query by bit positions
"""
from typing import Any, Dict, List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from vaultsearch import __version__
from vaultsearch.server.store import CollectionStore
from vaultsearch.shared.config import ServerConfig


# Pydantic models for API
class IndexEntryModel(BaseModel):
    """Filter bits for one index."""
    model_config = ConfigDict(populate_by_name=True)

    index_id: str = Field(..., alias="indexId")
    bits: List[int]


class PutRecordRequest(BaseModel):
    """Request to store a record. data=None stores it index-only."""
    uuid: str
    data: Optional[Dict[str, Any]] = None
    indexes: List[IndexEntryModel] = Field(default_factory=list)


class QueryBody(BaseModel):
    """Filter-match query."""
    model_config = ConfigDict(populate_by_name=True)

    index_id: str = Field(..., alias="indexId")
    bits: List[int]
    limit: Optional[int] = Field(default=None, ge=0)


class RecordResponse(BaseModel):
    """A stored record."""
    uuid: str
    data: Optional[Dict[str, Any]] = None


class QueryResponse(BaseModel):
    """Matching records."""
    records: List[RecordResponse]
    server_time_ms: float
    num_results: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    collections: int
    records: int


# Server state
class ServerState:
    """Server state container."""
    def __init__(self):
        self.config = ServerConfig()
        self.collections: Dict[str, CollectionStore] = {}

    def reset(self) -> None:
        self.collections = {}

    def collection(self, name: str) -> CollectionStore:
        if name not in self.collections:
            raise HTTPException(status_code=404, detail=f"Collection {name!r} not found")
        return self.collections[name]


state = ServerState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown."""
    print(f"Server ready: {len(state.collections)} collections")
    yield
    print("Server shutting down...")


app = FastAPI(
    title="vaultsearch",
    description="Encrypted filter-match record store",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        collections=len(state.collections),
        records=sum(len(c) for c in state.collections.values()),
    )


@app.post("/collections/{name}/records")
async def put_record(name: str, request: PutRecordRequest):
    """Store a record, replacing any previous version."""
    collection = state.collections.get(name)
    if collection is None:
        collection = CollectionStore(name=name)

    try:
        collection.put(
            request.uuid,
            request.data,
            {entry.index_id: entry.bits for entry in request.indexes},
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # only registered once a put succeeds
    state.collections[name] = collection

    return {
        "status": "stored",
        "uuid": request.uuid,
    }


@app.get("/collections/{name}/records/{uuid}", response_model=RecordResponse)
async def get_record(name: str, uuid: str):
    """Fetch a single record."""
    collection = state.collection(name)
    try:
        record_id, data = collection.get(uuid)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Record {uuid} not found")
    return RecordResponse(uuid=record_id, data=data)


@app.delete("/collections/{name}/records/{uuid}")
async def delete_record(name: str, uuid: str):
    """Delete a record and its index entries."""
    collection = state.collection(name)
    try:
        collection.delete(uuid)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Record {uuid} not found")
    return {
        "status": "deleted",
        "uuid": uuid,
    }


@app.post("/collections/{name}/query", response_model=QueryResponse)
async def query_records(name: str, request: QueryBody):
    """
    Filter-match query.

    Returns records whose stored filter for the index contains every
    requested bit. An unknown collection is empty. Without a limit, every
    match is returned unless the server is configured with a default cap.
    """
    collection = state.collections.get(name)
    if collection is None:
        # unknown collections still validate bits
        collection = CollectionStore(name=name)
    limit = request.limit if request.limit is not None else state.config.default_query_limit

    try:
        matches, time_ms = collection.query(request.index_id, request.bits, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return QueryResponse(
        records=[RecordResponse(uuid=uuid, data=data) for uuid, data in matches],
        server_time_ms=time_ms,
        num_results=len(matches),
    )


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI app with empty storage.

    For programmatic use in tests and demos.
    """
    state.config = config or ServerConfig()
    state.reset()
    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the server directly."""
    import uvicorn
    host = host or state.config.host
    port = port or state.config.port
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
