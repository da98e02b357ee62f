#!/usr/bin/env python3
"""
End-to-end filter-match search demo.

Demonstrates:
1. Server starts with empty storage
2. Client derives per-index filter keys from its master key
3. Client tokenizes records and stores only Bloom filter bits
4. Client turns a query into a filter with the same key
5. Server returns records whose filters contain every query bit

The server NEVER sees plaintext terms or the filter keys.
"""
import sys
import argparse
import time
from pathlib import Path
from multiprocessing import Process

# Add src to path for development
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

SCHEMA = {
    "name": "movies",
    "indexes": {
        "title": {
            "kind": "filter-match",
            "fields": ["title"],
            "filterSize": 1024,
            "filterTermBits": 5,
            "tokenFilters": [{"kind": "downcase"}, {"kind": "ngram", "tokenLength": 3}],
        },
        "by_field": {
            "kind": "field-dynamic-filter-match",
            "filterSize": 2048,
        },
    },
}

MOVIES = [
    {"title": "The Empire Strikes Back", "director": {"name": "Irvin Kershner"}, "year": 1980},
    {"title": "Alien", "director": {"name": "Ridley Scott"}, "year": 1979},
    {"title": "Blade Runner", "director": {"name": "Ridley Scott"}, "year": 1982},
    {"title": "The Thing", "director": {"name": "John Carpenter"}, "year": 1982},
    {"title": "Aliens", "director": {"name": "James Cameron"}, "year": 1986},
]


def run_server(host: str, port: int):
    """Run the FastAPI server in a separate process."""
    import uvicorn
    from vaultsearch.server.api import create_app

    uvicorn.run(create_app(), host=host, port=port, log_level="warning")


def run_client_demo(host: str, port: int, queries: list):
    """Run the client-side demo."""
    import httpx
    from vaultsearch.client.crypto import KeyRing
    from vaultsearch.client.search import SearchClient
    from vaultsearch.client.transport import HttpTransport
    from vaultsearch.shared.utils import Timer

    base_url = f"http://{host}:{port}"

    print("=" * 60)
    print("vaultsearch - Filter Match Demo")
    print("=" * 60)
    print(f"\nServer: {base_url}")

    # Wait for server to be ready
    print("\nWaiting for server...")
    for _ in range(30):
        try:
            resp = httpx.get(f"{base_url}/health", timeout=1.0)
            if resp.status_code == 200:
                print(f"Server ready: {resp.json()['records']} records")
                break
        except httpx.HTTPError:
            pass
        time.sleep(0.5)
    else:
        print("Server not responding!")
        return

    # Step 1: Keys
    print("\n" + "-" * 40)
    print("STEP 1: Generate Master Key")
    print("-" * 40)
    keyring = KeyRing.generate()
    client = SearchClient(keyring, HttpTransport(base_url=base_url))
    collection = client.collection(SCHEMA)
    for name, index in collection.indexes.items():
        bloom = index.new_filter()
        print(f"  {name}: kind={index.kind.value} m={bloom.m} k={bloom.k}")

    # Step 2: Index records
    print("\n" + "-" * 40)
    print("STEP 2: Index and Store Records")
    print("-" * 40)
    with Timer() as t:
        for i, movie in enumerate(MOVIES):
            collection.put(movie, uuid=f"movie-{i}", verbose=True)
    print(f"Stored {len(MOVIES)} records in {t.elapsed_ms:.0f}ms")

    sample = collection.analyze("movie-1", MOVIES[1])
    print(f"\nWhat the server sees for {MOVIES[1]['title']!r}:")
    for entry in sample.entries:
        print(f"  index {entry.index_id}: {entry.bits}")

    # Step 3: Query
    print("\n" + "-" * 40)
    print("STEP 3: Match Queries")
    print("-" * 40)
    for query in queries:
        records, timing = collection.query("title", query)
        titles = [r["title"] for r in records]
        print(f"  title ~ {query!r}: {titles} ({timing['total_ms']:.1f}ms)")

    records, _ = collection.query("by_field", "ridley", field="director.name")
    print(f"  director.name ~ 'ridley': {[r['title'] for r in records]}")

    # Privacy summary
    print("\n" + "=" * 60)
    print("PRIVACY GUARANTEES")
    print("=" * 60)
    print("  [x] Server never saw plaintext terms")
    print("  [x] Server never saw the filter keys")
    print("  [x] Matches may include false positives, never false negatives")

    client.transport.close()


def main():
    parser = argparse.ArgumentParser(
        description="Demo filter-match search for vaultsearch"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Server host",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Server port",
    )
    parser.add_argument(
        "--query", "-q",
        action="append",
        default=None,
        help="Title query (repeatable)",
    )
    parser.add_argument(
        "--server-only",
        action="store_true",
        help="Only run the server (for debugging)",
    )
    parser.add_argument(
        "--client-only",
        action="store_true",
        help="Only run the client (assumes server is running)",
    )

    args = parser.parse_args()
    queries = args.query or ["alien", "the", "runner", "empire back"]

    if args.server_only:
        run_server(args.host, args.port)
    elif args.client_only:
        run_client_demo(args.host, args.port, queries)
    else:
        # Start server in background process
        server_process = Process(target=run_server, args=(args.host, args.port))
        server_process.start()

        try:
            run_client_demo(args.host, args.port, queries)
        finally:
            server_process.terminate()
            server_process.join(timeout=5)
            if server_process.is_alive():
                server_process.kill()


if __name__ == "__main__":
    main()
