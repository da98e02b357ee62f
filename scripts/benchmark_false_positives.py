#!/usr/bin/env python3
"""
Benchmark keyed Bloom filter false positive rates.

For each (filterSize, filterTermBits) pair this script measures:
1. Time to build a record filter from N terms
2. Fraction of single-term queries for absent terms that still match
   (the false positive rate), next to the textbook estimate
   (1 - e^(-k*n/m))^k

Use it to pick filterSize/filterTermBits for an index schema.
"""
import sys
import argparse
import secrets
from pathlib import Path
from typing import List
import numpy as np

# Add src to path for development
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from vaultsearch.client.bloom import KeyedBloomFilter
from vaultsearch.shared.protocol import BenchmarkResult
from vaultsearch.shared.utils import Timer


def expected_false_positive_rate(m: int, k: int, n: int) -> float:
    """Classic Bloom filter estimate for n inserted terms."""
    return float((1 - np.exp(-k * n / m)) ** k)


def benchmark_filter(
    key: str,
    m: int,
    k: int,
    terms_per_record: int,
    num_queries: int,
) -> BenchmarkResult:
    """Measure build time and false positive rate for one (m, k)."""
    options = {"filterSize": m, "filterTermBits": k}
    terms = [f"term-{i}" for i in range(terms_per_record)]

    with Timer() as t:
        record = KeyedBloomFilter(key, options).add(terms)

    false_positives = 0
    for i in range(num_queries):
        query = KeyedBloomFilter(key, options).add(f"absent-{i}")
        if query.issubset(record):
            false_positives += 1

    return BenchmarkResult(
        filter_size=m,
        term_bits=k,
        terms_per_record=terms_per_record,
        num_queries=num_queries,
        total_time_seconds=t.elapsed,
        avg_time_per_op_ms=t.elapsed_ms / max(terms_per_record, 1),
        false_positive_rate=false_positives / num_queries,
        expected_false_positive_rate=expected_false_positive_rate(m, k, terms_per_record),
        notes=f"{len(record)} bits set",
    )


def run_full_benchmark(
    sizes: List[int],
    term_bits: List[int],
    terms_per_record: int,
    num_queries: int,
) -> List[BenchmarkResult]:
    """Run the benchmark grid and print a summary table."""
    key = secrets.token_hex(32)

    print("=" * 60)
    print("Keyed Bloom Filter - False Positive Benchmark")
    print("=" * 60)
    print(f"Terms per record: {terms_per_record}")
    print(f"Queries per setting: {num_queries}")

    results = []
    for m in sizes:
        for k in term_bits:
            result = benchmark_filter(key, m, k, terms_per_record, num_queries)
            results.append(result)
            print("\n" + str(result))

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"{'m':>7} {'k':>3} {'measured':>10} {'expected':>10}")
    for r in results:
        print(
            f"{r.filter_size:>7} {r.term_bits:>3} "
            f"{r.false_positive_rate:>10.4f} {r.expected_false_positive_rate:>10.4f}"
        )

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark keyed Bloom filter false positives")
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=[256, 1024, 4096],
        help="filterSize values to test",
    )
    parser.add_argument(
        "--term-bits",
        type=int,
        nargs="+",
        default=[3, 6, 10],
        help="filterTermBits values to test",
    )
    parser.add_argument(
        "--terms",
        type=int,
        default=50,
        help="Number of terms added to the record filter",
    )
    parser.add_argument(
        "--queries",
        type=int,
        default=2000,
        help="Number of absent-term queries per setting",
    )

    args = parser.parse_args()

    run_full_benchmark(
        sizes=args.sizes,
        term_bits=args.term_bits,
        terms_per_record=args.terms,
        num_queries=args.queries,
    )


if __name__ == "__main__":
    main()
