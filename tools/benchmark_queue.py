#!/usr/bin/env -S uv run
"""
Queue Benchmark Tool for sqlqueue

Benchmarks PersistentQueue against a SQLite file (or any SQLAlchemy URL)
with and without the cache mirror, using realistic queue operations
(append / remove / read_all / bounded append).

Usage:
    uv run tools/benchmark_queue.py
    uv run tools/benchmark_queue.py --operations 5000 --payload-size 256
    uv run tools/benchmark_queue.py --url postgresql+psycopg://localhost/bench
    uv run tools/benchmark_queue.py --help
"""
# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "pydantic>=2.0",
#     "sqlalchemy>=2.0",
#     "typer>=0.9.0",
#     "rich>=13.0",
# ]
# ///

from __future__ import annotations

import statistics
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from time import perf_counter
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Import sqlqueue from the local checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlqueue import PersistentQueue

app = typer.Typer(
    help="Benchmark sqlqueue PersistentQueue",
    add_completion=False,
)


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkConfig:
    """Configuration for benchmark runs."""

    operations: int = 1000
    payload_size: int = 100
    batch_size: int = 10
    max_size: int = 100
    modes: list[str] = field(default_factory=lambda: ["store", "cache"])


@dataclass
class BenchmarkResult:
    """Results from a single benchmark run."""

    mode: str
    operation: str
    total_ops: int
    total_time: float
    latencies: list[float]  # seconds

    @property
    def ops_per_sec(self) -> float:
        return self.total_ops / self.total_time if self.total_time > 0 else 0.0

    @property
    def p50(self) -> float:
        return statistics.median(self.latencies) if self.latencies else 0.0

    def percentile(self, fraction: float) -> float:
        if not self.latencies:
            return 0.0
        ordered = sorted(self.latencies)
        return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]

    @property
    def p95(self) -> float:
        return self.percentile(0.95)

    @property
    def p99(self) -> float:
        return self.percentile(0.99)

    @property
    def max_latency(self) -> float:
        return max(self.latencies) if self.latencies else 0.0

    @staticmethod
    def format_latency_ms(seconds: float) -> str:
        ms = seconds * 1000
        if ms < 1:
            return f"{ms:.3f}ms"
        elif ms < 10:
            return f"{ms:.2f}ms"
        else:
            return f"{ms:.1f}ms"


# ---------------------------------------------------------------------------
# Core Benchmark Functions
# ---------------------------------------------------------------------------


def _timed(fn, n: int) -> list[float]:
    latencies = []
    for _ in range(n):
        start = perf_counter()
        fn()
        latencies.append(perf_counter() - start)
    return latencies


def benchmark_append(queue: PersistentQueue, n: int, payload: str) -> list[float]:
    """N single-value appends."""
    return _timed(lambda: queue.append(payload), n)


def benchmark_append_batch(
    queue: PersistentQueue, n: int, batch_size: int, payload: str
) -> list[float]:
    """N appends of `batch_size` values each."""
    batch = [payload] * batch_size
    return _timed(lambda: queue.append(*batch), n)


def benchmark_remove(queue: PersistentQueue, n: int) -> list[float]:
    """N single-value removes. Assumes at least N values are queued."""
    return _timed(queue.remove, n)


def benchmark_read_all(queue: PersistentQueue, n: int) -> list[float]:
    """N full reads of the queue."""
    return _timed(queue.read_all, n)


# ---------------------------------------------------------------------------
# Benchmark Runner
# ---------------------------------------------------------------------------


def run_mode_benchmark(
    mode: str,
    config: BenchmarkConfig,
    url: str,
) -> list[BenchmarkResult]:
    """
    Run all benchmarks for one mode ("store" or "cache").

    Each scenario uses its own queue id in the same table.
    """
    if mode not in ("store", "cache"):
        raise ValueError(f"Unknown mode: {mode}")
    cache = mode == "cache"
    payload = "x" * config.payload_size
    n = config.operations
    results = []

    def record(operation: str, total_ops: int, total_time: float, latencies: list[float]) -> None:
        results.append(
            BenchmarkResult(
                mode=mode,
                operation=operation,
                total_ops=total_ops,
                total_time=total_time,
                latencies=latencies,
            )
        )

    with PersistentQueue(url=url, id=f"bench-{mode}", cache=cache) as queue:
        queue.clear()

        start = perf_counter()
        latencies = benchmark_append(queue, n, payload)
        record("append", n, perf_counter() - start, latencies)

        reads = max(1, n // 100)
        start = perf_counter()
        latencies = benchmark_read_all(queue, reads)
        record("read_all", reads, perf_counter() - start, latencies)

        start = perf_counter()
        latencies = benchmark_remove(queue, n)
        record("remove", n, perf_counter() - start, latencies)

    with PersistentQueue(url=url, id=f"bench-{mode}-batch", cache=cache) as queue:
        queue.clear()
        start = perf_counter()
        latencies = benchmark_append_batch(queue, n, config.batch_size, payload)
        record(f"append-x{config.batch_size}", n * config.batch_size, perf_counter() - start, latencies)
        queue.clear()

    with PersistentQueue(
        url=url, id=f"bench-{mode}-bounded", cache=cache, max_size=config.max_size
    ) as queue:
        queue.clear()
        start = perf_counter()
        latencies = benchmark_append(queue, n, payload)
        record(f"append-max{config.max_size}", n, perf_counter() - start, latencies)
        queue.clear()

    return results


# ---------------------------------------------------------------------------
# Result Formatting
# ---------------------------------------------------------------------------


def format_results(results: list[BenchmarkResult]) -> None:
    """Print one Rich table per mode."""
    console = Console()

    modes: dict[str, list[BenchmarkResult]] = {}
    for result in results:
        modes.setdefault(result.mode, []).append(result)

    console.print()
    console.print(
        Panel("[bold cyan]PersistentQueue Benchmark Results[/bold cyan]", expand=False)
    )

    for mode, mode_results in modes.items():
        console.print()
        console.print(f"[bold yellow]Mode: {mode}[/bold yellow]")
        console.print()

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Operation", style="cyan", width=15)
        table.add_column("Ops/sec", justify="right", style="green")
        table.add_column("P50", justify="right")
        table.add_column("P95", justify="right")
        table.add_column("P99", justify="right")
        table.add_column("Max", justify="right")

        for result in mode_results:
            table.add_row(
                result.operation,
                f"{result.ops_per_sec:.1f}",
                result.format_latency_ms(result.p50),
                result.format_latency_ms(result.p95),
                result.format_latency_ms(result.p99),
                result.format_latency_ms(result.max_latency),
            )

        console.print(table)

    console.print()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@app.command()
def main(
    operations: int = typer.Option(
        1000,
        "--operations",
        "-n",
        help="Number of operations per benchmark",
    ),
    payload_size: int = typer.Option(
        100,
        "--payload-size",
        "-p",
        help="Length of each queued string value",
    ),
    modes: str = typer.Option(
        "store,cache",
        "--modes",
        "-m",
        help="Comma-separated modes to test (store, cache)",
    ),
    url: Optional[str] = typer.Option(
        None,
        "--url",
        help="SQLAlchemy URL to benchmark against (default: temporary SQLite file)",
    ),
) -> None:
    """
    Benchmark sqlqueue PersistentQueue.

    Measures throughput (ops/sec) and latency percentiles (p50/p95/p99/max)
    for append, batched append, bounded append, remove and read_all.
    """
    config = BenchmarkConfig(
        operations=operations,
        payload_size=payload_size,
        modes=[m.strip() for m in modes.split(",")],
    )

    all_results = []

    with tempfile.TemporaryDirectory() as temp_dir_str:
        target = url or f"sqlite:///{Path(temp_dir_str) / 'bench.db'}"
        for mode in config.modes:
            try:
                all_results.extend(run_mode_benchmark(mode, config, target))
            except Exception as e:
                print(f"\nError benchmarking {mode}: {e}", file=sys.stderr)

    if all_results:
        format_results(all_results)
    else:
        print("\nNo benchmark results to display.", file=sys.stderr)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
