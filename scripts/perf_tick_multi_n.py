"""
Multi-N tick performance validation.

Runs the full world tick at 100, 500, 1000, 2000 organisms and reports
median/p90. Log-only: no pass/fail above 1000 organisms.
"""

import gc
import time

import numpy as np
from loguru import logger

from cellworld.tests.harness import build_perf_scenario


def run_tick_perf_test(organism_count: int, runs: int = 7) -> dict:
    """
    Run tick performance test at given organism count.

    Args:
        organism_count: Number of organisms to seed
        runs: Number of measured ticks (default 7 for stable median)

    Returns:
        Dict with p50, p90, min, max, population
    """
    side = max(100, int(np.sqrt(organism_count) * 12))
    clock = build_perf_scenario(organism_count, cols=side, rows=side, seed=42)

    # Warmup
    clock.tick()

    # Measure (GC disabled for stable timing)
    gc.collect()
    gc.disable()

    times_ns = []
    try:
        for _ in range(runs):
            start = time.perf_counter_ns()
            clock.tick()
            times_ns.append(time.perf_counter_ns() - start)
    finally:
        gc.enable()

    times_ms = np.array(times_ns) / 1_000_000
    return {
        'organism_count': organism_count,
        'grid': side,
        'runs': runs,
        'p50_ms': np.percentile(times_ms, 50),
        'p90_ms': np.percentile(times_ms, 90),
        'min_ms': np.min(times_ms),
        'max_ms': np.max(times_ms),
        'population': len(clock.world.registry)
    }


def main():
    """Run multi-N tick performance validation."""
    logger.remove()  # Keep world creation logs out of the report

    print("=" * 80)
    print("Tick Multi-N Performance Validation")
    print("=" * 80)
    print()

    results = []
    for organism_count in [100, 500, 1000, 2000]:
        print(f"[N = {organism_count}]")
        result = run_tick_perf_test(organism_count)
        results.append(result)

        print(f"  grid: {result['grid']}x{result['grid']}")
        print(f"  p50: {result['p50_ms']:.3f}ms")
        print(f"  p90: {result['p90_ms']:.3f}ms")
        print(f"  min: {result['min_ms']:.3f}ms, max: {result['max_ms']:.3f}ms")
        print(f"  Population after: {result['population']}")

        if organism_count <= 1000:
            if result['p50_ms'] >= 20.0:
                print(f"  WARNING: p50 {result['p50_ms']:.3f}ms >= 20ms target!")
            else:
                headroom_pct = ((20.0 - result['p50_ms']) / 20.0) * 100
                print(f"  PASS: {headroom_pct:.1f}% headroom under 20ms target")
        print()

    print("=" * 80)
    print("Summary")
    print("=" * 80)
    for result in results:
        print(f"  N={result['organism_count']:5d}  p50={result['p50_ms']:8.3f}ms  p90={result['p90_ms']:8.3f}ms")


if __name__ == "__main__":
    main()
