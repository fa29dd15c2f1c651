# Based on Taneli Hukkinen's https://github.com/hukkin/tomli-w/blob/master/benchmark/run.py

from __future__ import annotations

import functools
import math
import os
import timeit
from collections.abc import Callable
from pathlib import Path
from tempfile import TemporaryDirectory

import shpcodec

TMP_DIR = TemporaryDirectory()
BENCH_DIR = Path(TMP_DIR.name)


def benchmark(
    name: str,
    run_count: int,
    func: Callable,
    col_widths: tuple,
    compare_to: float | None = None,
) -> float:
    placeholder = "Running..."
    print(f"{name:>{col_widths[0]}} | {placeholder}", end="", flush=True)
    time_taken = timeit.timeit(func, number=run_count)
    print("\b" * len(placeholder), end="")
    time_suffix = " s"
    print(f"{time_taken:{col_widths[1] - len(time_suffix)}.3g}{time_suffix}", end="")
    print()
    return time_taken


def make_points(n: int) -> shpcodec.Shapes:
    return shpcodec.Shapes(
        shpcodec.point(i * 0.001, math.sin(i * 0.001), index=i) for i in range(n)
    )


def make_polylines(n: int, parts: int = 3, points_per_part: int = 50) -> shpcodec.Shapes:
    shapes = shpcodec.Shapes()
    for i in range(n):
        lines = [
            [(i + p + k * 0.01, math.cos(k * 0.01) + p) for k in range(points_per_part)]
            for p in range(parts)
        ]
        shapes.append(shpcodec.polyline_list(lines, index=i))
    return shapes


def make_polylines_zm(n: int, points_per_part: int = 50) -> shpcodec.Shapes:
    return shpcodec.Shapes(
        shpcodec.polyline_zm(
            [[(i + k * 0.01, k * 0.02, float(k), float(i)) for k in range(points_per_part)]],
            index=i,
        )
        for i in range(n)
    )


SHAPES = {
    "Points_100k": make_points(100_000),
    "Polylines_5k": make_polylines(5_000),
    "PolylinesZM_5k": make_polylines_zm(5_000),
}


def write_shapefile_with_shpcodec(test_name: str) -> None:
    shpcodec.write(BENCH_DIR / test_name, SHAPES[test_name])


def read_shapefile_with_shpcodec(test_name: str) -> None:
    with shpcodec.Reader(BENCH_DIR / test_name) as r:
        for _ in r.iterShapes():
            pass


writer_benchmarks = [
    functools.partial(
        benchmark,
        name=f"Write {test_name}",
        func=functools.partial(write_shapefile_with_shpcodec, test_name=test_name),
    )
    for test_name in SHAPES
]

# Require the files to first have been written by the writer_benchmarks
reader_benchmarks = [
    functools.partial(
        benchmark,
        name=f"Read {test_name}",
        func=functools.partial(read_shapefile_with_shpcodec, test_name=test_name),
    )
    for test_name in SHAPES
]


def run(run_count: int, benchmarks: list[Callable[[], None]]) -> None:
    col_widths = (22, 10)
    col_head = ("parser", "exec time", "performance (more is better)")
    print(f"Running benchmarks {run_count} times:")
    print("-" * col_widths[0] + "---" + "-" * col_widths[1])
    print(f"{col_head[0]:>{col_widths[0]}} | {col_head[1]:>{col_widths[1]}}")
    print("-" * col_widths[0] + "-+-" + "-" * col_widths[1])
    for benchmark in benchmarks:
        benchmark(  # type: ignore [call-arg]
            run_count=run_count,
            col_widths=col_widths,
        )


if __name__ == "__main__":
    run_count = int(os.getenv("SHPCODEC_BENCHMARK_RUNS", "1"))
    print("Writer tests:")
    run(run_count, writer_benchmarks)  # type: ignore [arg-type]
    print("\n\nReader tests:")
    run(run_count, reader_benchmarks)  # type: ignore [arg-type]
    TMP_DIR.cleanup()
