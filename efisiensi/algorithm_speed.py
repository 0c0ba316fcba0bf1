import time
from typing import Callable, Any, Tuple

from chacha.chacha_engine import ChaChaEngine

BENCH_KEY = bytes(range(32))
BENCH_NONCE = bytes(8)


def measure_time(func: Callable, *args, repeats: int = 1, **kwargs) -> Tuple[float, Any]:
    """
    Average wall time of func over repeats. Returns (avg_seconds, last_result).
    """
    repeats = max(1, repeats)
    result = None
    start = time.perf_counter()
    for _ in range(repeats):
        result = func(*args, **kwargs)
    return (time.perf_counter() - start) / repeats, result


def measure_throughput(rounds: int, nbytes: int, repeats: int = 1) -> float:
    """
    Keystream bytes per second for one round variant.
    """
    engine = ChaChaEngine(rounds, key=BENCH_KEY, nonce=BENCH_NONCE)
    buf = bytearray(nbytes)

    def run():
        engine.seek(0)
        engine.combine(buf)

    elapsed, _ = measure_time(run, repeats=repeats)
    if elapsed <= 0:
        return float("inf")
    return nbytes / elapsed
