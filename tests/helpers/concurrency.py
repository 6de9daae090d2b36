import threading
from collections.abc import Callable
from typing import Any


def run_concurrently(fn: Callable[[int], Any], n: int = 5) -> list[Any]:
    """
    Call fn(index) from n threads at once.

    Returns:
        List of results (or raised exceptions) indexed by thread.
    """
    results: list[Any] = [None] * n
    barrier = threading.Barrier(n)

    def worker(index: int) -> None:
        try:
            barrier.wait(timeout=10)
            results[index] = fn(index)
        except Exception as exc:  # noqa: BLE001
            results[index] = exc

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    return results
