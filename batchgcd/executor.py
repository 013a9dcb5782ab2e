import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List

import gmpy2

logger = logging.getLogger(__name__)

# Teilaufgaben pro Worker und Ebene, damit ungleich große Knoten sich ausgleichen
CHUNKS_PER_WORKER = 4


def _init_worker():
    """
    gmpy2-Kontext pro Thread: große Multiplikationen/Divisionen dürfen die GIL freigeben.
    """
    gmpy2.set_context(gmpy2.context(allow_release_gil=True))


def split_range(count: int, parts: int) -> List[range]:
    """
    Teilt range(count) in höchstens parts zusammenhängende, fast gleich große Stücke.
    """
    parts = max(1, min(parts, count))
    size, extra = divmod(count, parts)
    chunks = []
    start = 0
    for i in range(parts):
        stop = start + size + (1 if i < extra else 0)
        if stop > start:
            chunks.append(range(start, stop))
        start = stop
    return chunks


class LevelExecutor:
    """
    Worker-Pool fester Größe für die Knoten einer Ebene.
    map_level() kehrt erst zurück, wenn alle Knoten der Ebene berechnet sind (Barriere).
    """

    def __init__(self, workers: int = 1):
        if not isinstance(workers, int) or workers < 1:
            raise ValueError(f"Worker count must be a positive integer, got {workers!r}")
        self.workers = workers
        self.pool = None
        if workers > 1:
            self.pool = ThreadPoolExecutor(max_workers=workers,
                                           thread_name_prefix="batchgcd",
                                           initializer=_init_worker)

    def map_level(self, func: Callable[[range], list], count: int) -> list:
        """
        Ruft func(indices) für disjunkte Indexbereiche auf und setzt die Ergebnisse
        in Indexreihenfolge zusammen. Exceptions der Worker werden weitergereicht.
        """
        if count == 0:
            return []
        if self.pool is None:
            return list(func(range(count)))

        chunks = split_range(count, self.workers * CHUNKS_PER_WORKER)
        futures = [self.pool.submit(func, chunk) for chunk in chunks]
        result = []
        # result() wartet auf jeden Chunk, damit ist die Ebene komplett bevor es weitergeht
        for future in futures:
            result.extend(future.result())
        return result

    def shutdown(self):
        if self.pool is not None:
            self.pool.shutdown(wait=True)
            self.pool = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
