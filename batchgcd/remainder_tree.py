import logging
from typing import List

from gmpy2 import mpz, f_mod

from batchgcd.errors import StorageError
from batchgcd.executor import LevelExecutor
from batchgcd.level_store import LevelStore

logger = logging.getLogger(__name__)


def reduce_level(parents: List[mpz], nodes: List[mpz], executor: LevelExecutor) -> List[mpz]:
    """
    Rest je Knoten: Rest des Elternknotens mod (Knotenwert)^2.
    Ein einsamer letzter Knoten (bei ungerader Anzahl) ist identisch mit seinem Elternknoten
    und übernimmt dessen Rest unverändert.
    """
    unpaired = len(nodes) - 1 if len(nodes) % 2 == 1 else None

    def reduce(indices):
        out = []
        for idx in indices:
            P = parents[idx // 2]
            if idx == unpaired:
                out.append(P)
            else:
                n_square = nodes[idx] ** 2
                out.append(f_mod(P, n_square))
        return out

    return executor.map_level(reduce, len(nodes))


def propagate_remainders(height: int, store: LevelStore, executor: LevelExecutor) -> List[mpz]:
    """
    Top-down Reduktion: liefert R_i = Z mod X_i^2 für jedes Blatt i.
    Startwert ist die Wurzel Z selbst, danach wird Ebene für Ebene aus dem Store gelesen.
    Bei Höhe 0 ist der einzige Rest die Wurzel.
    """
    root_level = store.load_level(height)
    if len(root_level) != 1:
        raise StorageError(f"Root level has {len(root_level)} entries", level=height)
    current = root_level

    for lvl in range(height - 1, -1, -1):
        nodes = store.load_level(lvl)
        if (len(nodes) + 1) // 2 != len(current):
            raise StorageError(f"Level has {len(nodes)} entries, parent level has {len(current)}", level=lvl)
        current = reduce_level(current, nodes, executor)
        del nodes
        logger.debug("Remainders for level %d computed (%d nodes)", lvl, len(current))
    return current
