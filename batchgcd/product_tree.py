import logging
from typing import List

from gmpy2 import mpz

from batchgcd.errors import EmptyInputError
from batchgcd.executor import LevelExecutor
from batchgcd.level_store import LevelStore

logger = logging.getLogger(__name__)


def level_sizes(n: int) -> List[int]:
    """
    Anzahl der Einträge je Ebene, von den Blättern (Ebene 0) bis zur Wurzel.
    Hängt nur von n ab.
    """
    if n < 1:
        raise EmptyInputError()
    sizes = [n]
    while sizes[-1] > 1:
        sizes.append((sizes[-1] + 1) // 2)
    return sizes


def tree_height(n: int) -> int:
    return len(level_sizes(n)) - 1


def next_level(level: List[mpz], executor: LevelExecutor) -> List[mpz]:
    """
    Paarweise Produkte benachbarter Einträge, ein einsamer letzter Eintrag bleibt stehen.
    """
    def multiply(indices):
        out = []
        for j in indices:
            left = 2 * j
            if left + 1 < len(level):
                out.append(level[left] * level[left + 1])
            else:
                out.append(level[left])
        return out

    return executor.map_level(multiply, (len(level) + 1) // 2)


def build_product_tree(leaves: list, store: LevelStore, executor: LevelExecutor) -> int:
    """
    Baut den Produktbaum von unten nach oben und persistiert jede Ebene.

    Der Builder übernimmt die Liste leaves: sie wird nach dem Schreiben von Ebene 0
    geleert, die Blätter werden später wieder aus dem Store gelesen.
    Eine Ebene wird erst freigegeben, wenn ihre Nachfolgerin vollständig geschrieben ist.
    Rückgabe: Höhe H des Baums (Ebene H enthält nur noch die Wurzel).
    """
    if not leaves:
        raise EmptyInputError()

    level = [mpz(x) for x in leaves]
    store.persist_level(0, level)
    leaves.clear()
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Level 0: %d leaves, max %d bits", len(level), max(x.bit_length() for x in level))

    height = 0
    while len(level) > 1:
        upper = next_level(level, executor)
        height += 1
        store.persist_level(height, upper)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Level %d: %d entries, max %d bits",
                         height, len(upper), max(x.bit_length() for x in upper))
        level = upper

    if height == 0:
        logger.warning("Only one modulus given, batch GCD cannot find shared factors")
    return height
