import logging
from typing import List, Optional

from gmpy2 import mpz, gcd, f_divmod

from batchgcd.errors import ExactnessViolation, StorageError
from batchgcd.level_store import LevelStore

logger = logging.getLogger(__name__)

CLEAN = "clean"
DUPLICATE = "duplicate"
COMPROMISED = "compromised"
ANOMALY = "anomaly"


class LeafResult:
    """
    Klassifikation eines Blatts: clean, duplicate, compromised (mit p, q) oder anomaly.
    """
    __slots__ = ('index', 'status', 'p', 'q', 'error')

    def __init__(self, index: int, status: str, p: Optional[mpz] = None, q: Optional[mpz] = None,
                 error: Optional[ExactnessViolation] = None):
        self.index = index
        self.status = status
        self.p = p
        self.q = q
        self.error = error

    def to_dict(self) -> dict:
        out = {"status": self.status}
        if self.status == COMPROMISED:
            out["p"] = int(self.p)
            out["q"] = int(self.q)
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LeafResult):
            return NotImplemented
        return (self.index, self.status, self.p, self.q) == (other.index, other.status, other.p, other.q)

    def __repr__(self):
        if self.status == COMPROMISED:
            return f"LeafResult({self.index}, {self.status}, p={self.p}, q={self.q})"
        return f"LeafResult({self.index}, {self.status})"


def classify_leaf(index: int, modulus: mpz, remainder: mpz) -> LeafResult:
    """
    Q_i = R_i / X_i (muss exakt aufgehen), D_i = gcd(Q_i, X_i) und Einordnung nach D_i.
    """
    quotient, rest = f_divmod(remainder, modulus)
    if rest != 0:
        return LeafResult(index, ANOMALY, error=ExactnessViolation(index, modulus, remainder))
    d = gcd(quotient, modulus)
    if d == 0:
        return LeafResult(index, ANOMALY, error=ExactnessViolation(index, modulus, remainder))
    if d == 1:
        return LeafResult(index, CLEAN)
    if d == modulus:
        return LeafResult(index, DUPLICATE)
    return LeafResult(index, COMPROMISED, p=d, q=modulus // d)


def finalize_leaves(store: LevelStore, remainders: List[mpz]) -> List[LeafResult]:
    """
    Liest die Blätter neu aus Ebene 0 (die Eingabeliste wurde vom Builder geleert)
    und klassifiziert jedes Blatt mit seinem Rest.
    """
    moduli = store.load_level(0)
    if len(moduli) != len(remainders):
        raise StorageError(f"{len(moduli)} leaves but {len(remainders)} remainders", level=0)
    results = [classify_leaf(i, n_i, r_i) for i, (n_i, r_i) in enumerate(zip(moduli, remainders))]
    for res in results:
        if res.status == ANOMALY:
            logger.warning("%s", res.error)
    return results


def resolve_duplicates(moduli: List[mpz], results: List[LeafResult]) -> List[LeafResult]:
    """
    Fallback für als duplicate markierte Blätter: paarweise GCDs gegen alle Blätter
    mit anderem Wert. Findet sich ein echter Teiler, wird das Blatt zu compromised.
    Exakte Duplikate bleiben duplicate.
    """
    resolved = list(results)
    for res in results:
        if res.status != DUPLICATE:
            continue
        n_i = moduli[res.index]
        for n_j in moduli:
            if n_j == n_i:
                continue
            g = gcd(n_i, n_j)
            if 1 < g < n_i:
                p, q = g, n_i // g
                if p > q:
                    p, q = q, p
                resolved[res.index] = LeafResult(res.index, COMPROMISED, p=p, q=q)
                break
    return resolved
