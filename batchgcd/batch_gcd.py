import logging
import shutil
import tempfile
import time
from typing import Dict, List, Optional

from gmpy2 import mpz

from batchgcd.errors import BatchGcdError, EmptyInputError, InvalidModulusError, StorageError
from batchgcd.executor import LevelExecutor
from batchgcd.finalize import (
    ANOMALY,
    CLEAN,
    COMPROMISED,
    DUPLICATE,
    LeafResult,
    finalize_leaves,
    resolve_duplicates,
)
from batchgcd.level_store import LevelStore
from batchgcd.moduli_csv import parse_modulus
from batchgcd.product_tree import build_product_tree
from batchgcd.remainder_tree import propagate_remainders

logger = logging.getLogger(__name__)

PHASE_PRODUCT_TREE = "product tree"
PHASE_REMAINDER_TREE = "remainder tree"
PHASE_FINAL_GCD = "final gcd"
PHASE_SETUP = "setup"

MPZ_TYPE = type(mpz(0))


class BatchGcdResult:
    """
    Ergebnis eines Laufs: eine Klassifikation pro Eingabeindex, in Eingabereihenfolge.
    """

    def __init__(self, results: List[LeafResult], height: int, timings: Optional[Dict[str, float]] = None):
        self.results = results
        self.height = height
        self.timings = timings or {}

    @property
    def degenerate(self) -> bool:
        """Nur ein Modulus: es gibt nichts zu vergleichen."""
        return len(self.results) == 1

    def with_status(self, status: str) -> List[LeafResult]:
        return [res for res in self.results if res.status == status]

    @property
    def compromised(self) -> List[LeafResult]:
        return self.with_status(COMPROMISED)

    @property
    def duplicates(self) -> List[LeafResult]:
        return self.with_status(DUPLICATE)

    @property
    def anomalies(self) -> List[LeafResult]:
        return self.with_status(ANOMALY)

    @property
    def anomaly_count(self) -> int:
        return len(self.anomalies)

    def counts(self) -> Dict[str, int]:
        out = {CLEAN: 0, DUPLICATE: 0, COMPROMISED: 0, ANOMALY: 0}
        for res in self.results:
            out[res.status] += 1
        return out

    def raise_for_anomalies(self):
        """
        Für Aufrufer, die Anomalien als fatal behandeln wollen.
        """
        anomalies = self.anomalies
        if anomalies:
            raise anomalies[0].error

    def __len__(self):
        return len(self.results)

    def __getitem__(self, index: int) -> LeafResult:
        return self.results[index]


def check_moduli(moduli) -> List[mpz]:
    """
    Wandelt die Eingabe in mpz um und weist nicht-positive Werte ab, bevor sie in den Baum gelangen.
    """
    checked = []
    for idx, m in enumerate(moduli):
        # mpz() würde float und bool stillschweigend abschneiden
        if isinstance(m, str):
            text = m.strip()
            base = 16 if text[:2].lower() == "0x" else 10
            value = parse_modulus(text, base, f"modulus {idx}")
        elif isinstance(m, (int, MPZ_TYPE)) and not isinstance(m, bool):
            value = mpz(m)
        else:
            raise InvalidModulusError(f"Modulus {idx} is not an integer: {m!r}")
        if value <= 0:
            raise InvalidModulusError(f"Modulus {idx} is not positive: {m}")
        checked.append(value)
    if not checked:
        raise EmptyInputError()
    return checked


def run_phase(name: str, timings: Dict[str, float], func, *args):
    """
    Führt eine Phase aus, misst die Zeit und trägt bei Fehlern die Phase in die Exception ein.
    """
    logger.info("Part %s started", name)
    start = time.monotonic()
    try:
        result = func(*args)
    except BatchGcdError as e:
        if e.phase is None:
            e.phase = name
        raise
    except Exception as e:
        logger.error("Part %s failed: %s: %s", name, type(e).__name__, e)
        raise
    elapsed = time.monotonic() - start
    timings[name] = elapsed
    logger.info("Part %s finished, time elapsed (s): %.3f", name, elapsed)
    return result


def format_duration(seconds: float) -> str:
    total_sec = int(seconds)
    total_min, sec = divmod(total_sec, 60)
    hours, minutes = divmod(total_min, 60)
    return f"{hours}h {minutes}m {sec}s"


def run_batch_gcd(moduli, workers: int = 1, workdir=None, keep_levels: bool = False,
                  resolve_dups: bool = False) -> BatchGcdResult:
    """
    Batch-GCD über alle moduli: Produktbaum, Restbaum, finale GCDs.

    workers: Größe des Worker-Pools für beide Baumphasen.
    workdir: Verzeichnis für die Ebenendateien; ohne Angabe ein temporäres Verzeichnis,
             das am Ende gelöscht wird (außer bei keep_levels).
    resolve_dups: als duplicate markierte Blätter per paarweisem GCD nachprüfen.
    """
    leaves = check_moduli(moduli)
    n = len(leaves)

    own_dir = workdir is None
    try:
        if own_dir:
            workdir = tempfile.mkdtemp(prefix="batchgcd-")
        store = LevelStore(workdir)
    except OSError as e:
        raise StorageError(f"Cannot create working directory: {e}", phase=PHASE_SETUP)
    except StorageError as e:
        e.phase = PHASE_SETUP
        raise
    timings = {}

    try:
        with LevelExecutor(workers) as executor:
            logger.info("Batch GCD over %d moduli with %d worker(s), levels in %s", n, workers, store.directory)
            # ab hier gehört leaves dem Builder
            height = run_phase(PHASE_PRODUCT_TREE, timings, build_product_tree, leaves, store, executor)
            remainders = run_phase(PHASE_REMAINDER_TREE, timings, propagate_remainders, height, store, executor)
        results = run_phase(PHASE_FINAL_GCD, timings, finalize_leaves, store, remainders)
        del remainders
        if resolve_dups and any(res.status == DUPLICATE for res in results):
            results = resolve_duplicates(store.load_level(0), results)
    finally:
        if not keep_levels:
            if own_dir:
                shutil.rmtree(workdir, ignore_errors=True)
            else:
                store.purge()

    logger.info("Total time elapsed: %s", format_duration(sum(timings.values())))
    result = BatchGcdResult(results, height, timings)
    if result.anomaly_count:
        logger.warning("%d anomalies (remainder not divisible by modulus)", result.anomaly_count)
    return result
