import csv
import logging
import os
from typing import List

from batchgcd.batch_gcd import BatchGcdResult

logger = logging.getLogger(__name__)

COMPROMISED_FILE = "compromised.csv"
DUPLICATES_FILE = "duplicates.csv"


def log_summary(result: BatchGcdResult):
    """
    Zusammenfassung der Klassifikation ins Log.
    """
    logger.info("Amount of target moduli:       %d", len(result))
    logger.info("Amount of duplicates:          %d", len(result.duplicates))
    logger.info("Amount of compromised moduli:  %d", len(result.compromised))
    logger.info("False positives:               %d", result.anomaly_count)
    if result.degenerate:
        logger.warning("Single modulus, the run could not compare anything")
    if result.duplicates:
        logger.warning("Filter duplicates directly from the input file and run again, "
                       "they may contain compromised moduli. If you already did this, "
                       "all moduli marked as duplicate share factors (run naive GCDs).")


def write_reports(result: BatchGcdResult, ids: List[str], outdir="."):
    """
    Schreibt compromised.csv (ID,p,q) und duplicates.csv (ID).
    Faktoren werden dezimal ausgegeben. Rückgabe: Pfade der beiden Dateien.
    """
    if len(ids) != len(result):
        raise ValueError(f"{len(ids)} IDs for {len(result)} results")
    os.makedirs(outdir, exist_ok=True)
    compromised_path = os.path.join(outdir, COMPROMISED_FILE)
    duplicates_path = os.path.join(outdir, DUPLICATES_FILE)

    with open(compromised_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        for res in result.compromised:
            writer.writerow([ids[res.index], int(res.p), int(res.q)])

    with open(duplicates_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        for res in result.duplicates:
            writer.writerow([ids[res.index]])

    logger.info("Results written to %s and %s", compromised_path, duplicates_path)
    return compromised_path, duplicates_path
