import csv
import logging
import re
from typing import List, Tuple

from gmpy2 import mpz

from batchgcd.errors import InvalidModulusError

logger = logging.getLogger(__name__)

# gmpy2 parst wie C und hört beim ersten NUL-Byte auf, daher vorher prüfen
DIGITS = {
    10: re.compile(r"[0-9]+"),
    16: re.compile(r"[0-9a-fA-F]+"),
}


def parse_modulus(text: str, base: int, where: str) -> mpz:
    """
    Parst einen Modulus in der gegebenen Basis (16 oder 10) und prüft, dass er positiv ist.
    Nur Ziffern der Basis sind erlaubt (bei Basis 16 optional mit Präfix 0x).
    """
    text = text.strip()
    if base == 16 and text[:2].lower() == "0x":
        text = text[2:]
    if not DIGITS[base].fullmatch(text):
        raise InvalidModulusError(f"Invalid base {base} modulus in {where}: {text!r}")
    value = mpz(text, base)
    if value <= 0:
        raise InvalidModulusError(f"Modulus in {where} is not positive")
    return value


def decoded_lines(f, path):
    """
    Dekodiert die Datei zeilenweise als UTF-8, damit ein Fehler die Zeile benennen kann.
    """
    for line_no, raw in enumerate(f, start=1):
        try:
            yield raw.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidModulusError(f"Line {line_no} of {path}: not valid UTF-8")


def read_moduli_csv(path, base: int = 16) -> Tuple[List[str], List[mpz]]:
    """
    Liest eine Datei im Format <ID>,<Modulus> pro Zeile.
    Rückgabe: (IDs, Moduli) in Dateireihenfolge.
    """
    if base not in DIGITS:
        raise ValueError(f"base must be 10 or 16, got {base}")
    ids = []
    moduli = []
    with open(path, "rb") as f:
        reader = csv.reader(decoded_lines(f, path))
        try:
            for row in reader:
                line_no = reader.line_num
                # Leerzeilen überspringen
                if not row or all(not cell.strip() for cell in row):
                    continue
                if len(row) != 2:
                    raise InvalidModulusError(f"Line {line_no} of {path}: expected <ID>,<modulus>")
                ids.append(row[0].strip())
                moduli.append(parse_modulus(row[1], base, f"line {line_no} of {path}"))
        except csv.Error as e:
            raise InvalidModulusError(f"Line {reader.line_num} of {path}: {e}")
    logger.info("Read %d moduli from %s (base %d)", len(moduli), path, base)
    return ids, moduli
