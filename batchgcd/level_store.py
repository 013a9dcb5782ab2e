import hashlib
import logging
import os
import struct
from typing import Iterable, List

from gmpy2 import mpz, to_binary, from_binary

from batchgcd.errors import StorageError

logger = logging.getLogger(__name__)

# =============================================================================
# Dateiformat einer Ebene
#
#   MAGIC | level (8 Byte) | count (8 Byte)
#   count x [ len (8 Byte) | gmpy2.to_binary(wert) ]
#   SHA-256 über alles davor (32 Byte)

MAGIC = b"BGCDLVL\x01"
HEADER = struct.Struct(">QQ")
LENGTH = struct.Struct(">Q")
DIGEST_SIZE = hashlib.sha256().digest_size


class LevelStore:
    """
    Persistiert die Ebenen des Produktbaums als je eine Datei in einem Verzeichnis.
    Jede Ebene wird genau einmal geschrieben und danach beliebig oft gelesen.
    """

    def __init__(self, directory):
        self.directory = os.fspath(directory)
        try:
            os.makedirs(self.directory, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create level directory {self.directory}: {e}")

    def level_path(self, level_index: int) -> str:
        return os.path.join(self.directory, f"level_{level_index:04d}.bin")

    def has_level(self, level_index: int) -> bool:
        return os.path.isfile(self.level_path(level_index))

    def persist_level(self, level_index: int, values: Iterable[mpz]):
        """
        Schreibt eine Ebene atomar: erst in eine temporäre Datei, dann os.replace().
        Ein Absturz mitten im Schreiben hinterlässt höchstens die temporäre Datei.
        Nach dem Umbenennen wird auch das Verzeichnis gesynct, sonst ist der neue Name nicht dauerhaft.
        """
        values = list(values)
        path = self.level_path(level_index)
        tmp_path = path + ".tmp"
        digest = hashlib.sha256()

        def write(f, chunk):
            digest.update(chunk)
            f.write(chunk)

        try:
            with open(tmp_path, "wb") as f:
                write(f, MAGIC)
                write(f, HEADER.pack(level_index, len(values)))
                for value in values:
                    blob = to_binary(mpz(value))
                    write(f, LENGTH.pack(len(blob)))
                    write(f, blob)
                f.write(digest.digest())
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            self.sync_directory()
        except OSError as e:
            # temporäre Datei nicht liegen lassen
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Cannot persist level: {e}", level=level_index)
        logger.debug("Persisted level %d (%d entries) to %s", level_index, len(values), path)

    def sync_directory(self):
        # Windows kann keine Verzeichnisse öffnen
        if not hasattr(os, "O_DIRECTORY"):
            return
        fd = os.open(self.directory, os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def load_level(self, level_index: int) -> List[mpz]:
        """
        Liest eine Ebene in derselben Reihenfolge zurück und prüft Kopf, Längen und Prüfsumme.
        """
        path = self.level_path(level_index)
        try:
            with open(path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            raise StorageError("Level file is missing", level=level_index)
        except OSError as e:
            raise StorageError(f"Cannot read level: {e}", level=level_index)

        if len(data) < len(MAGIC) + HEADER.size + DIGEST_SIZE:
            raise StorageError("Level file is truncated", level=level_index)
        body, stored_digest = data[:-DIGEST_SIZE], data[-DIGEST_SIZE:]
        if hashlib.sha256(body).digest() != stored_digest:
            raise StorageError("Level file checksum mismatch", level=level_index)
        if not body.startswith(MAGIC):
            raise StorageError("Level file has a bad header", level=level_index)

        offset = len(MAGIC)
        stored_index, count = HEADER.unpack_from(body, offset)
        offset += HEADER.size
        if stored_index != level_index:
            raise StorageError(f"Level file belongs to level {stored_index}", level=level_index)

        values = []
        for _ in range(count):
            if offset + LENGTH.size > len(body):
                raise StorageError("Level file is truncated", level=level_index)
            (blob_len,) = LENGTH.unpack_from(body, offset)
            offset += LENGTH.size
            if offset + blob_len > len(body):
                raise StorageError("Level file is truncated", level=level_index)
            try:
                values.append(mpz(from_binary(body[offset:offset + blob_len])))
            except (TypeError, ValueError) as e:
                raise StorageError(f"Corrupt entry in level file: {e}", level=level_index)
            offset += blob_len
        if offset != len(body):
            raise StorageError("Level file has trailing data", level=level_index)
        return values

    def purge(self):
        """
        Löscht alle Ebenendateien (optionaler Aufräumschritt, nicht nötig für die Korrektheit).
        """
        try:
            for name in os.listdir(self.directory):
                if name.startswith("level_") and (name.endswith(".bin") or name.endswith(".tmp")):
                    os.remove(os.path.join(self.directory, name))
        except OSError as e:
            raise StorageError(f"Cannot purge level directory: {e}")
