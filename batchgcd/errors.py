class BatchGcdError(Exception):
    """
    Basisklasse aller Fehler der Batch-GCD-Engine.
    phase und level werden vom Aufrufer nachgetragen, sobald bekannt.
    """
    def __init__(self, message, level=None, phase=None):
        super().__init__(message)
        self.message = message
        self.level = level
        self.phase = phase

    def __str__(self):
        where = []
        if self.phase is not None:
            where.append(f"phase {self.phase}")
        if self.level is not None:
            where.append(f"level {self.level}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message


class EmptyInputError(BatchGcdError):
    def __init__(self, message="No moduli given"):
        super().__init__(message)


class StorageError(BatchGcdError):
    """
    Ebene konnte nicht geschrieben oder gelesen werden. Immer fatal.
    """


class ExactnessViolation(BatchGcdError):
    """
    Rest R_i ist nicht exakt durch X_i teilbar (oder der GCD ist 0).
    Deutet auf einen Fehler in der Propagation oder korrupten Speicher hin.
    """
    def __init__(self, index, modulus, remainder):
        super().__init__(f"Remainder of leaf {index} is not divisible by its modulus", level=0)
        self.index = index
        self.modulus = modulus
        self.remainder = remainder


class InvalidModulusError(BatchGcdError, ValueError):
    """
    Modulus ist nicht positiv oder nicht parsebar.
    """
