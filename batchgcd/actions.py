from batchgcd.batch_gcd import run_batch_gcd
from batchgcd.errors import InvalidModulusError
from batchgcd.finalize import COMPROMISED


def parse_to_int(value, name):
    """
    Konvertiert einen Integer oder String (mit Präfix 0x, 0o, 0b oder dezimal) in einen Integer.
    """
    if isinstance(value, bool):
        raise InvalidModulusError(f"Invalid number format for {name}: {value}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            raise InvalidModulusError(f"Invalid number format for {name}: {value}")
    raise InvalidModulusError(f"Missing argument {name}")


def to_32bit_or_hex(x: int):
    """
    Gibt x zurück, wenn es in 32 Bit passt, sonst die Hex-Darstellung.
    """
    if x in range(-(2 ** 31), 2 ** 31):
        return x
    return hex(x)


def parse_moduli(arguments: dict):
    raw_moduli = arguments["moduli"]
    return [parse_to_int(m, f"moduli[{idx}]") for idx, m in enumerate(raw_moduli)]


def parse_workers(arguments: dict) -> int:
    workers = arguments.get("threads", 1)
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ValueError(f"threads must be a positive integer, got {workers!r}")
    return workers


def batch_gcd(arguments: dict) -> dict:
    """
    Klassifiziert jeden Modulus: clean, duplicate, compromised (mit p, q) oder anomaly.
    Optional "resolve_duplicates": Duplikate per paarweisem GCD nachprüfen.
    Rückgabe: {"results": [...], "anomalies": Anzahl}
    """
    resolve = bool(arguments.get("resolve_duplicates", False))
    result = run_batch_gcd(parse_moduli(arguments), workers=parse_workers(arguments), resolve_dups=resolve)
    return {
        "results": [res.to_dict() for res in result.results],
        "anomalies": result.anomaly_count,
    }


def rsa_factor(arguments: dict) -> dict:
    """
    Findet gemeinsame Primfaktoren per Batch-GCD mit Fallback für Duplikate.
    Rückgabe: {"factored_moduli": [[p, q], ...]} sortiert und dedupliziert, p <= q.
    """
    moduli = parse_moduli(arguments)
    if not moduli:
        return {"factored_moduli": []}
    result = run_batch_gcd(moduli, workers=parse_workers(arguments), resolve_dups=True)

    pairs = set()
    for res in result.results:
        if res.status != COMPROMISED:
            continue
        p, q = int(res.p), int(res.q)
        if p > q:
            p, q = q, p
        pairs.add((p, q))

    factored_out = []
    for p, q in sorted(pairs):
        factored_out.append([to_32bit_or_hex(p), to_32bit_or_hex(q)])
    return {"factored_moduli": factored_out}


ACTIONS = {
    "batch_gcd": batch_gcd,
    "rsa_factor": rsa_factor,
}


def dispatch_action(action, arguments, action_lut=ACTIONS):
    """
    Mapped die action auf die korrespondierende Funktion.
    """
    mapped_action = action_lut.get(action)
    if mapped_action is None:
        return {"error": "Unknown action"}
    try:
        return mapped_action(arguments)
    except Exception as e:
        return {"error": f"Action failed: {e}"}
