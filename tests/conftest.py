import random

import pytest
from gmpy2 import mpz, next_prime

from batchgcd.executor import LevelExecutor
from batchgcd.level_store import LevelStore


def random_prime(rng: random.Random, bits: int) -> mpz:
    return next_prime(mpz(rng.getrandbits(bits)) | (mpz(1) << (bits - 1)))


@pytest.fixture
def rng():
    return random.Random(20241016)


@pytest.fixture
def make_prime(rng):
    def factory(bits=64):
        return random_prime(rng, bits)
    return factory


@pytest.fixture
def make_moduli(rng):
    """
    Erzeugt n RSA-artige Moduli p*q aus paarweise verschiedenen Primzahlen.
    """
    def factory(n, bits=64):
        seen = set()
        moduli = []
        while len(moduli) < n:
            p = random_prime(rng, bits)
            q = random_prime(rng, bits)
            if p == q or p in seen or q in seen:
                continue
            seen.update((p, q))
            moduli.append(p * q)
        return moduli
    return factory


@pytest.fixture
def store(tmp_path):
    return LevelStore(tmp_path / "levels")


@pytest.fixture(params=[1, 3], ids=["serial", "threads"])
def executor(request):
    with LevelExecutor(request.param) as ex:
        yield ex
