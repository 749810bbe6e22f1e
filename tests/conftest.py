# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/conftest.py

import hashlib
import random

import pytest

from zkvote.bn254 import curve_order, g1_point, g2_point
from zkvote.constants import (
    NULLIFIER_DOMAIN_TAG,
    OPEN_VOTE_CIRCUIT,
    PRIV_VOTE_OPTION,
    PRIV_VOTE_SALT,
    PRIV_VOTER_SECRET,
    PUB_NULLIFIER,
    PUB_VOTE_OPTION,
    PUB_VOTE_OPTION_HASH,
    PUB_VOTER_COMMITMENT,
    PUBLIC_LAYOUTS,
    REVEAL_CIRCUIT,
    VOTE_CIRCUIT,
)
from zkvote.errors import ProofGenerationError
from zkvote.field import P, inv, to_field
from zkvote.groth_convert import Proof
from zkvote.snark import verify_proof
from zkvote.vk_convert import VerifyingKey

ADMIN = "admin"


def fake_hash(*inputs: int) -> int:
    """sha256 stand-in for Poseidon: deterministic, collision resistant, lands in the field."""
    data = b"|".join(str(to_field(x)).encode() for x in inputs)
    return int.from_bytes(hashlib.sha256(data).digest(), "big") % P


def _vote_ok(s: dict[str, int]) -> bool:
    return (
        fake_hash(s[PRIV_VOTER_SECRET]) == s[PUB_VOTER_COMMITMENT]
        and fake_hash(s[PRIV_VOTER_SECRET], NULLIFIER_DOMAIN_TAG) == s[PUB_NULLIFIER]
        and fake_hash(s[PRIV_VOTE_OPTION], s[PRIV_VOTE_SALT]) == s[PUB_VOTE_OPTION_HASH]
    )


def _reveal_ok(s: dict[str, int]) -> bool:
    return fake_hash(s[PUB_VOTE_OPTION], s[PRIV_VOTE_SALT]) == s[PUB_VOTE_OPTION_HASH]


def _open_vote_ok(s: dict[str, int]) -> bool:
    return (
        fake_hash(s[PRIV_VOTER_SECRET]) == s[PUB_VOTER_COMMITMENT]
        and fake_hash(s[PRIV_VOTER_SECRET], NULLIFIER_DOMAIN_TAG) == s[PUB_NULLIFIER]
        and s[PRIV_VOTE_OPTION] == s[PUB_VOTE_OPTION]
    )


# what each circuit's constraints enforce
CONSTRAINTS = {
    VOTE_CIRCUIT: _vote_ok,
    REVEAL_CIRCUIT: _reveal_ok,
    OPEN_VOTE_CIRCUIT: _open_vote_ok,
}


def solve(circuit_id: str, inputs: dict[str, str]) -> list[int]:
    """Check the witness like the circuit would and return its public signals."""
    signals = {name: int(value) for name, value in inputs.items()}
    if not CONSTRAINTS[circuit_id](signals):
        raise ProofGenerationError(f"{circuit_id}: witness does not satisfy the constraints")
    return [signals[name] for name in PUBLIC_LAYOUTS[circuit_id]]


# an asymmetric G2 marker, so a proof that skipped or doubled the swap fails
FAKE_B = ((1, 2), (3, 4))


class FakeOracle:
    """
    Canned oracle: the "proof" carries a digest of (circuit, signals).

    Verifying keys are the circuit ids.
    """

    def __init__(self):
        self.verify_calls = 0

    def hash(self, *inputs: int) -> int:
        return fake_hash(*inputs)

    def prove(self, circuit_id: str, inputs: dict[str, str]) -> tuple[Proof, list[int]]:
        signals = solve(circuit_id, inputs)
        tag = fake_hash(len(circuit_id), *signals, int.from_bytes(circuit_id.encode(), "big"))
        return Proof(a=(tag, 1), b=FAKE_B, c=(0, 0)), signals

    def verify(self, verifying_key, public_signals, proof) -> bool:
        self.verify_calls += 1
        tag = fake_hash(
            len(verifying_key), *public_signals, int.from_bytes(verifying_key.encode(), "big")
        )
        return proof.a == (tag, 1) and proof.b == FAKE_B


class TrapdoorSetup:
    """
    A Groth16 verifying key whose toxic waste is known.

    Knowing alpha, beta, gamma and delta, a proof for any public signals can be
    computed directly: pick A = [a]G1, B = [b]G2 and solve for C. The result
    passes the real pairing check, which is all these tests need.
    """

    def __init__(self, n_public: int, seed: int):
        self.rnd = random.Random(seed)
        self.alpha, self.beta, self.gamma, self.delta = (self._scalar() for _ in range(4))
        self.ic = [self._scalar() for _ in range(n_public + 1)]
        self.vk = VerifyingKey(
            alpha=g1_point(self.alpha),
            beta=g2_point(self.beta),
            gamma=g2_point(self.gamma),
            delta=g2_point(self.delta),
            ic=tuple(g1_point(x) for x in self.ic),
            n_public=n_public,
        )

    def _scalar(self) -> int:
        return self.rnd.randrange(1, curve_order)

    def prove(self, signals: list[int]) -> Proof:
        a, b = self._scalar(), self._scalar()
        x = self.ic[0]
        for i, s in enumerate(signals):
            x = (x + s * self.ic[i + 1]) % curve_order
        c = (a * b - self.alpha * self.beta - x * self.gamma) * inv(self.delta) % curve_order
        return Proof(a=g1_point(a), b=g2_point(b), c=g1_point(c))


class PairingOracle:
    """Constraint-checking prover over trapdoor keys, real py_ecc verifier."""

    def __init__(self, setups: dict[str, TrapdoorSetup]):
        self.setups = setups

    def key(self, circuit_id: str) -> VerifyingKey:
        return self.setups[circuit_id].vk

    def hash(self, *inputs: int) -> int:
        return fake_hash(*inputs)

    def prove(self, circuit_id: str, inputs: dict[str, str]) -> tuple[Proof, list[int]]:
        signals = solve(circuit_id, inputs)
        return self.setups[circuit_id].prove(signals), signals

    def verify(self, verifying_key, public_signals, proof) -> bool:
        return verify_proof(verifying_key, public_signals, proof)


@pytest.fixture(scope="session")
def trapdoor() -> TrapdoorSetup:
    return TrapdoorSetup(n_public=3, seed=1)


@pytest.fixture(scope="session")
def pairing_oracle(trapdoor) -> PairingOracle:
    return PairingOracle(
        {
            VOTE_CIRCUIT: trapdoor,
            REVEAL_CIRCUIT: TrapdoorSetup(n_public=3, seed=2),
        }
    )


@pytest.fixture()
def oracle() -> FakeOracle:
    return FakeOracle()


class Clock:
    """Settable clock for the open variant."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> Clock:
    return Clock()
