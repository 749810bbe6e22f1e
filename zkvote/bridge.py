# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from zkvote.commitment import CommitmentScheme
from zkvote.constants import (
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
from zkvote.field import require_field_element, to_decimal
from zkvote.groth_convert import (
    ContractProof,
    Proof,
    from_contract_proof,
    to_contract_proof,
)
from zkvote.hashing import PoseidonHasher
from zkvote.snark import SnarkjsProver, verify_proof
from zkvote.vk_convert import load_verifying_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CircuitInput:
    """
    Private and public inputs for one circuit.

    `public` is ordered by the circuit's public-signal layout; that order is
    what the verifier sees, so it is checked on construction.
    """

    circuit_id: str
    private: dict[str, int]
    public: dict[str, int]

    def __post_init__(self):
        layout = PUBLIC_LAYOUTS.get(self.circuit_id)
        if layout is None:
            raise ValueError(f"unknown circuit: {self.circuit_id}")
        if tuple(self.public) != layout:
            raise ValueError(
                f"public inputs for {self.circuit_id} must be {layout}, got {tuple(self.public)}"
            )
        for name, value in {**self.private, **self.public}.items():
            require_field_element(value, name)

    def public_signals(self) -> list[int]:
        return list(self.public.values())

    def to_json(self) -> dict[str, str]:
        """The snarkjs input document."""
        return {name: to_decimal(v) for name, v in {**self.private, **self.public}.items()}


class ProofOracle(Protocol):
    """
    The external hash / prove / verify capability.

    The engine never reaches for a global hashing or proving library; it is
    handed one of these, which keeps it testable with canned answers.
    """

    def hash(self, *inputs: int) -> int: ...

    def prove(self, circuit_id: str, inputs: dict[str, str]) -> tuple[Proof, list[int]]: ...

    def verify(self, verifying_key: Any, public_signals: list[int], proof: Proof) -> bool: ...


class SnarkjsOracle:
    """circomlib Poseidon, snarkjs Groth16 prover, py_ecc pairing verifier."""

    def __init__(
        self,
        artifacts_dir: str | Path,
        snarkjs_bin: str = "snarkjs",
        node_bin: str = "node",
        node_path: str | None = None,
    ):
        self.hasher = PoseidonHasher(node_bin=node_bin, node_path=node_path)
        self.prover = SnarkjsProver(artifacts_dir, snarkjs_bin=snarkjs_bin)

    def hash(self, *inputs: int) -> int:
        return self.hasher(*inputs)

    def prove(self, circuit_id: str, inputs: dict[str, str]) -> tuple[Proof, list[int]]:
        return self.prover.prove(circuit_id, inputs)

    def verify(self, verifying_key: Any, public_signals: list[int], proof: Proof) -> bool:
        return verify_proof(verifying_key, public_signals, proof)

    def load_verifying_key(self, circuit_id: str):
        return load_verifying_key(self.prover.artifacts(circuit_id).verifying_key)


class ProofBridge:
    """
    Moves protocol values in and out of the proof oracle.

    Builds circuit inputs from secrets, runs the prover, and converts proofs
    between the off-chain and on-chain encodings.
    """

    def __init__(self, oracle: ProofOracle):
        self.oracle = oracle
        self.scheme = CommitmentScheme(oracle.hash)

    def build_vote_circuit_input(self, secret: int, option: int, salt: int) -> CircuitInput:
        return CircuitInput(
            circuit_id=VOTE_CIRCUIT,
            private={
                PRIV_VOTER_SECRET: secret,
                PRIV_VOTE_OPTION: option,
                PRIV_VOTE_SALT: salt,
            },
            public={
                PUB_VOTER_COMMITMENT: self.scheme.derive_commitment(secret),
                PUB_NULLIFIER: self.scheme.derive_nullifier(secret),
                PUB_VOTE_OPTION_HASH: self.scheme.derive_vote_option_hash(option, salt),
            },
        )

    def build_reveal_circuit_input(
        self, salt: int, option: int, nullifier: int
    ) -> CircuitInput:
        """
        Inputs for proving that (option, salt) opens a cast vote.

        The nullifier is a public input of the reveal circuit; it is passed in
        rather than recomputed so the voter's secret is not needed again.
        """
        return CircuitInput(
            circuit_id=REVEAL_CIRCUIT,
            private={PRIV_VOTE_SALT: salt},
            public={
                PUB_NULLIFIER: nullifier,
                PUB_VOTE_OPTION_HASH: self.scheme.derive_vote_option_hash(option, salt),
                PUB_VOTE_OPTION: option,
            },
        )

    def build_open_vote_circuit_input(self, secret: int, option: int) -> CircuitInput:
        return CircuitInput(
            circuit_id=OPEN_VOTE_CIRCUIT,
            private={PRIV_VOTER_SECRET: secret, PRIV_VOTE_OPTION: option},
            public={
                PUB_VOTER_COMMITMENT: self.scheme.derive_commitment(secret),
                PUB_VOTE_OPTION: option,
                PUB_NULLIFIER: self.scheme.derive_nullifier(secret),
            },
        )

    def generate_proof(self, circuit_input: CircuitInput) -> Proof:
        """
        Prove a circuit input with the oracle.

        Raises:
            ProofGenerationError: If the oracle fails, or if the public signals
                it reports differ from the ones this bridge computed (a proof
                over different signals would be rejected by the election).
        """
        try:
            proof, signals = self.oracle.prove(
                circuit_input.circuit_id, circuit_input.to_json()
            )
        except ProofGenerationError:
            logger.warning("proof generation failed for %s", circuit_input.circuit_id)
            raise

        expected = circuit_input.public_signals()
        if signals != expected:
            raise ProofGenerationError(
                f"{circuit_input.circuit_id} prover emitted public signals {signals}, expected {expected}"
            )
        return proof

    @staticmethod
    def encode_for_verifier(proof: Proof) -> ContractProof:
        return to_contract_proof(proof)

    @staticmethod
    def decode_from_verifier(proof: ContractProof) -> Proof:
        return from_contract_proof(proof)

    def verify_offline(
        self, verifying_key: Any, public_signals: list[int], proof: Proof | ContractProof
    ) -> bool:
        """
        Check a proof before submitting it, to fail fast.

        Accepts either encoding; a `ContractProof` is decoded first.
        """
        if isinstance(proof, ContractProof):
            proof = from_contract_proof(proof)
        return self.verify(verifying_key, public_signals, proof)

    def verify(self, verifying_key: Any, public_signals: list[int], proof: Proof) -> bool:
        if not isinstance(proof, Proof):
            raise TypeError(f"expected Proof, got {type(proof).__name__}")
        return bool(self.oracle.verify(verifying_key, public_signals, proof))

    def prove_vote(self, secret: int, option: int, salt: int) -> tuple[ContractProof, CircuitInput]:
        """Build, prove and encode a hidden vote, ready for `cast_vote`."""
        circuit_input = self.build_vote_circuit_input(secret, option, salt)
        return self.encode_for_verifier(self.generate_proof(circuit_input)), circuit_input

    def prove_reveal(
        self, salt: int, option: int, nullifier: int
    ) -> tuple[ContractProof, CircuitInput]:
        """Build, prove and encode a reveal, ready for `reveal_vote_with_proof`."""
        circuit_input = self.build_reveal_circuit_input(salt, option, nullifier)
        return self.encode_for_verifier(self.generate_proof(circuit_input)), circuit_input

    def prove_open_vote(self, secret: int, option: int) -> tuple[ContractProof, CircuitInput]:
        """Build, prove and encode a single-proof vote, ready for `cast_open_vote`."""
        circuit_input = self.build_open_vote_circuit_input(secret, option)
        return self.encode_for_verifier(self.generate_proof(circuit_input)), circuit_input
