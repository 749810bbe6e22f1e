# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import logging
import subprocess
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from zkvote.bn254 import (
    add,
    g1_from_affine,
    g2_from_affine,
    multiply,
    neg,
    pairing_product_is_one,
)
from zkvote.errors import ProofGenerationError
from zkvote.field import is_field_element
from zkvote.files import load_json, require_file, save_json
from zkvote.groth_convert import Proof, proof_from_snarkjs, signals_from_snarkjs
from zkvote.vk_convert import VerifyingKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CircuitArtifacts:
    """Where the compiled circuit, proving key and verifying key live."""

    circuit_id: str
    wasm: Path
    zkey: Path
    verifying_key: Path


def circuit_artifacts(artifacts_dir: str | Path, circuit_id: str) -> CircuitArtifacts:
    """
    Resolve artifact paths for a circuit by the circom/snarkjs naming convention.

        <dir>/<id>_js/<id>.wasm
        <dir>/<id>_0001.zkey
        <dir>/<id>_verification_key.json
    """
    root = Path(artifacts_dir)
    return CircuitArtifacts(
        circuit_id=circuit_id,
        wasm=root / f"{circuit_id}_js" / f"{circuit_id}.wasm",
        zkey=root / f"{circuit_id}_0001.zkey",
        verifying_key=root / f"{circuit_id}_verification_key.json",
    )


@lru_cache(maxsize=16)
def _prepare_key(vk: VerifyingKey) -> tuple:
    return (
        g1_from_affine(vk.alpha),
        g2_from_affine(vk.beta),
        g2_from_affine(vk.gamma),
        g2_from_affine(vk.delta),
        tuple(g1_from_affine(p) for p in vk.ic),
    )


def verify_proof(vk: VerifyingKey, signals: list[int], proof: Proof) -> bool:
    """
    Check a Groth16 proof against a verifying key and public signals.

        e(A, B) == e(alpha, beta) * e(vk_x, gamma) * e(C, delta)
        vk_x    =  IC[0] + sum(signals[i] * IC[i + 1])

    evaluated as the product e(-A, B) e(alpha, beta) e(vk_x, gamma) e(C, delta) == 1.

    Args:
        vk: The circuit's verifying key.
        signals: Public signals in the circuit's layout order.
        proof: The proof in snarkjs (off-chain) encoding.

    Returns:
        bool: True if the proof is valid. Malformed points, unreduced signals
        and a wrong signal count are reported as False, never raised.

    Raises:
        TypeError: If `proof` is a `ContractProof` or anything else that is not
            an off-chain `Proof`.
    """
    if not isinstance(proof, Proof):
        raise TypeError(f"expected Proof, got {type(proof).__name__}")

    if len(signals) != vk.n_public:
        logger.warning(
            "public input count mismatch: %d signals vs nPublic=%d",
            len(signals),
            vk.n_public,
        )
        return False
    if not all(is_field_element(s) for s in signals):
        logger.warning("public signal outside the scalar field")
        return False

    alpha, beta, gamma, delta, ic = _prepare_key(vk)

    try:
        a = g1_from_affine(proof.a)
        b = g2_from_affine(proof.b)
        c = g1_from_affine(proof.c)
    except ValueError as e:
        logger.warning("malformed proof: %s", e)
        return False

    vk_x = ic[0]
    for i, s in enumerate(signals):
        vk_x = add(vk_x, multiply(ic[i + 1], s))

    return pairing_product_is_one(
        [
            (neg(a), b),
            (alpha, beta),
            (vk_x, gamma),
            (c, delta),
        ]
    )


class SnarkjsProver:
    """
    Groth16 prover backed by the snarkjs CLI.

    Args:
        artifacts_dir: Directory holding the compiled circuits and keys.
        snarkjs_bin: The snarkjs executable.
    """

    def __init__(self, artifacts_dir: str | Path, snarkjs_bin: str = "snarkjs"):
        self.artifacts_dir = Path(artifacts_dir)
        self.snarkjs_bin = snarkjs_bin

    def artifacts(self, circuit_id: str) -> CircuitArtifacts:
        return circuit_artifacts(self.artifacts_dir, circuit_id)

    def _run(self, cmd: list[str]) -> None:
        logger.debug("running %s", " ".join(cmd[:3]))
        subprocess.run(cmd, capture_output=True, text=True, check=True)

    def prove(self, circuit_id: str, inputs: dict[str, str]) -> tuple[Proof, list[int]]:
        """
        Compute the witness and prove it.

        Args:
            circuit_id: Circuit to prove.
            inputs: The snarkjs input document (signal name -> decimal string).

        Returns:
            (Proof, public signals) as emitted by snarkjs.

        Raises:
            MissingArtifactError: If the wasm or zkey is absent.
            ProofGenerationError: If the witness does not satisfy the
                constraints, snarkjs is not installed, or its output can't be
                parsed.
        """
        art = self.artifacts(circuit_id)
        wasm = require_file(art.wasm, f"{circuit_id} circuit wasm")
        zkey = require_file(art.zkey, f"{circuit_id} proving key")

        with tempfile.TemporaryDirectory(prefix=f"zkvote-{circuit_id}-") as tmp:
            work = Path(tmp)
            input_file = work / "input.json"
            wtns_file = work / "witness.wtns"
            proof_file = work / "proof.json"
            public_file = work / "public.json"

            save_json(input_file, inputs)

            step = "witness calculation"
            try:
                self._run(
                    [
                        self.snarkjs_bin,
                        "wtns",
                        "calculate",
                        str(wasm),
                        str(input_file),
                        str(wtns_file),
                    ]
                )
                step = "groth16 prove"
                self._run(
                    [
                        self.snarkjs_bin,
                        "groth16",
                        "prove",
                        str(zkey),
                        str(wtns_file),
                        str(proof_file),
                        str(public_file),
                    ]
                )
            except subprocess.CalledProcessError as e:
                detail = (e.stderr or e.stdout or "").strip()
                logger.warning("snarkjs %s failed for circuit %s", step, circuit_id)
                raise ProofGenerationError(
                    f"snarkjs {step} failed for circuit {circuit_id}: {detail}"
                ) from e
            except FileNotFoundError as e:
                logger.warning("snarkjs not found for %s of circuit %s", step, circuit_id)
                raise ProofGenerationError(
                    f"snarkjs executable not found: {self.snarkjs_bin}"
                ) from e

            try:
                proof = proof_from_snarkjs(load_json(proof_file))
                signals = signals_from_snarkjs(load_json(public_file))
            except (OSError, ValueError, KeyError, TypeError) as e:
                raise ProofGenerationError(
                    f"unreadable snarkjs output for circuit {circuit_id}: {e}"
                ) from e

        return proof, signals
