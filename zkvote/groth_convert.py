# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# groth_convert.py

"""
Convert snarkjs Groth16 proofs between the off-chain and on-chain encodings.

snarkjs outputs:
  - proof.json: {pi_a: [x, y, "1"], pi_b: [[x.c0, x.c1], [y.c0, y.c1], ["1", "0"]],
                 pi_c: [x, y, "1"], protocol: "groth16", curve: "bn128"}
  - public.json: ["signal0", "signal1", ...]

The EVM pairing precompile (and every Solidity verifier generated from it)
reads an Fq2 element as (c1, c0), the reverse of snarkjs. So:

  - `Proof` is the off-chain encoding. G2 coordinates are (c0, c1).
  - `ContractProof` is the on-chain encoding. G2 coordinates are (c1, c0).

`to_contract_proof` and `from_contract_proof` are the only conversions.
Verification takes a `Proof`; state transitions take a `ContractProof`. The
swap therefore happens exactly once in each direction and can't be skipped or
applied twice without a type error.
"""

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from zkvote.bn254 import G1Affine, G2Affine
from zkvote.config import setup_logging
from zkvote.field import require_field_element, to_decimal
from zkvote.files import load_json, save_json


@dataclass(frozen=True)
class Proof:
    """Groth16 proof in snarkjs coordinate order."""

    a: G1Affine
    b: G2Affine
    c: G1Affine


@dataclass(frozen=True)
class ContractProof:
    """Groth16 proof in EVM coordinate order (G2 components swapped)."""

    a: G1Affine
    b: G2Affine
    c: G1Affine


def swap_g2(point: G2Affine) -> G2Affine:
    (x0, x1), (y0, y1) = point
    return ((x1, x0), (y1, y0))


def to_contract_proof(proof: Proof) -> ContractProof:
    """
    Reorder a snarkjs proof for an on-chain verifier.

    Args:
        proof: The off-chain proof.

    Returns:
        ContractProof: Same points, G2 coordinates in (c1, c0) order.

    Raises:
        TypeError: If handed anything other than a `Proof`.
    """
    if not isinstance(proof, Proof):
        raise TypeError(f"expected Proof, got {type(proof).__name__}")
    return ContractProof(a=proof.a, b=swap_g2(proof.b), c=proof.c)


def from_contract_proof(proof: ContractProof) -> Proof:
    """
    Undo `to_contract_proof`.

    Raises:
        TypeError: If handed anything other than a `ContractProof`.
    """
    if not isinstance(proof, ContractProof):
        raise TypeError(f"expected ContractProof, got {type(proof).__name__}")
    return Proof(a=proof.a, b=swap_g2(proof.b), c=proof.c)


def g1_from_json(coords: list[Any]) -> G1Affine:
    if len(coords) == 3 and int(coords[2]) == 0:
        return (0, 0)
    if len(coords) == 3 and int(coords[2]) != 1:
        raise ValueError(f"G1 point must be affine (z=1), got z={coords[2]}")
    return (int(coords[0]), int(coords[1]))


def g2_from_json(coords: list[Any]) -> G2Affine:
    if len(coords) == 3 and [int(c) for c in coords[2]] == [0, 0]:
        return ((0, 0), (0, 0))
    if len(coords) == 3 and [int(c) for c in coords[2]] != [1, 0]:
        raise ValueError(f"G2 point must be affine (z=[1, 0]), got z={coords[2]}")
    return (
        (int(coords[0][0]), int(coords[0][1])),
        (int(coords[1][0]), int(coords[1][1])),
    )


def proof_from_snarkjs(data: dict[str, Any]) -> Proof:
    """
    Parse a snarkjs proof.json document.

    Args:
        data: Dict with keys pi_a, pi_b, pi_c (and optionally protocol, curve).

    Returns:
        Proof: The off-chain proof.

    Raises:
        ValueError: If the proof is not a bn128 Groth16 proof or a point is
            not in affine form.
        KeyError: If a component is missing.
    """
    protocol = data.get("protocol", "groth16")
    curve = data.get("curve", "bn128")
    if protocol != "groth16":
        raise ValueError(f"unsupported proof protocol: {protocol}")
    if curve != "bn128":
        raise ValueError(f"unsupported proof curve: {curve}")

    return Proof(
        a=g1_from_json(data["pi_a"]),
        b=g2_from_json(data["pi_b"]),
        c=g1_from_json(data["pi_c"]),
    )


def proof_to_snarkjs(proof: Proof) -> dict[str, Any]:
    (bx0, bx1), (by0, by1) = proof.b
    return {
        "pi_a": [str(proof.a[0]), str(proof.a[1]), "1"],
        "pi_b": [[str(bx0), str(bx1)], [str(by0), str(by1)], ["1", "0"]],
        "pi_c": [str(proof.c[0]), str(proof.c[1]), "1"],
        "protocol": "groth16",
        "curve": "bn128",
    }


def signals_from_snarkjs(data: list[Any]) -> list[int]:
    """
    Parse a snarkjs public.json document.

    Raises:
        ValueError: If any signal is not a reduced field element.
    """
    if not isinstance(data, list):
        raise TypeError("public signals must be a list")
    return [require_field_element(int(s), f"signal[{i}]") for i, s in enumerate(data)]


def contract_calldata(proof: ContractProof, signals: list[int]) -> list[Any]:
    """
    Arrange a contract proof as `verifyProof(a, b, c, input)` arguments.

    Values are decimal strings, which is what web3 tooling expects for uint256.
    """
    (bx0, bx1), (by0, by1) = proof.b
    return [
        [str(proof.a[0]), str(proof.a[1])],
        [[str(bx0), str(bx1)], [str(by0), str(by1)]],
        [str(proof.c[0]), str(proof.c[1])],
        [to_decimal(s) for s in signals],
    ]


def contract_proof_from_calldata(calldata: list[Any]) -> tuple[ContractProof, list[int]]:
    a, b, c, signals = calldata
    proof = ContractProof(
        a=(int(a[0]), int(a[1])),
        b=((int(b[0][0]), int(b[0][1])), (int(b[1][0]), int(b[1][1]))),
        c=(int(c[0]), int(c[1])),
    )
    return proof, signals_from_snarkjs(signals)


def convert_proof_file(
    proof_path: str | Path,
    public_path: str | Path,
    output_path: str | Path,
) -> None:
    """
    Read snarkjs proof.json and public.json and write contract calldata JSON.

    Args:
        proof_path: Path to snarkjs' proof.json
        public_path: Path to snarkjs' public.json
        output_path: Path to write the calldata
    """
    proof = proof_from_snarkjs(load_json(proof_path))
    signals = signals_from_snarkjs(load_json(public_path))
    save_json(output_path, contract_calldata(to_contract_proof(proof), signals))


def main() -> None:
    """CLI: print contract calldata for a snarkjs proof/public pair."""
    setup_logging(os.environ.get("ZKVOTE_LOG_LEVEL", "INFO"))
    if len(sys.argv) < 3:
        print(
            "Usage: python -m zkvote.groth_convert <proof.json> <public.json> [output.json]",
            file=sys.stderr,
        )
        sys.exit(1)

    if len(sys.argv) >= 4:
        convert_proof_file(sys.argv[1], sys.argv[2], sys.argv[3])
        return

    proof = proof_from_snarkjs(load_json(sys.argv[1]))
    signals = signals_from_snarkjs(load_json(sys.argv[2]))
    json.dump(contract_calldata(to_contract_proof(proof), signals), sys.stdout, indent=4)
    print()


if __name__ == "__main__":
    main()
