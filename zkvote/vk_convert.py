# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# vk_convert.py

"""
Load snarkjs Groth16 verifying keys and convert them for an on-chain verifier.

snarkjs outputs:
  - verification_key.json: {protocol, curve, nPublic, vk_alpha_1, vk_beta_2,
    vk_gamma_2, vk_delta_2, vk_alphabeta_12, IC}

G1 points are [x, y, "1"]; G2 points are [[x.c0, x.c1], [y.c0, y.c1], ["1", "0"]].
The contract form reverses every G2 coordinate pair, exactly as
`groth_convert.to_contract_proof` does for proofs.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from zkvote.bn254 import G1Affine, G2Affine, g1_from_affine, g2_from_affine
from zkvote.files import load_json, require_file
from zkvote.groth_convert import g1_from_json, g2_from_json, swap_g2


@dataclass(frozen=True)
class VerifyingKey:
    alpha: G1Affine
    beta: G2Affine
    gamma: G2Affine
    delta: G2Affine
    ic: tuple[G1Affine, ...]
    n_public: int

    def __post_init__(self):
        if len(self.ic) != self.n_public + 1:
            raise ValueError(
                f"IC length mismatch: len(IC)={len(self.ic)} vs nPublic+1={self.n_public + 1}"
            )


def vk_from_snarkjs(data: dict[str, Any], check_points: bool = True) -> VerifyingKey:
    """
    Parse a snarkjs verification_key.json document.

    Args:
        data: Dict from snarkjs' verification_key.json
        check_points: Also check that every point is on the curve and, for
            G2, in the prime order subgroup.

    Returns:
        VerifyingKey

    Raises:
        ValueError: On a non-Groth16 or non-bn128 key, an IC/nPublic mismatch,
            or an invalid point.
    """
    if data.get("protocol", "groth16") != "groth16":
        raise ValueError(f"unsupported verifying key protocol: {data.get('protocol')}")
    if data.get("curve", "bn128") != "bn128":
        raise ValueError(f"unsupported verifying key curve: {data.get('curve')}")

    vk = VerifyingKey(
        alpha=g1_from_json(data["vk_alpha_1"]),
        beta=g2_from_json(data["vk_beta_2"]),
        gamma=g2_from_json(data["vk_gamma_2"]),
        delta=g2_from_json(data["vk_delta_2"]),
        ic=tuple(g1_from_json(p) for p in data["IC"]),
        n_public=int(data["nPublic"]),
    )

    if check_points:
        g1_from_affine(vk.alpha)
        for p in vk.ic:
            g1_from_affine(p)
        for q in (vk.beta, vk.gamma, vk.delta):
            g2_from_affine(q)

    return vk


def vk_to_snarkjs(vk: VerifyingKey) -> dict[str, Any]:
    def g1(p: G1Affine) -> list[str]:
        return [str(p[0]), str(p[1]), "1"]

    def g2(q: G2Affine) -> list[list[str]]:
        return [[str(q[0][0]), str(q[0][1])], [str(q[1][0]), str(q[1][1])], ["1", "0"]]

    return {
        "protocol": "groth16",
        "curve": "bn128",
        "nPublic": vk.n_public,
        "vk_alpha_1": g1(vk.alpha),
        "vk_beta_2": g2(vk.beta),
        "vk_gamma_2": g2(vk.gamma),
        "vk_delta_2": g2(vk.delta),
        "IC": [g1(p) for p in vk.ic],
    }


def vk_to_contract(vk: VerifyingKey) -> dict[str, Any]:
    """
    Emit the verifying key constants in EVM coordinate order.

    Returns:
        Dict with alpha, beta, gamma, delta and IC as decimal strings, G2
        coordinates swapped to (c1, c0).
    """

    def g2(q: G2Affine) -> list[list[str]]:
        (x0, x1), (y0, y1) = swap_g2(q)
        return [[str(x0), str(x1)], [str(y0), str(y1)]]

    return {
        "alpha": [str(vk.alpha[0]), str(vk.alpha[1])],
        "beta": g2(vk.beta),
        "gamma": g2(vk.gamma),
        "delta": g2(vk.delta),
        "IC": [[str(p[0]), str(p[1])] for p in vk.ic],
    }


def load_verifying_key(path: str | Path) -> VerifyingKey:
    """
    Read a snarkjs verification_key.json from disk.

    Raises:
        MissingArtifactError: If the file does not exist.
    """
    return vk_from_snarkjs(load_json(require_file(path, "verifying key")))
