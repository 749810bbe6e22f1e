# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from py_ecc.fields import optimized_bn128_FQ as FQ
from py_ecc.fields import optimized_bn128_FQ2 as FQ2
from py_ecc.fields import optimized_bn128_FQ12 as FQ12
from py_ecc.optimized_bn128 import (
    G1,
    G2,
    Z1,
    Z2,
    add,
    b,
    b2,
    curve_order,
    field_modulus,
    final_exponentiate,
    is_inf,
    is_on_curve,
    multiply,
    neg,
    normalize,
    pairing,
)

# affine encodings used by snarkjs and the EVM precompiles
G1Affine = tuple[int, int]
G2Affine = tuple[tuple[int, int], tuple[int, int]]


def _coordinate(value: int) -> int:
    if not isinstance(value, int) or not 0 <= value < field_modulus:
        raise ValueError(f"coordinate out of range: {value!r}")
    return value


def g1_from_affine(point: G1Affine) -> tuple:
    """
    Lift an affine G1 point to py_ecc's projective representation.

    (0, 0) is the EVM encoding of the point at infinity.

    Args:
        point: (x, y) integer coordinates.

    Returns:
        tuple: The projective point.

    Raises:
        ValueError: If a coordinate is out of range or the point is not on the curve.
    """
    x, y = (_coordinate(c) for c in point)
    if x == 0 and y == 0:
        return Z1
    p = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(p, b):
        raise ValueError("G1 point is not on the curve")
    return p


def g2_from_affine(point: G2Affine) -> tuple:
    """
    Lift an affine G2 point to py_ecc's projective representation.

    Each coordinate is an Fq2 element given as (c0, c1), meaning c0 + c1*i.
    This is the order snarkjs writes; the EVM order is the reverse.

    Raises:
        ValueError: If a coordinate is out of range, the point is not on the
            twisted curve, or it lies outside the r-torsion subgroup.
    """
    (x0, x1), (y0, y1) = point
    x0, x1, y0, y1 = (_coordinate(c) for c in (x0, x1, y0, y1))
    if x0 == x1 == y0 == y1 == 0:
        return Z2
    p = (FQ2([x0, x1]), FQ2([y0, y1]), FQ2.one())
    if not is_on_curve(p, b2):
        raise ValueError("G2 point is not on the curve")
    # the twist has a large cofactor, G1 does not
    if not is_inf(multiply(p, curve_order)):
        raise ValueError("G2 point is not in the prime order subgroup")
    return p


def g1_to_affine(point: tuple) -> G1Affine:
    if is_inf(point):
        return (0, 0)
    x, y = normalize(point)
    return (int(x), int(y))


def g2_to_affine(point: tuple) -> G2Affine:
    if is_inf(point):
        return ((0, 0), (0, 0))
    x, y = normalize(point)
    return (
        (int(x.coeffs[0]), int(x.coeffs[1])),
        (int(y.coeffs[0]), int(y.coeffs[1])),
    )


def g1_point(scalar: int) -> G1Affine:
    """Affine [scalar]G1."""
    return g1_to_affine(multiply(G1, scalar % curve_order))


def g2_point(scalar: int) -> G2Affine:
    """Affine [scalar]G2."""
    return g2_to_affine(multiply(G2, scalar % curve_order))


def pairing_product_is_one(pairs: list[tuple[tuple, tuple]]) -> bool:
    """
    Check prod e(P_i, Q_i) == 1 over (G1, G2) pairs.

    The Miller loops are multiplied first and a single final exponentiation is
    applied, which is how on-chain pairing checks work as well.

    Args:
        pairs: (g1_point, g2_point) projective pairs.

    Returns:
        bool: True when the product is the identity of GT.
    """
    acc = FQ12.one()
    for p, q in pairs:
        if is_inf(p) or is_inf(q):
            continue
        acc *= pairing(q, p, final_exponentiate=False)
    return final_exponentiate(acc) == FQ12.one()


__all__ = [
    "G1",
    "G2",
    "Z1",
    "Z2",
    "G1Affine",
    "G2Affine",
    "add",
    "curve_order",
    "field_modulus",
    "g1_from_affine",
    "g1_point",
    "g1_to_affine",
    "g2_from_affine",
    "g2_point",
    "g2_to_affine",
    "multiply",
    "neg",
    "pairing_product_is_one",
]
