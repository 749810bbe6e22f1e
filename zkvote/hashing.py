# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import logging
import os
import subprocess
from typing import Protocol

from zkvote.constants import POSEIDON_MAX_INPUTS
from zkvote.field import require_field_element, to_field

logger = logging.getLogger(__name__)

# inputs arrive on stdin as a JSON list of decimal strings, never on argv
POSEIDON_SCRIPT = """
(async () => {
    const fs = require("fs");
    const circomlib = require("circomlibjs");
    const poseidon = await circomlib.buildPoseidon();
    const inputs = JSON.parse(fs.readFileSync(0, "utf8")).map((x) => BigInt(x));
    console.log(poseidon.F.toString(poseidon(inputs)));
})()
"""


class Hasher(Protocol):
    """One-way hash H: F* -> F used by every derivation."""

    def __call__(self, *inputs: int) -> int: ...


class PoseidonHasher:
    """
    circomlib-compatible Poseidon, evaluated by circomlibjs under node.

    The circuits hash with circomlib's Poseidon, so the engine must produce
    bit-identical digests. Rather than reimplementing the permutation, the
    reference implementation is invoked directly.

    Args:
        node_bin: The node executable.
        node_path: Directory holding `node_modules/circomlibjs`.
    """

    def __init__(self, node_bin: str = "node", node_path: str | None = None):
        self.node_bin = node_bin
        self.node_path = node_path

    def __call__(self, *inputs: int) -> int:
        if not 1 <= len(inputs) <= POSEIDON_MAX_INPUTS:
            raise ValueError(
                f"poseidon takes 1..{POSEIDON_MAX_INPUTS} inputs, got {len(inputs)}"
            )
        values = [to_field(x) for x in inputs]

        env = dict(os.environ)
        if self.node_path is not None:
            env["NODE_PATH"] = self.node_path

        logger.debug("poseidon over %d inputs via %s", len(values), self.node_bin)
        try:
            result = subprocess.run(
                [self.node_bin, "-e", POSEIDON_SCRIPT],
                input=json.dumps([str(v) for v in values]),
                capture_output=True,
                text=True,
                check=True,
                env=env,
            )
        except subprocess.CalledProcessError as e:
            logger.error("poseidon subprocess failed: %s", e.stderr.strip())
            raise

        return require_field_element(int(result.stdout.strip()), "poseidon digest")
