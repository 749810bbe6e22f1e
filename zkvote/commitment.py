# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from dataclasses import dataclass

from zkvote.constants import NULLIFIER_DOMAIN_TAG
from zkvote.field import require_field_element, rng
from zkvote.hashing import Hasher


@dataclass(frozen=True)
class VoterCredentials:
    """Everything a voter derives from one secret. The secret never leaves the client."""

    secret: int
    commitment: int
    nullifier: int


@dataclass(frozen=True)
class SealedBallot:
    """A vote option hidden behind H(option, salt) until the reveal."""

    option: int
    salt: int
    vote_option_hash: int


class CommitmentScheme:
    """
    Deterministic derivations from voter secrets and vote salts.

        commitment       = H(secret)
        nullifier        = H(secret, domain_tag)
        vote_option_hash = H(option, salt)

    The circuits recompute the same hashes, so equal inputs must give equal
    outputs bit for bit. Collision resistance is inherited from `hasher`.
    """

    def __init__(self, hasher: Hasher):
        self.hasher = hasher

    def derive_commitment(self, secret: int) -> int:
        return self.hasher(require_field_element(secret, "secret"))

    def derive_nullifier(
        self, secret: int, domain_tag: int = NULLIFIER_DOMAIN_TAG
    ) -> int:
        return self.hasher(
            require_field_element(secret, "secret"),
            require_field_element(domain_tag, "domain_tag"),
        )

    def derive_vote_option_hash(self, option: int, salt: int) -> int:
        return self.hasher(
            require_field_element(option, "option"),
            require_field_element(salt, "salt"),
        )

    def credentials(self, secret: int) -> VoterCredentials:
        return VoterCredentials(
            secret=secret,
            commitment=self.derive_commitment(secret),
            nullifier=self.derive_nullifier(secret),
        )

    def new_voter(self) -> VoterCredentials:
        """Sample a fresh voter secret and derive its public values."""
        return self.credentials(rng())

    def seal_ballot(self, option: int, salt: int | None = None) -> SealedBallot:
        """
        Hide `option` behind a salted hash.

        Args:
            option: The chosen vote option.
            salt: Optional salt; a fresh random one is drawn when omitted.
                The salt must be kept by the voter until the reveal.
        """
        if salt is None:
            salt = rng()
        return SealedBallot(
            option=option,
            salt=salt,
            vote_option_hash=self.derive_vote_option_hash(option, salt),
        )
