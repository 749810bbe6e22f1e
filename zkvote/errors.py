# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

"""
Error kinds raised by the voting engine.

Every error is fatal for the call that raised it and leaves the election state
untouched. Messages name the precondition that failed so an operator can tell a
wrong phase from a bad proof from a replay.
"""


class VotingError(Exception):
    """Base class for every protocol-level rejection."""


class Unauthorized(VotingError):
    """A non-admin caller invoked an admin-only operation."""


class PhaseError(VotingError):
    """The operation is not legal in the current phase."""


class InvalidTransition(VotingError):
    """A phase change that does not strictly advance the phase."""


class VoterNotRegistered(VotingError):
    pass


class NullifierAlreadyUsed(VotingError):
    pass


class UnknownNullifier(VotingError):
    pass


class AlreadyRevealed(VotingError):
    pass


class InvalidOption(VotingError):
    pass


class ProofVerificationFailed(VotingError):
    pass


class ProofGenerationError(VotingError):
    """The prover could not produce a proof (client side only)."""


class ConfigurationError(VotingError):
    pass


class MissingArtifactError(ConfigurationError, ProofGenerationError):
    """A circuit artifact (wasm, zkey, verifying key) is absent."""
