# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# voting.py

"""
The election state machine.

    Registration (0) -> Voting (1) -> Revealing (2) -> Ended (3)

Phases only move forward, and only the administrator moves them. Each
operation is legal in exactly one phase:

  - register_voter / batch_register_voters   Registration, admin only
  - cast_vote                                Voting
  - reveal_vote_with_proof                   Revealing
  - get_results                              Ended

A vote is cast as (commitment, nullifier, vote_option_hash) plus a proof that
the caller knows the secret behind a registered commitment. The option stays
hidden behind its salted hash until the Revealing phase, when a second proof
opens it and the tally is incremented.

The open variant collapses Voting and Revealing: the option is a public input
of the single cast proof, and voting closes by itself at a deadline, which is
checked lazily at the start of every call.

Every operation validates all of its preconditions before it touches any
state, so a rejected call leaves the election exactly as it was.
"""

import logging
import time
from enum import IntEnum
from typing import Any, Callable, Iterable

from zkvote.bridge import ProofBridge, ProofOracle, SnarkjsOracle
from zkvote.config import ElectionConfig, Variant, log_level_number
from zkvote.constants import OPEN_VOTE_CIRCUIT, REVEAL_CIRCUIT, VOTE_CIRCUIT
from zkvote.errors import (
    AlreadyRevealed,
    InvalidOption,
    InvalidTransition,
    NullifierAlreadyUsed,
    PhaseError,
    ProofVerificationFailed,
    Unauthorized,
    UnknownNullifier,
    VoterNotRegistered,
    VotingError,
)
from zkvote.events import (
    PHASE_CHANGED,
    RESULTS_PUBLISHED,
    VOTE_CAST,
    VOTE_REVEALED,
    VOTER_REGISTERED,
    VOTING_EXTENDED,
    AuditEvent,
    AuditLog,
)
from zkvote.field import require_field_element
from zkvote.groth_convert import ContractProof
from zkvote.tally import TallyLedger

logger = logging.getLogger(__name__)


class Phase(IntEnum):
    REGISTRATION = 0
    VOTING = 1
    REVEALING = 2
    ENDED = 3


class VotingStateMachine:
    """
    One election: registry, nullifier sets, tally and phase.

    Args:
        admin: Identity of the only principal allowed to run admin operations.
        options_count: Number of options; options are numbered 1..options_count.
        oracle: Hash / prove / verify capability.
        vote_key: Verifying key of the cast circuit (`vote`, or `open_vote`
            for the open variant). Opaque to the machine; handed to the oracle.
        reveal_key: Verifying key of the `reveal` circuit. Required for the
            commit-reveal variant.
        variant: Which cast operation this election uses.
        voting_duration: Seconds the open variant accepts votes for.
        clock: Source of the current time, in seconds.
    """

    def __init__(
        self,
        admin: str,
        options_count: int,
        oracle: ProofOracle,
        vote_key: Any,
        reveal_key: Any = None,
        variant: Variant = Variant.COMMIT_REVEAL,
        voting_duration: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if not admin:
            raise ValueError("an administrator is required")
        self.variant = Variant(variant)
        if self.variant is Variant.COMMIT_REVEAL and reveal_key is None:
            raise ValueError("the commit-reveal variant needs a reveal verifying key")
        if self.variant is Variant.OPEN and (
            not isinstance(voting_duration, int)
            or isinstance(voting_duration, bool)
            or voting_duration <= 0
        ):
            raise ValueError("the open variant needs a positive voting_duration")

        self._admin = admin
        self._bridge = ProofBridge(oracle)
        self._vote_key = vote_key
        self._reveal_key = reveal_key
        self._clock = clock

        self._tally = TallyLedger(options_count)
        self._registered: set[int] = set()
        # nullifier -> vote option hash (None for open votes)
        self._cast: dict[int, int | None] = {}
        self._revealed: set[int] = set()
        self._results_published = False
        self.events = AuditLog()

        if self.variant is Variant.OPEN:
            # registration stays open until the deadline
            self._phase = Phase.VOTING
            self._voting_end_time: float | None = clock() + voting_duration
        else:
            self._phase = Phase.REGISTRATION
            self._voting_end_time = None

    @classmethod
    def from_config(
        cls,
        config: ElectionConfig,
        oracle: ProofOracle | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "VotingStateMachine":
        """
        Build an election from configuration.

        Verifying keys are read from the artifacts directory. Without an
        explicit oracle the snarkjs/circomlib one is used. The configured log
        level is applied to the `zkvote` loggers.

        Raises:
            MissingArtifactError: If a verifying key file is absent.
        """
        logging.getLogger("zkvote").setLevel(log_level_number(config.log_level))

        snarkjs = SnarkjsOracle(
            config.artifacts_dir,
            snarkjs_bin=config.snarkjs_bin,
            node_bin=config.node_bin,
            node_path=config.node_path,
        )
        if oracle is None:
            oracle = snarkjs

        if config.variant is Variant.OPEN:
            vote_key = snarkjs.load_verifying_key(OPEN_VOTE_CIRCUIT)
            reveal_key = None
        else:
            vote_key = snarkjs.load_verifying_key(VOTE_CIRCUIT)
            reveal_key = snarkjs.load_verifying_key(REVEAL_CIRCUIT)

        return cls(
            admin=config.admin,
            options_count=config.options_count,
            oracle=oracle,
            vote_key=vote_key,
            reveal_key=reveal_key,
            variant=config.variant,
            voting_duration=config.voting_duration,
            clock=clock,
        )

    # internals

    def _reject(self, operation: str, error: VotingError) -> VotingError:
        logger.warning("%s rejected: %s", operation, error)
        return error

    def _emit(self, kind: str, **fields: Any) -> None:
        self.events.append(AuditEvent(kind, fields))

    def _set_phase(self, new: Phase) -> None:
        old = self._phase
        self._phase = new
        self._emit(PHASE_CHANGED, old=int(old), new=int(new))
        logger.info("phase %s -> %s", old.name, new.name)

    def _refresh(self) -> None:
        # the open variant ends on its own once the deadline passes
        if (
            self.variant is Variant.OPEN
            and self._phase is not Phase.ENDED
            and self._clock() >= self._voting_end_time
        ):
            self._set_phase(Phase.ENDED)

    def _require_admin(self, operation: str, caller: str) -> None:
        if caller != self._admin:
            raise self._reject(
                operation, Unauthorized(f"{operation} is admin only, caller {caller!r}")
            )

    def _require_phase(self, operation: str, *allowed: Phase) -> None:
        if self._phase not in allowed:
            names = " or ".join(p.name for p in allowed)
            raise self._reject(
                operation,
                PhaseError(f"{operation} requires phase {names}, current phase is {self._phase.name}"),
            )

    def _require_variant(self, operation: str, variant: Variant) -> None:
        if self.variant is not variant:
            raise self._reject(
                operation,
                PhaseError(f"{operation} is not available in a {self.variant.value} election"),
            )

    def _require_open(self, operation: str) -> None:
        if self.variant is Variant.OPEN:
            self._require_phase(operation, Phase.VOTING)
        else:
            self._require_phase(operation, Phase.REGISTRATION)

    def _check_option(self, operation: str, option: int) -> None:
        try:
            self._tally.require_option(option)
        except InvalidOption as e:
            raise self._reject(operation, e) from None

    def _check_proof(
        self, operation: str, key: Any, signals: list[int], proof: ContractProof
    ) -> None:
        if not self._bridge.verify(key, signals, self._bridge.decode_from_verifier(proof)):
            raise self._reject(
                operation, ProofVerificationFailed(f"{operation}: proof does not verify")
            )

    def _require_registered(self, operation: str, commitment: int) -> None:
        if commitment not in self._registered:
            raise self._reject(
                operation, VoterNotRegistered(f"commitment {commitment} is not registered")
            )

    def _require_unused(self, operation: str, nullifier: int) -> None:
        if nullifier in self._cast:
            raise self._reject(
                operation, NullifierAlreadyUsed(f"nullifier {nullifier} was already used")
            )

    @staticmethod
    def _require_contract_proof(proof: Any) -> ContractProof:
        if not isinstance(proof, ContractProof):
            raise TypeError(
                f"submit proofs in the on-chain encoding (ContractProof), got {type(proof).__name__}"
            )
        return proof

    # admin operations

    def change_state(self, caller: str, new_phase: Phase | int) -> Phase:
        """
        Advance the election to a later phase.

        Raises:
            Unauthorized: If `caller` is not the administrator.
            InvalidTransition: If `new_phase` is not strictly later than the
                current phase, is not a phase at all, or the election is an
                open one (those advance by deadline).
        """
        operation = "change_state"
        self._require_admin(operation, caller)
        if self.variant is Variant.OPEN:
            raise self._reject(
                operation, InvalidTransition("open elections end at their deadline")
            )
        try:
            target = Phase(new_phase)
        except ValueError:
            raise self._reject(
                operation, InvalidTransition(f"{new_phase!r} is not a phase")
            ) from None
        if target <= self._phase:
            raise self._reject(
                operation,
                InvalidTransition(f"cannot move from {self._phase.name} to {target.name}"),
            )
        self._set_phase(target)
        return self._phase

    def register_voter(self, caller: str, commitment: int) -> bool:
        """
        Add a commitment to the registry.

        Registering a commitment twice is not an error.

        Returns:
            bool: True if the commitment was new.

        Raises:
            Unauthorized: If `caller` is not the administrator.
            PhaseError: Outside Registration (open variant: after the deadline).
            ValueError: If `commitment` is not a field element.
        """
        return self.batch_register_voters(caller, [commitment], "register_voter") == 1

    def batch_register_voters(
        self, caller: str, commitments: Iterable[int], operation: str = "batch_register_voters"
    ) -> int:
        """
        Add many commitments at once. Either all are accepted or none.

        Returns:
            int: How many commitments were new.
        """
        self._refresh()
        self._require_admin(operation, caller)
        self._require_open(operation)
        batch = [require_field_element(c, "commitment") for c in commitments]

        new = [c for c in dict.fromkeys(batch) if c not in self._registered]
        self._registered.update(new)
        for commitment in new:
            self._emit(VOTER_REGISTERED, commitment=commitment)
        logger.info("%s: %d new of %d", operation, len(new), len(batch))
        return len(new)

    def extend_voting(self, caller: str, seconds: int) -> float:
        """
        Push back the deadline of an open election.

        Returns:
            float: The new deadline.

        Raises:
            PhaseError: In a commit-reveal election, or once voting has ended.
            ValueError: If `seconds` is not a positive int.
        """
        operation = "extend_voting"
        self._refresh()
        self._require_variant(operation, Variant.OPEN)
        self._require_admin(operation, caller)
        self._require_phase(operation, Phase.VOTING)
        if not isinstance(seconds, int) or isinstance(seconds, bool) or seconds <= 0:
            raise ValueError(f"seconds must be a positive int, got {seconds!r}")

        self._voting_end_time += seconds
        self._emit(VOTING_EXTENDED, seconds=seconds, voting_end_time=self._voting_end_time)
        logger.info("voting extended by %ds", seconds)
        return self._voting_end_time

    def publish_results(self, caller: str) -> dict[int, int]:
        """
        Mark the tally as final and public. Repeat calls are no-ops.

        Open elections only expose `get_results` after this; commit-reveal
        elections expose it as soon as they reach Ended.
        """
        operation = "publish_results"
        self._refresh()
        self._require_admin(operation, caller)
        self._require_phase(operation, Phase.ENDED)
        if not self._results_published:
            self._results_published = True
            self._emit(RESULTS_PUBLISHED, results=self._tally.snapshot())
            logger.info("results published: %s", self._tally.snapshot())
        return self._tally.snapshot()

    # voter operations

    def cast_vote(
        self,
        proof: ContractProof,
        commitment: int,
        nullifier: int,
        vote_option_hash: int,
    ) -> None:
        """
        Cast a hidden vote.

        Checks, in order: phase is Voting, commitment is registered, nullifier
        is unused, and the proof verifies over
        [commitment, nullifier, vote_option_hash]. On success the nullifier is
        consumed and the option hash is stored for the reveal.

        Raises:
            PhaseError, VoterNotRegistered, NullifierAlreadyUsed,
            ProofVerificationFailed
        """
        operation = "cast_vote"
        proof = self._require_contract_proof(proof)
        for name, value in (
            ("commitment", commitment),
            ("nullifier", nullifier),
            ("vote_option_hash", vote_option_hash),
        ):
            require_field_element(value, name)

        self._require_variant(operation, Variant.COMMIT_REVEAL)
        self._require_phase(operation, Phase.VOTING)
        self._require_registered(operation, commitment)
        self._require_unused(operation, nullifier)
        self._check_proof(
            operation, self._vote_key, [commitment, nullifier, vote_option_hash], proof
        )

        self._cast[nullifier] = vote_option_hash
        self._emit(VOTE_CAST, nullifier=nullifier, vote_option_hash=vote_option_hash)
        logger.info("vote cast, %d so far", len(self._cast))

    def cast_open_vote(
        self,
        proof: ContractProof,
        commitment: int,
        nullifier: int,
        option: int,
    ) -> None:
        """
        Cast a vote whose option is public, in an open election.

        Checks, in order: voting is still open, commitment is registered,
        option is in range, nullifier is unused, and the proof verifies over
        [commitment, option, nullifier]. On success the vote is counted
        immediately.

        Raises:
            PhaseError, VoterNotRegistered, InvalidOption,
            NullifierAlreadyUsed, ProofVerificationFailed
        """
        operation = "cast_open_vote"
        proof = self._require_contract_proof(proof)
        require_field_element(commitment, "commitment")
        require_field_element(nullifier, "nullifier")

        self._refresh()
        self._require_variant(operation, Variant.OPEN)
        self._require_phase(operation, Phase.VOTING)
        self._require_registered(operation, commitment)
        self._check_option(operation, option)
        self._require_unused(operation, nullifier)
        self._check_proof(operation, self._vote_key, [commitment, option, nullifier], proof)

        self._cast[nullifier] = None
        self._revealed.add(nullifier)
        self._tally.increment(option)
        self._emit(VOTE_CAST, nullifier=nullifier, option=option)
        logger.info("open vote cast, %d so far", len(self._cast))

    def reveal_vote_with_proof(
        self, proof: ContractProof, nullifier: int, option: int
    ) -> None:
        """
        Open a hidden vote and count it.

        Checks, in order: phase is Revealing, the nullifier was cast, option
        is in range, the proof verifies over
        [nullifier, stored vote_option_hash, option], and the nullifier was
        not revealed before.

        Raises:
            PhaseError, UnknownNullifier, InvalidOption,
            ProofVerificationFailed, AlreadyRevealed
        """
        operation = "reveal_vote_with_proof"
        proof = self._require_contract_proof(proof)
        require_field_element(nullifier, "nullifier")

        self._require_variant(operation, Variant.COMMIT_REVEAL)
        self._require_phase(operation, Phase.REVEALING)
        if nullifier not in self._cast:
            raise self._reject(
                operation, UnknownNullifier(f"no vote was cast with nullifier {nullifier}")
            )
        self._check_option(operation, option)
        stored_hash = self._cast[nullifier]
        self._check_proof(operation, self._reveal_key, [nullifier, stored_hash, option], proof)
        if nullifier in self._revealed:
            raise self._reject(
                operation, AlreadyRevealed(f"nullifier {nullifier} was already revealed")
            )

        self._tally.increment(option)
        self._revealed.add(nullifier)
        self._emit(VOTE_REVEALED, nullifier=nullifier, option=option)
        logger.info("vote revealed, %d of %d", len(self._revealed), len(self._cast))

    # reads

    @property
    def admin(self) -> str:
        return self._admin

    @property
    def options_count(self) -> int:
        return self._tally.options_count

    @property
    def phase(self) -> Phase:
        self._refresh()
        return self._phase

    def get_phase(self) -> Phase:
        return self.phase

    @property
    def voting_end_time(self) -> float | None:
        return self._voting_end_time

    @property
    def results_published(self) -> bool:
        return self._results_published

    @property
    def cast_count(self) -> int:
        return len(self._cast)

    @property
    def revealed_count(self) -> int:
        return len(self._revealed)

    @property
    def registered_count(self) -> int:
        return len(self._registered)

    def is_registered(self, commitment: int) -> bool:
        return commitment in self._registered

    def is_nullifier_used(self, nullifier: int) -> bool:
        return nullifier in self._cast

    def is_revealed(self, nullifier: int) -> bool:
        return nullifier in self._revealed

    def vote_option_hash_of(self, nullifier: int) -> int | None:
        return self._cast.get(nullifier)

    def get_results(self) -> dict[int, int]:
        """
        Per-option counts, keyed 1..options_count.

        Raises:
            PhaseError: Before Ended, or in an open election whose results
                have not been published yet.
        """
        operation = "get_results"
        self._refresh()
        self._require_phase(operation, Phase.ENDED)
        if self.variant is Variant.OPEN and not self._results_published:
            raise self._reject(operation, PhaseError("results have not been published"))
        return self._tally.snapshot()
