# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# scalar field order of bn128 (alt_bn128 / BN254)
FIELD_ORDER = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# nullifier = H(secret, NULLIFIER_DOMAIN_TAG)
NULLIFIER_DOMAIN_TAG = 0

# circuit identifiers
VOTE_CIRCUIT = "vote"
REVEAL_CIRCUIT = "reveal"
OPEN_VOTE_CIRCUIT = "open_vote"

# circuit signal names
PRIV_VOTER_SECRET = "privVoterSecret"
PRIV_VOTE_OPTION = "privVoteOption"
PRIV_VOTE_SALT = "privVoteSalt"
PUB_VOTER_COMMITMENT = "pubVoterCommitment"
PUB_NULLIFIER = "pubNullifier"
PUB_VOTE_OPTION_HASH = "pubVoteOptionHash"
PUB_VOTE_OPTION = "pubVoteOption"

# public signal layouts, in the order the circuits emit them
VOTE_PUBLIC_LAYOUT = (PUB_VOTER_COMMITMENT, PUB_NULLIFIER, PUB_VOTE_OPTION_HASH)
REVEAL_PUBLIC_LAYOUT = (PUB_NULLIFIER, PUB_VOTE_OPTION_HASH, PUB_VOTE_OPTION)
OPEN_VOTE_PUBLIC_LAYOUT = (PUB_VOTER_COMMITMENT, PUB_VOTE_OPTION, PUB_NULLIFIER)

PUBLIC_LAYOUTS = {
    VOTE_CIRCUIT: VOTE_PUBLIC_LAYOUT,
    REVEAL_CIRCUIT: REVEAL_PUBLIC_LAYOUT,
    OPEN_VOTE_CIRCUIT: OPEN_VOTE_PUBLIC_LAYOUT,
}

# circomlib poseidon supports 1..16 inputs
POSEIDON_MAX_INPUTS = 16

# vote options are numbered from 1
FIRST_OPTION = 1
