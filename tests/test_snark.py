# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from zkvote.errors import MissingArtifactError, ProofGenerationError
from zkvote.field import P
from zkvote.groth_convert import Proof, from_contract_proof, proof_to_snarkjs, to_contract_proof
from zkvote.snark import SnarkjsProver, circuit_artifacts, verify_proof

SIGNALS = [11, 22, 33]


@pytest.fixture(scope="module")
def valid_proof(trapdoor) -> Proof:
    return trapdoor.prove(SIGNALS)


class TestVerifyProof:
    def test_valid_proof(self, trapdoor, valid_proof):
        assert verify_proof(trapdoor.vk, SIGNALS, valid_proof)

    def test_contract_round_trip_still_verifies(self, trapdoor, valid_proof):
        decoded = from_contract_proof(to_contract_proof(valid_proof))
        assert verify_proof(trapdoor.vk, SIGNALS, decoded)

    def test_unswapped_contract_coordinates_fail(self, trapdoor, valid_proof):
        # treating the on-chain b as if it were off-chain
        contract = to_contract_proof(valid_proof)
        confused = Proof(a=contract.a, b=contract.b, c=contract.c)
        assert not verify_proof(trapdoor.vk, SIGNALS, confused)

    def test_other_signals_fail(self, trapdoor, valid_proof):
        assert not verify_proof(trapdoor.vk, [11, 22, 34], valid_proof)

    def test_wrong_signal_count(self, trapdoor, valid_proof):
        assert not verify_proof(trapdoor.vk, SIGNALS[:2], valid_proof)

    def test_unreduced_signal(self, trapdoor, valid_proof):
        assert not verify_proof(trapdoor.vk, [11 + P, 22, 33], valid_proof)

    def test_point_off_curve(self, trapdoor, valid_proof):
        bad = Proof(a=(1, 3), b=valid_proof.b, c=valid_proof.c)
        assert not verify_proof(trapdoor.vk, SIGNALS, bad)

    def test_contract_proof_is_a_type_error(self, trapdoor, valid_proof):
        with pytest.raises(TypeError):
            verify_proof(trapdoor.vk, SIGNALS, to_contract_proof(valid_proof))


def test_circuit_artifact_layout(tmp_path):
    art = circuit_artifacts(tmp_path, "reveal")
    assert art.wasm == tmp_path / "reveal_js" / "reveal.wasm"
    assert art.zkey == tmp_path / "reveal_0001.zkey"
    assert art.verifying_key == tmp_path / "reveal_verification_key.json"


@pytest.fixture()
def artifacts(tmp_path) -> Path:
    (tmp_path / "vote_js").mkdir()
    (tmp_path / "vote_js" / "vote.wasm").write_bytes(b"\0asm")
    (tmp_path / "vote_0001.zkey").write_bytes(b"zkey")
    return tmp_path


class TestSnarkjsProver:
    def test_missing_artifacts(self, tmp_path):
        with pytest.raises(MissingArtifactError):
            SnarkjsProver(tmp_path).prove("vote", {})

    def test_missing_artifact_is_a_proof_generation_error(self, tmp_path):
        with pytest.raises(ProofGenerationError):
            SnarkjsProver(tmp_path).prove("vote", {})

    def test_runs_witness_then_prove(self, artifacts, valid_proof):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            if cmd[1] == "wtns":
                assert json.loads(Path(cmd[4]).read_text()) == {"pubNullifier": "5"}
            else:
                Path(cmd[5]).write_text(json.dumps(proof_to_snarkjs(valid_proof)))
                Path(cmd[6]).write_text(json.dumps([str(s) for s in SIGNALS]))
            return subprocess.CompletedProcess(cmd, 0, "", "")

        with patch("zkvote.snark.subprocess.run", side_effect=fake_run):
            proof, signals = SnarkjsProver(artifacts, snarkjs_bin="snarkjs").prove(
                "vote", {"pubNullifier": "5"}
            )

        assert proof == valid_proof
        assert signals == SIGNALS
        assert [c[1:3] for c in calls] == [["wtns", "calculate"], ["groth16", "prove"]]
        assert calls[0][3] == str(artifacts / "vote_js" / "vote.wasm")
        assert calls[1][3] == str(artifacts / "vote_0001.zkey")

    def test_unsatisfied_constraints(self, artifacts):
        error = subprocess.CalledProcessError(
            returncode=1, cmd="snarkjs", output="", stderr="Assert Failed. Error in template Vote_1"
        )
        with patch("zkvote.snark.subprocess.run", side_effect=error):
            with pytest.raises(ProofGenerationError, match="Assert Failed"):
                SnarkjsProver(artifacts).prove("vote", {})

    def test_failing_step_is_logged(self, artifacts, caplog):
        def fake_run(cmd, **kwargs):
            if cmd[1] == "groth16":
                raise subprocess.CalledProcessError(1, cmd, "", "zkey mismatch")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        with patch("zkvote.snark.subprocess.run", side_effect=fake_run):
            with pytest.raises(ProofGenerationError, match="groth16 prove failed for circuit vote"):
                SnarkjsProver(artifacts).prove("vote", {})

        [record] = [
            r for r in caplog.records if r.name == "zkvote.snark" and r.levelname == "WARNING"
        ]
        assert "groth16 prove" in record.getMessage()
        assert "vote" in record.getMessage()

    def test_snarkjs_not_installed(self, artifacts):
        with patch("zkvote.snark.subprocess.run", side_effect=FileNotFoundError("snarkjs")):
            with pytest.raises(ProofGenerationError, match="not found"):
                SnarkjsProver(artifacts, snarkjs_bin="missing-snarkjs").prove("vote", {})

    def test_unreadable_output(self, artifacts):
        def fake_run(cmd, **kwargs):
            if cmd[1] == "groth16":
                Path(cmd[5]).write_text("{not json")
                Path(cmd[6]).write_text("[]")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        with patch("zkvote.snark.subprocess.run", side_effect=fake_run):
            with pytest.raises(ProofGenerationError, match="unreadable"):
                SnarkjsProver(artifacts).prove("vote", {})


if __name__ == "__main__":
    pytest.main()
