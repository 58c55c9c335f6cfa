import json

import pytest

R1 = "SSC_2025_100001"
R2 = "SSC_2025_100002"


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def test_publish_and_verify(runner, enter_marks, ledger):
    enter_marks("100001", {"Mathematics": 85})

    result = runner.invoke(args=["results", "publish", R1, "--actor", "controller"])
    assert result.exit_code == 0
    assert "succeeded=1 skipped=0 failed=0 pending=0" in result.output
    assert ledger.get_result(R1).published_by == "controller"

    result = runner.invoke(args=["results", "verify", R1, "--strict"])
    assert result.exit_code == 0
    assert f"{R1}: verified" in result.output


def test_publish_failure_sets_exit_code(runner, enter_marks):
    enter_marks("100001", {"Mathematics": 85})

    result = runner.invoke(args=["results", "publish", R1, R2])

    assert result.exit_code == 1
    assert f"failed {R2}: not found" in result.output


def test_unpublish(runner, enter_marks, ledger):
    enter_marks("100001", {"Mathematics": 85})
    ledger.publish([R1], actor="controller")

    result = runner.invoke(args=["results", "unpublish", R1])

    assert result.exit_code == 0
    assert ledger.get_result(R1).published is False


def test_verify_mismatch_exit_code(runner, enter_marks, store):
    result = enter_marks("100001", {"Mathematics": 85})
    store.blobs.pop(result.fingerprint_id)

    result = runner.invoke(args=["results", "verify", R1])

    assert result.exit_code == 1
    assert "content missing" in result.output


def test_recalculate_and_history(runner, enter_marks):
    enter_marks("100001", {"Mathematics": 85})

    result = runner.invoke(args=["results", "recalculate", "100001", "--actor", "ops"])
    assert result.exit_code == 0

    result = runner.invoke(args=["results", "history", R1])
    lines = result.output.strip().splitlines()
    assert len(lines) == 3
    assert "hash_update" in lines[0]
    assert "recalculation" in lines[1]
    assert "initial_hash" in lines[2]
    assert "ops" in lines[0]


def test_refresh_hashes(runner, enter_marks):
    enter_marks("100001", {"Mathematics": 85})
    enter_marks("100002", {"Mathematics": 45})

    result = runner.invoke(args=["results", "refresh-hashes", "SSC", "2025"])

    assert result.exit_code == 0
    assert "succeeded=2" in result.output


def test_refresh_hash_unknown_result(runner):
    result = runner.invoke(args=["results", "refresh-hash", "SSC_2025_404"])

    assert result.exit_code != 0
    assert "not found" in result.output


def test_seed_subjects_is_idempotent(runner):
    result = runner.invoke(args=["results", "seed-subjects"])

    assert result.exit_code == 0
    assert "(0 added)" in result.output


def test_history_as_json(runner, enter_marks):
    result = enter_marks("100001", {"Mathematics": 85})

    output = runner.invoke(args=["results", "history", R1, "--json"]).output

    (entry,) = [json.loads(line) for line in output.strip().splitlines()]
    assert entry["modification_type"] == "initial_hash"
    assert entry["new_fingerprint_id"] == result.fingerprint_id
    assert entry["new_data"]["status"] == "Pass"
