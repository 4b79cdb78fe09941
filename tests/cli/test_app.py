"""Tests for the CLI app."""

import json
import re
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from legacyvault.cli.app import app, main

runner = CliRunner()

DAY_MS = 86_400_000


@pytest.fixture
def config_path(tmp_path):
    """Config pointing the ledger and blob store into tmp_path."""
    path = tmp_path / "legacyvault.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(
            {
                "ledger": {"db_path": str(tmp_path / "ledger.db")},
                "blobs": {"backend": "file", "path": str(tmp_path / "blobs")},
            },
            f,
        )
    return str(path)


@pytest.fixture
def keypair(tmp_path):
    path = tmp_path / "heir.json"
    result = runner.invoke(app, ["keygen", "-o", str(path)])
    assert result.exit_code == 0
    return json.loads(path.read_text())


@pytest.fixture
def bundle(tmp_path, config_path, keypair):
    path = tmp_path / "bundle.json"
    result = runner.invoke(
        app,
        [
            "seal",
            "-k",
            keypair["public_key"],
            "--secret",
            "the key is under the mat",
            "-o",
            str(path),
            "-c",
            config_path,
        ],
    )
    assert result.exit_code == 0, result.output
    return path


@pytest.fixture
def vault_id(bundle, config_path):
    result = runner.invoke(
        app,
        [
            "vault",
            "create",
            str(bundle),
            "--as",
            "0xowner",
            "-b",
            "0xheir",
            "-d",
            str(DAY_MS),
            "--deposit",
            "100",
            "--now",
            "1000",
            "-c",
            config_path,
        ],
    )
    assert result.exit_code == 0, result.output
    return re.search(r"Created vault ([0-9a-f]{32})", result.output).group(1)


def vault(config_path, *args):
    return runner.invoke(app, ["vault", *args, "-c", config_path])


def test_version_command():
    """Test 'version' prints the version string."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "legacyvault version" in result.output


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert result.exit_code in (0, 2)
    assert "Usage" in result.output


def test_main_keyboard_interrupt():
    """Test main() handles KeyboardInterrupt with exit code 130."""
    with (
        patch("legacyvault.cli.app.app", side_effect=KeyboardInterrupt),
        patch("legacyvault.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(130)


def test_main_exception():
    """Test main() handles unexpected exceptions with exit code 1."""
    with (
        patch("legacyvault.cli.app.app", side_effect=RuntimeError("test error")),
        patch("legacyvault.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(1)


def test_heartbeat_delegates():
    """Test 'vault heartbeat' delegates to heartbeat_command."""
    with patch("legacyvault.cli.vault_cmd.heartbeat_command") as mock_cmd:
        result = runner.invoke(app, ["vault", "heartbeat", "abc", "--as", "0xowner"])
        mock_cmd.assert_called_once_with(
            "abc", "0xowner", now=None, config_path=None, verbose=False
        )
        assert result.exit_code == 0


def test_keygen_prints_keypair():
    result = runner.invoke(app, ["keygen"])
    assert result.exit_code == 0
    keypair = json.loads(result.output)
    assert set(keypair) == {"public_key", "secret_key"}


class TestSeal:
    def test_bundle_contents(self, bundle):
        published = json.loads(bundle.read_text())
        assert len(published["share_records"]) == 3
        assert published["heir_share"].startswith("lvs1:1:3:5:")

    def test_requires_exactly_one_secret_source(self, config_path, keypair):
        result = runner.invoke(app, ["seal", "-k", keypair["public_key"], "-c", config_path])
        assert result.exit_code == 1
        assert "exactly one" in result.output

    def test_rejects_bad_key(self, config_path):
        result = runner.invoke(app, ["seal", "-k", "not-a-key", "-s", "x", "-c", config_path])
        assert result.exit_code == 1


class TestVaultCommands:
    def test_create_rejects_bad_duration(self, bundle, config_path):
        result = vault(
            config_path, "create", str(bundle), "--as", "0xowner", "-b", "0xheir", "-d", "0"
        )
        assert result.exit_code == 1
        assert "invalid_unlock_duration" in result.output

    def test_create_rejects_unreadable_bundle(self, tmp_path, config_path):
        result = vault(
            config_path,
            "create",
            str(tmp_path / "missing.json"),
            "--as",
            "0xowner",
            "-b",
            "0xheir",
            "-d",
            "10",
        )
        assert result.exit_code == 1
        assert "Cannot read bundle" in result.output

    def test_heartbeat_by_stranger_rejected(self, vault_id, config_path):
        result = vault(config_path, "heartbeat", vault_id, "--as", "0xstranger", "--now", "2000")
        assert result.exit_code == 1
        assert "not_owner" in result.output

    def test_owner_operations(self, vault_id, config_path):
        assert vault(config_path, "heartbeat", vault_id, "--as", "0xowner").exit_code == 0
        assert vault(config_path, "fund", vault_id, "50", "--as", "0xowner").exit_code == 0
        result = vault(config_path, "set-duration", vault_id, "5000", "--as", "0xowner")
        assert result.exit_code == 0
        result = vault(config_path, "set-beneficiary", vault_id, "0xnew", "--as", "0xowner")
        assert result.exit_code == 0
        assert "0xnew" in result.output

    def test_show_and_list(self, vault_id, config_path):
        result = vault(config_path, "show", vault_id, "--now", "2000")
        assert result.exit_code == 0
        assert "locked" in result.output

        result = vault(config_path, "show", vault_id, "--now", str(DAY_MS + 2000))
        assert "claimable" in result.output

        result = vault(config_path, "list", "--owner", "0xowner")
        assert "Vaults (1)" in result.output

        result = vault(config_path, "list", "--owner", "0xnobody")
        assert "No vaults found" in result.output

    def test_show_missing(self, config_path):
        result = vault(config_path, "show", "0" * 32)
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_cancel(self, vault_id, config_path):
        result = vault(config_path, "cancel", vault_id, "--as", "0xowner", "--now", "2000")
        assert result.exit_code == 0
        assert "100 returned" in result.output
        assert vault(config_path, "show", vault_id).exit_code == 1

    def test_events_json(self, vault_id, config_path):
        vault(config_path, "heartbeat", vault_id, "--as", "0xowner", "--now", "5000")
        result = vault(config_path, "events", vault_id, "--format", "json")
        assert result.exit_code == 0
        assert '"kind": "created"' in result.output
        assert '"kind": "heartbeat"' in result.output


class TestClaimAndRecover:
    def test_claim_before_unlock_rejected(self, vault_id, config_path):
        result = vault(config_path, "claim", vault_id, "--as", "0xheir", "--now", "5000")
        assert result.exit_code == 1
        assert "unlock_time_not_reached" in result.output

    def test_claim_and_recover(self, vault_id, bundle, config_path, keypair):
        now = str(1000 + DAY_MS + 1)
        result = vault(config_path, "claim", vault_id, "--as", "0xheir", "--now", now)
        assert result.exit_code == 0, result.output
        assert "Claimed 100" in result.output

        heir_share = json.loads(bundle.read_text())["heir_share"]
        result = runner.invoke(
            app,
            [
                "recover",
                vault_id,
                "--heir-share",
                heir_share,
                "-k",
                keypair["secret_key"],
                "-c",
                config_path,
            ],
        )
        assert result.exit_code == 0, result.output
        assert "the key is under the mat" in result.output

    def test_recover_unclaimed_vault(self, vault_id, bundle, config_path, keypair):
        heir_share = json.loads(bundle.read_text())["heir_share"]
        result = runner.invoke(
            app,
            [
                "recover",
                vault_id,
                "--heir-share",
                heir_share,
                "-k",
                keypair["secret_key"],
                "-c",
                config_path,
            ],
        )
        assert result.exit_code == 1
        assert "has not been claimed" in result.output


def test_invalid_config_exits(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("sharing: [unclosed")
    result = runner.invoke(app, ["vault", "list", "-c", str(path)])
    assert result.exit_code == 1


def test_custom_prime_seal_and_recover(tmp_path, keypair):
    """A prime set in config is used by both seal and recover."""
    config_path = tmp_path / "prime.yaml"
    with open(config_path, "w") as f:
        yaml.safe_dump(
            {
                "sharing": {"prime": 2**521 - 1},
                "ledger": {"db_path": str(tmp_path / "prime.db")},
                "blobs": {"backend": "file", "path": str(tmp_path / "prime-blobs")},
            },
            f,
        )
    config = str(config_path)
    bundle = tmp_path / "prime-bundle.json"

    result = runner.invoke(
        app,
        [
            "seal",
            "-k",
            keypair["public_key"],
            "-s",
            "prime field",
            "-o",
            str(bundle),
            "-c",
            config,
        ],
    )
    assert result.exit_code == 0, result.output
    result = vault(
        config, "create", str(bundle), "--as", "0xowner", "-b", "0xheir", "-d", "10", "--now", "0"
    )
    assert result.exit_code == 0, result.output
    vault_id = re.search(r"Created vault ([0-9a-f]{32})", result.output).group(1)
    assert vault(config, "claim", vault_id, "--as", "0xheir", "--now", "11").exit_code == 0

    heir_share = json.loads(bundle.read_text())["heir_share"]
    result = runner.invoke(
        app,
        [
            "recover",
            vault_id,
            "--heir-share",
            heir_share,
            "-k",
            keypair["secret_key"],
            "-c",
            config,
        ],
    )
    assert result.exit_code == 0, result.output
    assert "prime field" in result.output
