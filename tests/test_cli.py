"""Tests for the depmigrate command line.

The package source is replaced by the scripted in-memory registry; the
real resolver, patcher and acquirer run against manifests in ``tmp_path``.

Test Coverage:
- Group options: help, version, verbosity, config loading
- ``upgrade --null-safety`` dry run and real run, prerelease targets
- Offline warning and packages served from the offline cache
- Plain ``upgrade`` locking
- Exit codes from main() for every error family
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Generator, List
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from depmigrate.cli import cli, main
from depmigrate.utils.logger import disable_logging

MANIFEST = """\
name: app
environment:
  sdk: '>=2.12.0 <3.0.0'
dependencies:
  foo: ^1.0.0
dev_dependencies:
  bar: ^1.0.0
"""

REGISTRY = {
    "foo": {"1.0.0": "2.7", "2.0.0": "2.12", "2.3.1": "2.12"},
    "bar": {"1.0.0": "2.12"},
}


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run every test from an empty directory with logging reset afterwards."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("DEPMIGRATE_CONFIG", raising=False)
    monkeypatch.delenv("DEPMIGRATE_HOSTED_URL", raising=False)
    yield
    disable_logging()


@pytest.fixture
def manifest_path(write_manifest: Callable[[str], Path]) -> Path:
    """Sample manifest on disk.

    Returns:
        Path to ``pubspec.yaml``.
    """
    return write_manifest(MANIFEST)


@pytest.fixture
def use_registry(scripted_source):
    """Serve package metadata from an in-memory registry.

    Returns:
        Callable installing a ScriptedSource built from its arguments and
        returning it.
    """
    patchers: List = []

    def _install(registry=REGISTRY, **kwargs):
        source = scripted_source(registry, **kwargs)
        patcher = patch(
            "depmigrate.commands.upgrade.SourceRegistry",
            lambda *args, **kw: source,
        )
        patcher.start()
        patchers.append(patcher)
        return source

    yield _install
    for patcher in patchers:
        patcher.stop()


def _run_main(monkeypatch: pytest.MonkeyPatch, *args: str) -> int:
    monkeypatch.setattr(sys, "argv", ["depmigrate", *args])
    return main()


# ============================================================================
# Group
# ============================================================================


@pytest.mark.unit
class TestGroup:
    """Tests for the top-level command group."""

    def test_help_lists_upgrade(self) -> None:
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "upgrade" in result.output

    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert result.output.startswith("depmigrate ")

    def test_upgrade_help(self) -> None:
        result = CliRunner().invoke(cli, ["upgrade", "--help"])

        assert "--null-safety" in result.output
        assert "--nullsafety" not in result.output

    def test_config_features_available(
        self, tmp_path: Path, manifest_path: Path, use_registry
    ) -> None:
        """A feature declared in depmigrate.toml can be requested."""
        (tmp_path / "depmigrate.toml").write_text(
            '[depmigrate.features]\nlegacy = "2.7"\n', encoding="utf-8"
        )
        use_registry()

        result = CliRunner().invoke(cli, ["upgrade", "--feature", "legacy", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Would change" in result.output


# ============================================================================
# upgrade
# ============================================================================


@pytest.mark.unit
class TestUpgradeFeature:
    """Tests for ``upgrade --feature`` / ``--null-safety``."""

    def test_dry_run(self, manifest_path: Path, use_registry) -> None:
        use_registry()

        result = CliRunner().invoke(cli, ["upgrade", "--null-safety", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Would change 1 constraint in pubspec.yaml:" in result.output
        assert "  foo: ^1.0.0 -> ^2.3.1" in result.output
        assert manifest_path.read_text(encoding="utf-8") == MANIFEST
        assert not (manifest_path.parent / "pubspec.lock").exists()

    def test_writes_manifest_and_lock(self, manifest_path: Path, use_registry) -> None:
        use_registry()

        result = CliRunner().invoke(cli, ["upgrade", "--null-safety"])

        assert result.exit_code == 0, result.output
        assert "Changed 1 constraint in pubspec.yaml:" in result.output
        assert manifest_path.read_text(encoding="utf-8") == MANIFEST.replace(
            "foo: ^1.0.0", "foo: ^2.3.1"
        )
        assert (manifest_path.parent / "pubspec.lock").is_file()

    def test_hidden_alias_and_named_dependency(
        self, manifest_path: Path, use_registry
    ) -> None:
        use_registry()

        result = CliRunner().invoke(cli, ["upgrade", "--nullsafety", "bar", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "No changes would be made to pubspec.yaml!" in result.output

    def test_unmigrated_warning(self, manifest_path: Path, use_registry) -> None:
        use_registry(local={})
        manifest_path.write_text(
            MANIFEST + "  local:\n    path: ../local\n", encoding="utf-8"
        )

        result = CliRunner().invoke(cli, ["upgrade", "--null-safety", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "not migrated to null-safety yet:" in result.output
        assert " - local" in result.output

    def test_offline_warning(self, manifest_path: Path, use_registry) -> None:
        use_registry()

        result = CliRunner().invoke(
            cli, ["upgrade", "--null-safety", "--dry-run", "--offline"]
        )

        assert "Upgrading when offline may not update you" in result.output

    def test_offline_lists_cached_packages(self, manifest_path: Path, use_registry) -> None:
        use_registry(cached=["foo", "bar"])

        result = CliRunner().invoke(
            cli, ["-v", "upgrade", "--null-safety", "--dry-run", "--offline"]
        )

        assert result.exit_code == 0, result.output
        assert (
            "Read metadata for 2 package(s) from the offline cache: bar, foo"
            in result.output
        )

    def test_cached_packages_quiet_by_default(
        self, manifest_path: Path, use_registry
    ) -> None:
        use_registry(cached=["foo"])

        result = CliRunner().invoke(
            cli, ["upgrade", "--null-safety", "--dry-run", "--offline"]
        )

        assert "from the offline cache" not in result.output

    def test_prerelease_upgrade(
        self, manifest_path: Path, use_registry, prerelease_registry
    ) -> None:
        use_registry(prerelease_registry)

        result = CliRunner().invoke(cli, ["upgrade", "--null-safety"])

        assert result.exit_code == 0, result.output
        assert "  foo: ^1.0.0 -> ^2.0.0-dev.1" in result.output
        assert "  foo: ^2.0.0-dev.1\n" in manifest_path.read_text(encoding="utf-8")

    def test_explicit_file(self, tmp_path: Path, use_registry) -> None:
        other = tmp_path / "sub" / "pubspec.yaml"
        other.parent.mkdir()
        other.write_text(MANIFEST, encoding="utf-8")
        use_registry()

        result = CliRunner().invoke(
            cli, ["upgrade", "-f", str(other), "--null-safety", "-n"]
        )

        assert result.exit_code == 0, result.output
        assert "Would change 1 constraint" in result.output


@pytest.mark.unit
class TestUpgradePlain:
    """Tests for ``upgrade`` without a feature."""

    def test_dry_run_resolves_only(self, manifest_path: Path, use_registry) -> None:
        use_registry()

        result = CliRunner().invoke(cli, ["upgrade", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Would lock 2 package(s)" in result.output
        assert not (manifest_path.parent / "pubspec.lock").exists()

    def test_locks(self, manifest_path: Path, use_registry) -> None:
        use_registry()

        result = CliRunner().invoke(cli, ["upgrade"])

        assert result.exit_code == 0, result.output
        assert "Locked 2 package(s)" in result.output
        lock = (manifest_path.parent / "pubspec.lock").read_text(encoding="utf-8")
        assert "version: 1.0.0" in lock
        assert manifest_path.read_text(encoding="utf-8") == MANIFEST


# ============================================================================
# Exit codes
# ============================================================================


@pytest.mark.unit
class TestExitCodes:
    """Tests for main() exit code mapping."""

    def test_success(self, monkeypatch, manifest_path: Path, use_registry) -> None:
        use_registry()

        assert _run_main(monkeypatch, "upgrade", "--null-safety", "-n") == 0

    def test_named_dependency_without_feature(
        self, monkeypatch, capsys, manifest_path: Path, use_registry
    ) -> None:
        use_registry()

        assert _run_main(monkeypatch, "upgrade", "foo") == 64
        assert "requires --feature" in capsys.readouterr().out

    def test_conflicting_feature_flags(
        self, monkeypatch, manifest_path: Path, use_registry
    ) -> None:
        use_registry()

        code = _run_main(monkeypatch, "upgrade", "--null-safety", "--feature", "records")

        assert code == 64

    def test_not_a_direct_dependency(
        self, monkeypatch, capsys, manifest_path: Path, use_registry
    ) -> None:
        use_registry()

        assert _run_main(monkeypatch, "upgrade", "--null-safety", "nope") == 64
        out = capsys.readouterr().out
        assert "following packages are not:" in out
        assert " - nope" in out

    def test_unknown_feature(self, monkeypatch, manifest_path: Path, use_registry) -> None:
        use_registry()

        assert _run_main(monkeypatch, "upgrade", "--feature", "records") == 64

    def test_incapable_dependency(
        self, monkeypatch, capsys, manifest_path: Path, use_registry
    ) -> None:
        use_registry({"foo": {"1.0.0": "2.7"}, "bar": {"1.0.0": "2.12"}})

        assert _run_main(monkeypatch, "upgrade", "--null-safety") == 65
        out = capsys.readouterr().out
        assert "null-safety compatible versions do not exist for:" in out
        assert "depmigrate upgrade --feature null-safety bar" in out
        assert manifest_path.read_text(encoding="utf-8") == MANIFEST

    def test_registry_failure(
        self, monkeypatch, manifest_path: Path, use_registry
    ) -> None:
        use_registry(failing=["foo"])

        assert _run_main(monkeypatch, "upgrade", "--null-safety") == 69

    def test_missing_manifest_is_click_error(self, monkeypatch) -> None:
        assert _run_main(monkeypatch, "upgrade", "--null-safety") == 2

    def test_invalid_manifest(self, monkeypatch, write_manifest, use_registry) -> None:
        write_manifest("dependencies:\n  foo: ^1.0.0\n")
        use_registry()

        assert _run_main(monkeypatch, "upgrade", "--null-safety") == 65

    def test_bad_config(self, monkeypatch, tmp_path: Path, manifest_path: Path) -> None:
        (tmp_path / "depmigrate.toml").write_text("[depmigrate]\nbogus = 1\n", encoding="utf-8")

        assert _run_main(monkeypatch, "upgrade") == 64

    def test_keyboard_interrupt(self, monkeypatch) -> None:
        with patch("depmigrate.cli.cli", side_effect=KeyboardInterrupt):
            assert _run_main(monkeypatch, "upgrade") == 130

    def test_unexpected_error(self, monkeypatch, capsys) -> None:
        with patch("depmigrate.cli.cli", side_effect=RuntimeError("boom")):
            assert _run_main(monkeypatch, "upgrade") == 1

        assert "Unexpected error: boom" in capsys.readouterr().out
