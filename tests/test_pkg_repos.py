"""
test_pkg_repos: repository configuration, bootstrap retries, channel fallback.

Invariants:
  - The fallback channel is tried exactly once, and only after the primary fails.
  - Total update attempts never exceed the FETCH_RETRY budget.
  - Exhausting retries is reported, not raised.
"""
from dataclasses import replace

import pytest
from conftest import FakeRunner

from static_jre import pkg_repos
from static_jre.pkg_repos import (
    bootstrap_pkg,
    check_pkg_install,
    fix_repositories,
    render_repo_config,
    update_repositories,
    write_repo_config,
)


def channel_recorder(config, seen):
    """Action that records which channel FreeBSD.conf points at."""

    def action(cmd, cwd):
        text = (config.pkg_repos_dir / "FreeBSD.conf").read_text()
        seen.append("latest" if "/latest" in text else "quarterly")

    return action


class TestRepoConfig:
    def test_render(self):
        text = render_repo_config("quarterly")
        assert 'url: "pkg+http://pkg.FreeBSD.org/${ABI}/quarterly"' in text
        assert 'mirror_type: "srv"' in text
        assert 'fingerprints: "/usr/share/keys/pkg"' in text
        assert "enabled: yes" in text

    def test_write_creates_directory(self, tmp_path):
        conf = write_repo_config(tmp_path / "repos", "latest")
        assert conf.name == "FreeBSD.conf"
        assert "/latest" in conf.read_text()

    def test_original_backed_up_once(self, tmp_path):
        repos = tmp_path / "repos"
        repos.mkdir()
        (repos / "FreeBSD.conf").write_text("original\n")

        write_repo_config(repos, "quarterly")
        write_repo_config(repos, "latest")

        assert (repos / "FreeBSD.conf.backup").read_text() == "original\n"


class TestUpdateRepositories:
    """Channel fallback and the attempt budget."""

    def test_primary_succeeds_first_time(self, config, runner):
        assert update_repositories(config, runner) is True
        assert len(runner.commands("pkg", "update")) == 1
        assert "/quarterly" in (config.pkg_repos_dir / "FreeBSD.conf").read_text()

    def test_fallback_tried_exactly_once(self, config, runner):
        seen = []
        action = channel_recorder(config, seen)
        runner.on("pkg", "update", returncode=1, action=action, times=2)
        runner.on("pkg", "update", returncode=0, action=action)

        assert update_repositories(config, runner) is True
        assert seen == ["quarterly", "quarterly", "latest"]

    def test_attempts_never_exceed_budget(self, config, runner):
        seen = []
        runner.on("pkg", "update", returncode=1, action=channel_recorder(config, seen))

        assert update_repositories(config, runner) is False
        assert len(seen) == 3
        assert seen.count("latest") == 1

    def test_budget_of_one_skips_fallback(self, config, runner):
        config = replace(config, fetch_retry=1)
        seen = []
        runner.on("pkg", "update", returncode=1, action=channel_recorder(config, seen))

        assert update_repositories(config, runner) is False
        assert seen == ["quarterly"]

    def test_backoff_between_attempts(self, config, runner, monkeypatch):
        sleeps = []
        monkeypatch.setattr(pkg_repos.time, "sleep", sleeps.append)
        config = replace(config, retry_backoff=10)
        runner.on("pkg", "update", returncode=1)

        update_repositories(config, runner)

        assert sleeps == [10, 10]

    def test_update_uses_timeout_and_pkg_env(self, config, runner):
        update_repositories(config, runner)
        call = runner.calls[0]
        assert call.timeout == config.update_timeout
        assert call.env["FETCH_RETRY"] == "3"
        assert call.env["ASSUME_ALWAYS_YES"] == "yes"


class TestBootstrap:
    def test_retries_until_success(self, config, runner):
        runner.on("pkg", "bootstrap", returncode=1, times=2)
        runner.on("pkg", "bootstrap", returncode=0)

        assert bootstrap_pkg(config, runner) is True
        assert len(runner.commands("pkg", "bootstrap", "-f")) == 3

    def test_exhaustion_is_not_fatal(self, config, runner, capsys):
        runner.on("pkg", "bootstrap", returncode=1)

        assert bootstrap_pkg(config, runner) is False
        assert len(runner.commands("pkg", "bootstrap")) == 3
        assert "failed after 3 attempts" in capsys.readouterr().out


class TestFixRepositories:
    def test_abi_fallback_and_update(self, config, runner, capsys, monkeypatch):
        monkeypatch.setattr(pkg_repos, "host_arch", lambda: "amd64")
        runner.available.add("freebsd-version")
        runner.on("pkg", "config", "ABI", returncode=1)
        runner.on("freebsd-version", stdout="13.4-RELEASE-p1\n")

        assert fix_repositories(config, runner) is True
        out = capsys.readouterr().out
        assert "System ABI: FreeBSD:13:amd64" in out
        assert runner.commands("pkg", "bootstrap", "-f")
        assert runner.commands("pkg", "update", "-f")

    def test_bootstrap_failure_still_updates(self, config, runner):
        runner.on("pkg", "bootstrap", returncode=1)
        assert fix_repositories(config, runner) is True
        assert runner.commands("pkg", "update", "-f")


class TestPackageSmokeTest:
    def test_success_reports_commands(self, config, runner, capsys):
        runner.available.discard("git")
        assert check_pkg_install(config, runner) is True
        out = capsys.readouterr().out
        assert "✓ gmake available" in out
        assert "✗ git missing (will be installed)" in out

    def test_install_failure(self, config, runner):
        runner.on("pkg", "install", returncode=1)
        assert check_pkg_install(config, runner) is False
        assert runner.commands("pkg", "-vv")


class TestMain:
    def test_failed_smoke_test_exits_non_zero(self, tmp_path, monkeypatch):
        fake = FakeRunner()
        fake.on("pkg", "install", returncode=1)
        monkeypatch.setattr(pkg_repos, "CommandRunner", lambda: fake)
        monkeypatch.setattr(
            "sys.argv", ["pkg-fix", "--repos-dir", str(tmp_path / "repos"), "--backoff", "0"]
        )

        with pytest.raises(SystemExit) as exc:
            pkg_repos.main()
        assert exc.value.code == 1
