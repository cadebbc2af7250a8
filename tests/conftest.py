"""
Shared pytest fixtures for the static JRE builder tests.

External programs (pkg, git, gmake, strip, java, ldd) are never executed:
FakeRunner records every command and answers from scripted rules, so the
suite runs on any host without network access.
"""
import os
import subprocess
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

from static_jre import config as config_mod
from static_jre import package
from static_jre.config import BuildConfig
from static_jre.errors import CommandError
from static_jre.runner import CommandRunner

DEFAULT_COMMANDS = {"which", "make", "gmake", "git", "strip", "ldd"}

FAKE_JAVA = textwrap.dedent("""\
    #!/bin/sh
    echo 'openjdk version "17.0.0-freebsd-static"' >&2
""")


@dataclass
class Call:
    cmd: list
    cwd: object
    env: object
    timeout: object


class FakeRunner(CommandRunner):
    """CommandRunner that records commands instead of executing them."""

    def __init__(self, available=None):
        super().__init__(echo=False)
        self.calls: list[Call] = []
        self.rules: dict[tuple, list] = {}
        self.available = set(DEFAULT_COMMANDS if available is None else available)

    def on(self, *prefix, returncode=0, stdout="", stderr="", action=None, times=None, override=False):
        """
        Script the response for commands starting with prefix.

        Responses queue up per prefix; the last one is reused once the
        queue is down to a single entry. override drops earlier responses.
        """
        response = (returncode, stdout, stderr, action)
        if override:
            self.rules.pop(tuple(prefix), None)
        queue = self.rules.setdefault(tuple(prefix), [])
        queue.extend([response] * (times or 1))
        return self

    def _match(self, cmd):
        best = None
        for prefix in self.rules:
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        return best

    def run(self, cmd, cwd=None, env=None, timeout=None, check=True, capture=False):
        self.calls.append(Call(list(cmd), cwd, env, timeout))

        returncode, stdout, stderr = 0, "", ""
        prefix = self._match(cmd)
        if prefix is not None:
            queue = self.rules[prefix]
            returncode, stdout, stderr, action = queue.pop(0) if len(queue) > 1 else queue[0]
            if action is not None:
                action(cmd, cwd)

        if check and returncode != 0:
            raise CommandError(cmd, returncode, stderr=stderr)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)

    def which(self, name):
        return f"/usr/local/bin/{name}" if name in self.available else None

    def commands(self, *prefix):
        """Recorded commands starting with prefix."""
        return [c.cmd for c in self.calls if tuple(c.cmd[: len(prefix)]) == prefix]


def make_jdk_image(jdk_dir: Path) -> Path:
    """Lay out a miniature JDK image like `gmake images` produces."""
    (jdk_dir / "bin").mkdir(parents=True)
    (jdk_dir / "lib" / "server").mkdir(parents=True)
    (jdk_dir / "include" / "freebsd").mkdir(parents=True)
    (jdk_dir / "demo" / "jfc").mkdir(parents=True)
    (jdk_dir / "conf" / "security").mkdir(parents=True)

    java = jdk_dir / "bin" / "java"
    java.write_text(FAKE_JAVA)
    java.chmod(0o755)
    for tool in ["javac", "jar", "jarsigner", "javadoc", "jshell", "jstat", "jstatd", "keytool", "jlink", "serialver"]:
        path = jdk_dir / "bin" / tool
        path.write_text("#!/bin/sh\n")
        path.chmod(0o755)

    libjvm = jdk_dir / "lib" / "server" / "libjvm.so"
    libjvm.write_bytes(b"\x7fELF" + b"\0" * 64)
    libjvm.chmod(0o755)
    (jdk_dir / "lib" / "modules").write_bytes(b"\0" * 128)
    (jdk_dir / "include" / "jni.h").write_text("/* jni */\n")
    (jdk_dir / "include" / "freebsd" / "jni_md.h").write_text("/* jni_md */\n")
    (jdk_dir / "demo" / "jfc" / "README").write_text("demo\n")
    (jdk_dir / "conf" / "security" / "java.security").write_text("security.provider.1=SUN\n")
    (jdk_dir / "release").write_text('JAVA_VERSION="17"\n')
    return jdk_dir


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def config(tmp_path):
    return BuildConfig(
        openjdk_version="17",
        build_dir=tmp_path / "openjdk-build",
        install_prefix=tmp_path / "usr" / "local",
        output_dir=tmp_path / "jre-static",
        archive_dir=tmp_path,
        pkg_repos_dir=tmp_path / "repos",
        retry_backoff=0,
    )


@pytest.fixture
def source_dir(tmp_path):
    path = tmp_path / "src" / "jdk17u"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def built_source(source_dir):
    """Source tree after a successful `gmake images`."""
    make_jdk_image(source_dir / "build" / "bsd-x86_64-server-release" / "images" / "jdk")
    return source_dir


@pytest.fixture
def jre_dir(tmp_path):
    """A JRE tree ready for packaging."""
    path = tmp_path / "jre-static"
    make_jdk_image(path)
    return path


@pytest.fixture
def root_user(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 0)


@pytest.fixture
def amd64(monkeypatch):
    """Pin the host architecture used in archive names."""
    monkeypatch.setattr(config_mod, "host_arch", lambda: "amd64")
    monkeypatch.setattr(package, "host_arch", lambda: "amd64")
