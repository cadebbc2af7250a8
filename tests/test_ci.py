"""
test_ci: the Cirrus CI task runs the pipeline in a workable order.

Invariants:
  - The package repository is usable before the Python bootstrap install.
  - The latest channel is the fallback when the quarterly update fails.
"""
from pathlib import Path

import pytest

from static_jre.pkg_repos import render_repo_config

CIRRUS_YML = Path(__file__).resolve().parent.parent / ".cirrus.yml"


@pytest.fixture(scope="module")
def install_script():
    text = CIRRUS_YML.read_text()
    start = text.index("install_script:")
    return text[start : text.index("verify_script:")]


class TestInstallScript:
    def test_repository_fixed_before_python_install(self, install_script):
        python_install = install_script.index("pkg install -y python311")

        assert install_script.index("pkg bootstrap -f") < python_install
        assert install_script.index("write_repo_conf quarterly") < python_install
        assert install_script.index("pkg update -f") < python_install

    def test_latest_fallback(self, install_script):
        quarterly = install_script.index("write_repo_conf quarterly")
        latest = install_script.index("write_repo_conf latest")
        assert quarterly < latest < install_script.index("pkg install -y python311")

    def test_shell_config_matches_pkg_fix(self, install_script):
        # Same repository entries whether written by the shell bootstrap or pkg-fix
        for line in render_repo_config("quarterly").splitlines()[1:-1]:
            key = line.strip().split(":")[0]
            assert f"{key}:" in install_script
        assert 'pkg+http://pkg.FreeBSD.org/${ABI}/%s' in install_script

    def test_entry_points_follow_python_install(self, install_script):
        python_install = install_script.index("pkg install -y python311")
        assert python_install < install_script.index("pkg-fix") < install_script.index("build-static-jre")
