import io

import pytest

from labconf.core.block_editor import Disposition, SectionBlockEditor
from labconf.core.confirmers import AlwaysAcceptConfirmer
from labconf.modules.ssh_server import SSHD_CONFIG, SSHServerModule, sshd_block, validate_port


def _editor():
    return SectionBlockEditor(AlwaysAcceptConfirmer(), output=io.StringIO(), color=False)


def test_sshd_block_content():
    assert sshd_block(2222).lines == (
        "# SSH Server Configuration",
        "Port 2222",
        "PermitRootLogin no",
        "PasswordAuthentication yes",
        "X11Forwarding yes",
        "PrintMotd no",
        "AcceptEnv LANG LC_*",
        "Subsystem sftp /usr/lib/openssh/sftp-server",
    )


@pytest.mark.parametrize("port", [0, 70000, "ssh", None])
def test_invalid_port(port):
    with pytest.raises(ValueError):
        validate_port(port)
    with pytest.raises(ValueError):
        SSHServerModule(port=port)


def test_setup_and_cleanup(tmp_path):
    config = tmp_path / SSHD_CONFIG.lstrip("/")

    report = SSHServerModule(port="2222", root=str(tmp_path)).run(_editor())
    assert report.ok
    assert config.read_text() == sshd_block(2222).to_text()

    again = SSHServerModule(port=2222, root=str(tmp_path)).run(_editor())
    assert again.outcomes[0].disposition is Disposition.NO_CHANGE

    removed = SSHServerModule(port=2222, root=str(tmp_path)).run(_editor(), remove=True)
    assert removed.applied
    assert config.read_text() == ""


def test_port_change_adds_new_port_line(tmp_path):
    config = tmp_path / SSHD_CONFIG.lstrip("/")
    SSHServerModule(port=22, root=str(tmp_path)).run(_editor())
    SSHServerModule(port=2222, root=str(tmp_path)).run(_editor())

    lines = config.read_text().splitlines()
    assert lines[:3] == ["# SSH Server Configuration", "Port 2222", "Port 22"]
    assert lines.count("PermitRootLogin no") == 1
