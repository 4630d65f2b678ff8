import io
import os
import pwd
from types import SimpleNamespace

import pytest

from labconf.core.block_editor import SectionBlockEditor
from labconf.core.confirmers import AlwaysAcceptConfirmer
from labconf.modules.samba_share import (
    SMB_CONF,
    VNC_XSTARTUP,
    SambaShareModule,
    home_directory,
    parse_users,
    share_block,
    validate_share_dir,
)


def _editor():
    return SectionBlockEditor(AlwaysAcceptConfirmer(), output=io.StringIO(), color=False)


def test_share_block_content():
    assert share_block("alice", "/home/alice").to_text() == (
        "[alice-NetShared]\n"
        "   path = /home/alice/NetShared\n"
        "   available = yes\n"
        "   valid users = alice\n"
        "   read only = no\n"
        "   browsable = yes\n"
        "   public = yes\n"
        "   writable = yes\n"
    )


def test_parse_users():
    assert parse_users("alice, bob,alice") == ["alice", "bob"]
    assert parse_users(["carol", "machine$"]) == ["carol", "machine$"]
    for bad in ("", "Alice", "a b", "-x", "../etc"):
        with pytest.raises(ValueError):
            parse_users(bad)


@pytest.mark.parametrize("name", ["", "a/b", "..", "  "])
def test_invalid_share_dir(name):
    with pytest.raises(ValueError):
        validate_share_dir(name)


def test_home_directory(monkeypatch, caplog):
    monkeypatch.setattr(pwd, "getpwnam", lambda user: SimpleNamespace(pw_dir=f"/srv/home/{user}"))
    assert home_directory("alice") == "/srv/home/alice"
    assert home_directory("alice", home_base="/data/") == "/data/alice"

    def missing(user):
        raise KeyError(user)

    monkeypatch.setattr(pwd, "getpwnam", missing)
    with caplog.at_level("WARNING", logger="LabConf"):
        assert home_directory("ghost") == "/home/ghost"
    assert "User 'ghost' not found" in caplog.text


def test_targets_per_user():
    module = SambaShareModule(["alice", "bob"], net_shared_dir="Lab", home_base="/home", vnc=True)
    assert [(t.purpose, t.path) for t in module.targets()] == [
        ("Create Net Shared Folder for alice", SMB_CONF),
        ("Config VNC Server X session for alice", "/home/alice/.vnc/xstartup"),
        ("Create Net Shared Folder for bob", SMB_CONF),
        ("Config VNC Server X session for bob", "/home/bob/.vnc/xstartup"),
    ]
    assert module.targets()[0].block.anchor == "[alice-Lab]"


def test_shares_added_after_existing_sections(tmp_path):
    smb_conf = tmp_path / SMB_CONF.lstrip("/")
    smb_conf.parent.mkdir(parents=True)
    smb_conf.write_text("[global]\n   workgroup = WORKGROUP\n")

    module = SambaShareModule("alice", home_base="/home", root=str(tmp_path))
    assert module.run(_editor()).ok
    assert smb_conf.read_text() == "[global]\n   workgroup = WORKGROUP\n" + share_block("alice", "/home/alice").to_text()

    module.run(_editor(), remove=True)
    assert smb_conf.read_text() == "[global]\n   workgroup = WORKGROUP\n"


def test_vnc_xstartup_is_executable(tmp_path):
    report = SambaShareModule("alice", home_base="/home", vnc=True, root=str(tmp_path)).run(_editor())
    assert report.ok

    xstartup = tmp_path / "home" / "alice" / ".vnc" / "xstartup"
    assert xstartup.read_text() == VNC_XSTARTUP.to_text()
    assert "\n\nxsetroot -solid grey\n" in xstartup.read_text()
    assert os.stat(xstartup).st_mode & 0o111 == 0o111
