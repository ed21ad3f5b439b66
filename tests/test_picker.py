"""Tests for the fzf picker adapter and the terminal path prompt."""

import io
import os
import subprocess

import pytest

from tmux_workspace import picker as picker_module
from tmux_workspace.errors import PickerUnavailableError
from tmux_workspace.models import PickerEntry
from tmux_workspace.picker import FzfPicker, TerminalPathPrompt
from tmux_workspace.scan_dirs import scan_workspace

ENTRIES = [
    PickerEntry(value="newProject", display="Create new project"),
    PickerEntry(value="/home/alice/Projects/api", display="~/Projects/api"),
]


@pytest.fixture
def fake_fzf(monkeypatch):
    state = {"returncode": 0, "stdout": "", "calls": []}

    def fake_run(cmd, **kwargs):
        state["calls"].append({"cmd": cmd, **kwargs})
        return subprocess.CompletedProcess(cmd, state["returncode"], stdout=state["stdout"])

    monkeypatch.setattr(picker_module.subprocess, "run", fake_run)
    return state


def test_pick_maps_index_back_to_value(fake_fzf):
    fake_fzf["stdout"] = "1\t~/Projects/api\n"

    value = FzfPicker(fzf_bin="/usr/bin/fzf").pick(ENTRIES, title="Projects", prompt="Search")

    assert value == "/home/alice/Projects/api"
    call = fake_fzf["calls"][0]
    assert call["input"] == "0\tCreate new project\n1\t~/Projects/api\n"
    assert call["cmd"][:5] == ["/usr/bin/fzf", "--delimiter", "\t", "--with-nth", "2.."]
    assert "--header" in call["cmd"]


@pytest.mark.parametrize("code", [1, 130])
def test_pick_cancel(fake_fzf, code):
    fake_fzf["returncode"] = code

    assert FzfPicker(fzf_bin="fzf").pick(ENTRIES, title="t", prompt="p") is None


def test_pick_error_status(fake_fzf):
    fake_fzf["returncode"] = 2

    with pytest.raises(PickerUnavailableError):
        FzfPicker(fzf_bin="fzf").pick(ENTRIES, title="t", prompt="p")


def test_pick_empty_list_skips_fzf(fake_fzf):
    assert FzfPicker(fzf_bin="fzf").pick([], title="t", prompt="p") is None
    assert fake_fzf["calls"] == []


def test_missing_fzf(monkeypatch):
    monkeypatch.setattr(picker_module, "_fzf_path_cache", None)
    monkeypatch.setattr(picker_module.shutil, "which", lambda name: None)

    with pytest.raises(PickerUnavailableError):
        FzfPicker().pick(ENTRIES, title="t", prompt="p")


def test_parse_selection_garbage():
    assert FzfPicker.parse_selection("x\tfoo\n", ENTRIES) is None
    assert FzfPicker.parse_selection("", ENTRIES) is None


def test_pick_non_utf8_directory_name(monkeypatch, tmp_path):
    bad_dir = tmp_path / os.fsdecode(b"bad\xff")
    bad_dir.mkdir()
    seen = {}

    def encoding_run(cmd, **kwargs):
        # encode stdin the way subprocess does for text mode
        seen["bytes"] = kwargs["input"].encode("utf-8", kwargs.get("errors") or "strict")
        return subprocess.CompletedProcess(cmd, 0, stdout="0\t" + str(bad_dir) + "\n")

    monkeypatch.setattr(picker_module.subprocess, "run", encoding_run)
    [candidate] = scan_workspace(str(tmp_path))

    value = FzfPicker(fzf_bin="fzf").pick(
        [PickerEntry(value=candidate.path, display=candidate.display)], title="t", prompt="p"
    )

    assert value == str(bad_dir)
    assert b"bad\xff" in seen["bytes"]


def test_terminal_prompt_reads_line():
    prompt = TerminalPathPrompt(stream=io.StringIO("  new-tool  \n"))
    assert prompt.ask("Path: ") == "new-tool"


def test_terminal_prompt_eof():
    assert TerminalPathPrompt(stream=io.StringIO("")).ask("Path: ") is None
