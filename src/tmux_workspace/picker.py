"""Fuzzy picker and path prompt adapters (fzf / terminal)."""

from __future__ import annotations

import shutil
import subprocess
import sys
from typing import Protocol, Sequence

from loguru import logger

from .errors import PickerUnavailableError
from .models import PickerEntry

FZF_BIN = "fzf"

# fzf exit codes: 0 = selection, 1 = no match, 130 = ESC / Ctrl-C
_FZF_CANCEL_CODES = (1, 130)

# Cached fzf path (None = not checked yet, False = not found)
_fzf_path_cache: str | None | bool = None


class Picker(Protocol):
    def pick(self, entries: Sequence[PickerEntry], title: str, prompt: str) -> str | None:
        ...


def find_fzf_path() -> str | None:
    """Locate the fzf binary on PATH, caching the answer for the process."""
    global _fzf_path_cache

    if _fzf_path_cache is not None:
        return _fzf_path_cache if _fzf_path_cache else None

    path_result = shutil.which(FZF_BIN)
    _fzf_path_cache = path_result or False
    logger.debug(
        "fzf lookup",
        operation="find_fzf_path",
        status="found" if path_result else "missing",
        path=path_result
    )
    return path_result


class FzfPicker:
    """
    Present entries in fzf and return the chosen entry's value.

    Lines are fed as ``index<TAB>display`` and only the display column is
    shown and searched, so values never need to be parsed back out of the
    display text.
    """

    def __init__(self, fzf_bin: str | None = None, extra_args: Sequence[str] = ()):
        self.fzf_bin = fzf_bin
        self.extra_args = list(extra_args)

    def build_command(self, fzf_bin: str, title: str, prompt: str) -> list[str]:
        return [
            fzf_bin,
            "--delimiter", "\t",
            "--with-nth", "2..",
            "--no-sort",
            "--header", title,
            "--prompt", f"{prompt} > ",
            *self.extra_args,
        ]

    def pick(self, entries: Sequence[PickerEntry], title: str, prompt: str) -> str | None:
        fzf_bin = self.fzf_bin or find_fzf_path()
        if not fzf_bin:
            raise PickerUnavailableError("fzf not found on PATH - install fzf to use the picker")

        if not entries:
            logger.debug(
                "Nothing to pick from",
                operation="fzf_pick",
                status="empty",
                title=title
            )
            return None

        lines = "\n".join(f"{i}\t{entry.display}" for i, entry in enumerate(entries))
        cmd = self.build_command(fzf_bin, title, prompt)

        try:
            result = subprocess.run(
                cmd,
                input=lines + "\n",
                stdout=subprocess.PIPE,
                text=True,
                errors="surrogateescape",  # scandir names that are not UTF-8
                check=False
            )
        except OSError as e:
            raise PickerUnavailableError(f"Cannot start fzf: {e}") from e

        if result.returncode in _FZF_CANCEL_CODES:
            logger.debug(
                "Picker cancelled",
                operation="fzf_pick",
                status="cancelled",
                title=title,
                returncode=result.returncode
            )
            return None

        if result.returncode != 0:
            raise PickerUnavailableError(f"fzf exited with status {result.returncode}")

        return self.parse_selection(result.stdout, entries)

    @staticmethod
    def parse_selection(output: str, entries: Sequence[PickerEntry]) -> str | None:
        """Map fzf's ``index<TAB>display`` output line back to an entry value."""
        line = output.strip("\n")
        if not line:
            return None
        index_text = line.split("\t", 1)[0]
        try:
            return entries[int(index_text)].value
        except (ValueError, IndexError):
            logger.warning(
                "Unexpected fzf output",
                operation="fzf_pick",
                status="parse_error",
                output=line
            )
            return None


class TerminalPathPrompt:
    """Ask for a path on the controlling terminal."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdin

    def ask(self, prompt: str) -> str | None:
        sys.stderr.write(prompt)
        sys.stderr.flush()
        line = self.stream.readline()
        if not line:
            return None
        return line.strip() or None
