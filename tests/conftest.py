"""Shared fixtures: a scriptable fake ``goose`` binary."""

from __future__ import annotations

import json
import stat
from pathlib import Path
from typing import Any

import pytest

from builders import FakeGoose


def _render(line: dict[str, Any] | str) -> str:
    return line if isinstance(line, str) else json.dumps(line)


@pytest.fixture
def fake_goose(tmp_path: Path) -> FakeGoose:
    """Return a factory writing an executable shell script that acts as goose.

    The script records its arguments (one per line) to ``args.txt``, its
    environment to ``env.txt`` and its pid to ``pid.txt`` next to itself.
    With *background* it leaves a ``sleep`` child running that inherits
    stdout.  It then prints *lines* as JSONL, optionally *stderr*, sleeps
    *sleep* seconds and exits with *exit_code*.
    """
    counter = {"n": 0}

    def _make(
        lines: list[dict[str, Any] | str] = (),  # type: ignore[assignment]
        *,
        exit_code: int = 0,
        stderr: str = "",
        sleep: float | None = None,
        background: float | None = None,
    ) -> Path:
        counter["n"] += 1
        workdir = tmp_path / f"goose{counter['n']}"
        workdir.mkdir()
        script = workdir / "goose"
        body = "\n".join(_render(line) for line in lines)
        parts = [
            "#!/bin/sh",
            f"printf '%s\\n' \"$@\" > '{workdir}/args.txt'",
            f"env > '{workdir}/env.txt'",
            f"echo $$ > '{workdir}/pid.txt'",
        ]
        if background is not None:
            parts.append(f"sleep {background} &")
        if body:
            parts += ["cat <<'GOOSE_EOF'", body, "GOOSE_EOF"]
        if stderr:
            parts.append(f"printf '%s\\n' {_shell_quote(stderr)} >&2")
        if sleep is not None:
            parts.append(f"sleep {sleep}")
        parts.append(f"exit {exit_code}")
        script.write_text("\n".join(parts) + "\n", encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


def _shell_quote(text: str) -> str:
    return "'" + text.replace("'", "'\"'\"'") + "'"

