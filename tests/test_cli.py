from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from imageworkshop import cli
from imageworkshop.config import AppConfig
from imageworkshop.rpc import INTERNAL_ERROR, Ok, fail


class _Invoker:
    def __init__(self, outcome) -> None:
        self.outcome = outcome

    async def invoke(self, tool, arguments):
        return self.outcome


def _patch(monkeypatch: pytest.MonkeyPatch, outcome) -> None:
    monkeypatch.setattr(cli, "load_config", lambda: AppConfig())
    monkeypatch.setattr(cli, "build_invoker", lambda config: _Invoker(outcome))


def test_tools_command_prints_catalogue(capsys: pytest.CaptureFixture[str]) -> None:
    args = cli.build_parser().parse_args(["tools"])
    assert args.func(args) == 0
    tools = json.loads(capsys.readouterr().out)
    assert len(tools) == 11
    assert tools[0]["name"] == "txt2img_stable_diffusion"


def test_call_command_success(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    _patch(monkeypatch, Ok({"regions": []}))
    args = cli.build_parser().parse_args(["call", "edit_erase", "--arguments", '{"image": "a"}'])
    assert args.func(args) == 0
    response = json.loads(capsys.readouterr().out)
    assert response["result"]["content"][0]["type"] == "text"


def test_call_command_error_exit_code(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    _patch(monkeypatch, fail(INTERNAL_ERROR, "prompt is required"))
    args = cli.build_parser().parse_args(["call", "txt2img_stable_diffusion"])
    assert args.func(args) == 1
    assert json.loads(capsys.readouterr().out)["error"]["message"] == "prompt is required"


def test_call_command_bad_arguments(capsys: pytest.CaptureFixture[str]) -> None:
    args = cli.build_parser().parse_args(["call", "edit_erase", "--arguments", "{nope"])
    assert args.func(args) == 2
    assert "not valid JSON" in capsys.readouterr().err


def test_main_without_command(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "argv", ["imageworkshop"])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 2
