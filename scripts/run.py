from __future__ import annotations

import argparse
import os
import shlex
import subprocess
import sys
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 56470

DEFAULT_CLI_ARGS = ["risk", "3", "3"]


def _format_cmd(cmd: list[str]) -> str:
    if os.name == "nt":
        return subprocess.list2cmdline(cmd)
    return shlex.join(cmd)


def _run(cmd: list[str], *, env: dict[str, str] | None = None) -> int:
    print(f"+ {_format_cmd(cmd)}")
    completed = subprocess.run(cmd, cwd=ROOT_DIR, env=env)
    return completed.returncode


def _venv_python() -> Path:
    if os.name == "nt":
        return ROOT_DIR / ".venv" / "Scripts" / "python.exe"
    return ROOT_DIR / ".venv" / "bin" / "python"


def _python_for_tasks() -> str:
    venv_python = _venv_python()
    if venv_python.exists():
        return str(venv_python)
    return sys.executable


def cmd_setup(args: argparse.Namespace) -> int:
    if args.venv and not _venv_python().exists():
        code = _run([sys.executable, "-m", "venv", ".venv"])
        if code != 0:
            return code
    return _run([_python_for_tasks(), "-m", "pip", "install", "-e", ".[test]"])


def _passthrough(values: list[str] | None) -> list[str]:
    passthrough = list(values or [])
    if passthrough and passthrough[0] == "--":
        passthrough = passthrough[1:]
    return passthrough


def cmd_test(args: argparse.Namespace) -> int:
    return _run([_python_for_tasks(), "-m", "pytest", *_passthrough(args.pytest_args)])


def cmd_cli(args: argparse.Namespace) -> int:
    passthrough = _passthrough(args.cli_args) or list(DEFAULT_CLI_ARGS)
    return _run([_python_for_tasks(), "-m", "emoc_workflow.cli.main", *passthrough])


def cmd_web(args: argparse.Namespace) -> int:
    if not (ROOT_DIR / "app" / "main.py").exists():
        print("error: app/main.py not found.", file=sys.stderr)
        return 2
    cmd = [
        _python_for_tasks(),
        "-m",
        "uvicorn",
        "app.main:app",
        "--host",
        args.host,
        "--port",
        str(args.port),
    ]
    if args.reload:
        cmd.append("--reload")
    return _run(cmd, env=dict(os.environ))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Task runner for the eMoC workflow service.")
    sub = parser.add_subparsers(dest="command", required=True)

    setup_parser = sub.add_parser("setup", help="Install project and test dependencies.")
    setup_parser.add_argument("--venv", action="store_true", help="Create .venv if missing before install.")
    setup_parser.set_defaults(func=cmd_setup)

    test_parser = sub.add_parser("test", help="Run pytest.")
    test_parser.add_argument("pytest_args", nargs=argparse.REMAINDER, help="Optional pytest args.")
    test_parser.set_defaults(func=cmd_test)

    cli_parser = sub.add_parser("cli", help="Run emoc-tool.")
    cli_parser.add_argument("cli_args", nargs=argparse.REMAINDER, help="Args forwarded to emoc-tool.")
    cli_parser.set_defaults(func=cmd_cli)

    web_parser = sub.add_parser("web", help="Run the FastAPI service with uvicorn.")
    web_parser.add_argument("--host", default=DEFAULT_HOST, help="Bind host (default: 127.0.0.1).")
    web_parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Bind port (default: 56470).")
    web_parser.add_argument("--reload", action="store_true", help="Reload on code changes.")
    web_parser.set_defaults(func=cmd_web)

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
