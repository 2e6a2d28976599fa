from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

APP_IMPORT = "identity_service.main:app"


def _preload_env(repo_root: Path) -> Path | None:
    for p in (repo_root / "identity_service" / ".env", repo_root / ".env"):
        if p.exists():
            load_dotenv(dotenv_path=p, override=False)
            return p
    return None


def run(mode: str) -> int:
    repo_root = Path(__file__).resolve().parent

    loaded = _preload_env(repo_root)
    print(f"[env] preloaded: {loaded}" if loaded else "[env] no preloaded .env (app will load at startup)")

    port = int(os.environ.get("PORT", "8000"))
    # Bind to all interfaces by default so containers can reach it
    host = os.environ.get("HOST", "0.0.0.0")
    uvicorn_bin = "uvicorn.exe" if os.name == "nt" else "uvicorn"

    cmd = [
        uvicorn_bin,
        APP_IMPORT,
        "--host", host,
        "--port", str(port),
    ]
    if mode == "dev":
        cmd.append("--reload")

    # Run from repo root so both identity_service and shared are importable
    env = os.environ.copy()
    env["PYTHONPATH"] = str(repo_root) + (os.pathsep + env["PYTHONPATH"] if "PYTHONPATH" in env else "")

    try:
        print(f"[run] {' '.join(cmd)} (cwd={repo_root})")
        completed = subprocess.run(cmd, cwd=str(repo_root), env=env)
        return completed.returncode
    except FileNotFoundError:
        print(
            "Error: uvicorn is not installed or not in PATH.\n"
            "Install deps: pip install -e .",
            file=sys.stderr,
        )
        return 1
    except KeyboardInterrupt:
        return 130


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Run the identity service")
    parser.add_argument(
        "--mode",
        choices=["dev", "start"],
        default=os.environ.get("MODE", "dev"),
        help="dev (default, reload) or start (no reload)",
    )
    args = parser.parse_args(argv)
    return run(args.mode)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
