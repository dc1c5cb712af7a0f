"""Simple .env loader and runner.

Usage:
  - Import and call `load()` from Python: `from set_env_vars import load; load()`
  - Run the API with the .env loaded:
      python set_env_vars.py --exec python main.py
  - Check which settings are configured:
      python set_env_vars.py --status
"""
from __future__ import annotations

import json
import os
import subprocess
from typing import Dict

KNOWN_KEYS = (
    "MONGO_URI",
    "MONGO_DB",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "LOG_LEVEL",
    "PORT",
)


def _parse_dotenv(path: str) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            for raw in fh:
                line = raw.strip()
                if not line or line.startswith("#"):
                    continue
                if line.startswith("export "):
                    line = line[len("export "):].lstrip()
                if "=" not in line:
                    continue
                key, val = line.split("=", 1)
                key = key.strip()
                val = val.strip()
                if len(val) >= 2 and val[0] == val[-1] and val[0] in ("\"", "'"):
                    val = val[1:-1]
                if key:
                    pairs[key] = val
    except FileNotFoundError:
        return {}
    return pairs


def load(path: str = ".env", override: bool = False) -> None:
    """Load key=value pairs from `path` into os.environ.

    GOOGLE_API_KEY is accepted as an alias for GEMINI_API_KEY.
    """
    for k, v in _parse_dotenv(path).items():
        if override or k not in os.environ:
            os.environ[k] = v
    if not os.environ.get("GEMINI_API_KEY") and os.environ.get("GOOGLE_API_KEY"):
        os.environ["GEMINI_API_KEY"] = os.environ["GOOGLE_API_KEY"]


def status() -> Dict[str, bool]:
    return {k: bool(os.environ.get(k)) for k in KNOWN_KEYS}


def run_command_with_env(cmd: list[str]) -> int:
    """Run a command (list form) with the current process environment and return exit code."""
    return subprocess.run(cmd, env=os.environ).returncode


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Load .env and optionally run a command with it.")
    parser.add_argument("--env-file", "-e", default=".env", help="Path to .env file")
    parser.add_argument("--override", action="store_true", help="Override existing env vars")
    parser.add_argument("--status", action="store_true", help="Print which known settings are set")
    parser.add_argument("--exec", "-x", nargs=argparse.REMAINDER, help="Command to run with env loaded")
    args = parser.parse_args()

    load(args.env_file, override=args.override)

    if args.status:
        print(json.dumps(status(), indent=2))

    if args.exec:
        cmd = args.exec
        if not cmd:
            parser.error("--exec requires a command to run")
        raise SystemExit(run_command_with_env(cmd))
    elif not args.status:
        print(f"Loaded environment from {args.env_file}")
