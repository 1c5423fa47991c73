#!/usr/bin/env python3
"""Run every formatter check, linter and the test suite, then print a summary.

Steps, in order: black, isort, ruff, pylint, pytest. Each step's output is
collected and failures are repeated at the end.
"""

from pathlib import Path
import subprocess
import sys

ROOT = Path(__file__).parent

CHECKS: list[tuple[str, list[str]]] = [
    ("black", [sys.executable, "-m", "black", ".", "--check"]),
    ("isort", [sys.executable, "-m", "isort", ".", "--check-only"]),
    ("ruff", [sys.executable, "-m", "ruff", "check", "."]),
    ("pylint", [sys.executable, "-m", "pylint", "app", "core", "infrastructure", "main.py"]),
    ("pytest", [sys.executable, "-m", "pytest", "-q"]),
]


def run_check(name: str, cmd: list[str]) -> tuple[bool, str]:
    """Run one check from the project root; returns (passed, combined output)."""
    print(f"\n{'=' * 60}\n{name}: {' '.join(cmd[1:])}\n{'=' * 60}")
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False, cwd=ROOT)
    except OSError as ex:
        print(f"could not start: {ex}")
        return False, str(ex)

    output = (proc.stdout + proc.stderr).strip()
    passed = proc.returncode == 0
    print("passed" if passed else "FAILED")
    if output:
        print(output)
    return passed, output


def main() -> None:
    results = [(name, *run_check(name, cmd)) for name, cmd in CHECKS]

    print(f"\n{'=' * 60}\nSummary\n{'=' * 60}")
    for name, passed, _ in results:
        print(f"{name:8} {'ok' if passed else 'FAILED'}")

    failed = [(name, output) for name, passed, output in results if not passed]
    for name, output in failed:
        if output:
            print(f"\n--- {name} ---\n{output}")

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
