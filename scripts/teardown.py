#!/usr/bin/env python3
"""Teardown script to destroy the Planning Poker App stack safely."""
from __future__ import annotations

import argparse
import subprocess
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def run(cmd: list[str], cwd: Path | None = None) -> int:
    print(f"$ {' '.join(cmd)}")
    return subprocess.run(cmd, cwd=str(cwd) if cwd else None).returncode


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Destroy the CDK stack with confirmation")
    p.add_argument("--env", required=True, choices=["dev", "staging", "prod"], help="Target environment")
    p.add_argument("--yes", action="store_true", help="Auto-confirm destroy")
    args = p.parse_args(argv)

    stack = f"planning-poker-app-{args.env}"

    if not args.yes:
        print(f"⚠️  You are about to destroy stack: {stack}")
        return 2

    code = run(["cdk", "destroy", stack, "--force", "--context", f"environment={args.env}"], cwd=ROOT)
    if code == 0:
        print(f"🧹 Destroyed stack: {stack}")
    return code


if __name__ == "__main__":
    raise SystemExit(main())
