#!/usr/bin/env python3
"""Deployment flow: check config -> synth -> deploy with guardrails.

Guardrails:
- Prevent prod deploys from non-main/master unless --force
- Require confirmation for prod unless --yes
- Refuse to start when required environment variables are missing
"""
from __future__ import annotations

import argparse
import subprocess
from pathlib import Path

from planning_poker_infra.config import load_config
from planning_poker_infra.exceptions import ConfigurationError

ROOT = Path(__file__).resolve().parents[1]


def run(cmd: list[str], cwd: Path | None = None, check: bool = True) -> int:
    print(f"$ {' '.join(cmd)}")
    return subprocess.run(cmd, cwd=str(cwd) if cwd else None, check=check).returncode


def get_branch() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=ROOT)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return ""


def working_tree_dirty() -> bool:
    try:
        status = subprocess.check_output(["git", "status", "--porcelain"], cwd=ROOT).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return False
    return bool(status)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Synthesize and deploy the Planning Poker App stack")
    p.add_argument("--env", required=True, choices=["dev", "staging", "prod"], help="Target environment")
    p.add_argument("--yes", action="store_true", help="Auto-confirm prompts (required for prod)")
    p.add_argument("--force", action="store_true", help="Bypass branch guardrails for prod")
    p.add_argument("--allow-dirty", action="store_true", help="Skip clean working tree check")
    args = p.parse_args(argv)

    # Guardrails
    branch = get_branch()
    if args.env == "prod" and not args.force:
        if branch not in {"main", "master"}:
            print(f"❌ Refusing to deploy prod from branch '{branch}'. Use --force to override.")
            return 2
        if not args.yes:
            print("❌ Production deploy requires --yes confirmation flag.")
            return 2

    if not args.allow_dirty and working_tree_dirty():
        print("❌ Working tree has uncommitted changes. Commit or use --allow-dirty.")
        return 2

    try:
        load_config(args.env)
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 2

    # Step 1: CDK synth
    run(["cdk", "synth", "--context", f"environment={args.env}"], cwd=ROOT)

    # Step 2: CDK deploy
    stack = f"planning-poker-app-{args.env}"
    deploy_cmd = [
        "cdk", "deploy", stack,
        "--require-approval", "never",
        "--context", f"environment={args.env}",
    ]
    run(deploy_cmd, cwd=ROOT)

    print(f"✅ Deployed {stack} to {args.env}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
