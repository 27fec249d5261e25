"""Nox configuration for Planning Poker App infrastructure automation.

This file defines development tasks including linting, testing,
formatting, synthesis and guarded deploy/teardown of the CDK stack.
"""

import nox

# Python versions to test against
PYTHON_VERSIONS = ["3.11"]

# Default sessions to run when no specific session is requested
nox.options.sessions = ["lint", "test", "coverage"]


@nox.session(python=PYTHON_VERSIONS)
def lint(session):
    """Run linting with ruff and mypy."""
    session.install("poetry")
    session.run("poetry", "install", "--all-extras")

    session.run("poetry", "run", "ruff", "check", "src", "infra", "scripts", "tests")
    session.run("poetry", "run", "mypy", "src")

    session.log("✅ Linting completed successfully")


@nox.session(python=PYTHON_VERSIONS)
def format_code(session):
    """Format code with black and isort."""
    session.install("poetry")
    session.run("poetry", "install", "--all-extras")

    session.run("poetry", "run", "black", "src", "infra", "scripts", "tests")
    session.run("poetry", "run", "isort", "src", "infra", "scripts", "tests")
    session.run("poetry", "run", "ruff", "check", "--fix", "src", "infra", "scripts", "tests")

    session.log("✅ Code formatting completed")


@nox.session(python=PYTHON_VERSIONS)
def test(session):
    """Run the test suite with pytest."""
    session.install("poetry")
    session.run("poetry", "install", "--all-extras")

    session.run(
        "poetry", "run", "pytest",
        "tests/",
        "-v",
        "--tb=short",
        "--strict-markers",
    )

    session.log("✅ Unit tests completed successfully")


@nox.session(python=PYTHON_VERSIONS)
def coverage(session):
    """Run tests with coverage reporting."""
    session.install("poetry")
    session.run("poetry", "install", "--all-extras")

    session.run(
        "poetry", "run", "pytest",
        "tests/",
        "--cov=src",
        "--cov=infra",
        "--cov-report=term-missing",
        "--cov-report=xml:coverage.xml",
        "--cov-fail-under=80",
    )

    session.log("✅ Coverage analysis completed")


@nox.session(python=PYTHON_VERSIONS)
def check_env(session):
    """Check the deployment variables for an environment.

    Example:
      nox -s check_env -- --env prod
    """
    session.install("poetry")
    session.run("poetry", "install")
    args = session.posargs or ["--env", "dev"]
    session.run("poetry", "run", "planning-poker-infra", "check-env", *args)


@nox.session(python=PYTHON_VERSIONS)
def synth(session):
    """Synthesize the CloudFormation template.

    Example:
      nox -s synth -- --context environment=staging
    """
    session.install("poetry")
    session.run("poetry", "install")
    session.run("poetry", "run", "cdk", "synth", *session.posargs, external=True)
    session.log("✅ Synth completed")


@nox.session(python=PYTHON_VERSIONS)
def deploy(session):
    """Deploy with guardrails: check config -> synth -> deploy.

    Examples:
      nox -s deploy -- --env dev
      nox -s deploy -- --env prod --yes
    """
    session.install("poetry")
    session.run("poetry", "install")
    args = session.posargs or ["--env", "dev"]
    session.run("poetry", "run", "python", "scripts/deploy_flow.py", *args)
    session.log("✅ Deployment flow completed")


@nox.session(python=PYTHON_VERSIONS)
def teardown(session):
    """Teardown the CDK stack with confirmation.

    Examples:
      nox -s teardown -- --env dev --yes
    """
    session.install("poetry")
    session.run("poetry", "install")
    args = session.posargs or ["--env", "dev"]
    session.run("poetry", "run", "python", "scripts/teardown.py", *args)
    session.log("✅ Teardown completed")


@nox.session(python=PYTHON_VERSIONS)
def clean(session):
    """Clean up build artifacts and cache files."""
    import shutil
    import os

    clean_dirs = [
        ".pytest_cache",
        "__pycache__",
        ".coverage",
        "coverage.xml",
        "cdk.out",
        "dist",
        ".ruff_cache",
        ".mypy_cache",
    ]

    for dir_name in clean_dirs:
        if os.path.exists(dir_name):
            if os.path.isdir(dir_name):
                shutil.rmtree(dir_name)
                session.log(f"🗑️  Removed directory: {dir_name}")
            else:
                os.remove(dir_name)
                session.log(f"🗑️  Removed file: {dir_name}")

    session.log("✅ Cleanup completed")
