#!/usr/bin/env python3
"""
Run the monerokit test suite with pytest.

Usage:
    python run_tests.py                # whole suite, stop on first failure
    python run_tests.py -k arbiter     # only tests matching a keyword
    python run_tests.py --cov          # add a coverage report for monerokit_core
    python run_tests.py -- --tb=long   # anything unrecognised goes to pytest
"""

import argparse
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent

PYTEST_DEFAULTS = ["-x", "-v", "--tb=short"]
COVERAGE_ARGS = ["--cov=monerokit_core", "--cov-report=term-missing"]


def build_command(keyword, coverage, passthrough):
    cmd = [sys.executable, "-m", "pytest", str(ROOT / "tests"), *PYTEST_DEFAULTS]
    if coverage:
        cmd += COVERAGE_ARGS
    if keyword:
        cmd += ["-k", keyword]
    return cmd + list(passthrough)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("-k", dest="keyword", metavar="EXPR",
                        help="pytest keyword expression")
    parser.add_argument("--cov", action="store_true",
                        help="coverage for monerokit_core (needs pytest-cov)")
    opts, passthrough = parser.parse_known_args()
    if passthrough and passthrough[0] == "--":
        passthrough = passthrough[1:]

    cmd = build_command(opts.keyword, opts.cov, passthrough)
    print("=== monerokit tests ===")
    return subprocess.call(cmd, cwd=ROOT)


if __name__ == "__main__":
    raise SystemExit(main())
