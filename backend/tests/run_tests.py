#!/usr/bin/env python3
"""
Photo Repair test runner

Usage:
    python tests/run_tests.py              # Run all tests
    python tests/run_tests.py -k intake    # Only tests matching "intake"
    python tests/run_tests.py --report     # Generate an HTML report

Quick start:
    cd backend
    pip install -e "..[test]"
    python tests/run_tests.py
"""

import subprocess
import sys
import os
from pathlib import Path

# Switch to the backend directory
backend_dir = Path(__file__).parent.parent
os.chdir(backend_dir)


def main():
    """Run the test suite"""
    cmd = [sys.executable, "-m", "pytest", "tests/"]

    args = sys.argv[1:]

    # Verbose by default
    if not any(arg.startswith("-v") for arg in args):
        cmd.append("-v")

    if "--report" in args:
        args.remove("--report")
        cmd.extend(["--html=tests/report.html", "--self-contained-html"])

    cmd.extend(args)

    print(f"\n{'='*60}")
    print("Photo Repair tests")
    print(f"{'='*60}")
    print(f"Command: {' '.join(cmd)}")
    print(f"{'='*60}\n")

    result = subprocess.run(cmd)
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
