"""
Test runner for the hybrid_state library
Executes all test suites with detailed reporting
"""

import sys
from pathlib import Path

import pytest


def main():
    """Run all tests"""

    project_root = Path(__file__).parent

    pytest_args = [
        str(project_root / "tests"),  # Test directory
        "-v",                         # Verbose output
        "--tb=short",                 # Short traceback format
        "--strict-markers",           # Strict marker validation
        "--maxfail=5",                # Stop after 5 failures
        "--durations=10",             # Show 10 slowest tests
    ]
    pytest_args.extend(sys.argv[1:])

    print(f"🚀 Starting test suite for hybrid_state")
    print(f"🧪 Test directory: {project_root / 'tests'}")

    exit_code = pytest.main(pytest_args)

    if exit_code == 0:
        print("✅ All tests passed successfully!")
    else:
        print(f"❌ Tests failed with exit code: {exit_code}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
