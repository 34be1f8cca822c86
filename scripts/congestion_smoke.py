#!/usr/bin/env python3
"""Smoke test for the congestion estimator.

Runs estimate_congestion() over the JSONL scenarios in
tests/fixtures/congestion/scenarios.jsonl.

Usage:
    python scripts/congestion_smoke.py [fixture.jsonl]

Exit codes:
    - 0: All scenarios passed
    - 1: One or more scenarios failed
"""

import json
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from rpc.congestion import WEI_PER_GWEI, estimate_congestion
from rpc.models import CongestionLevel

DEFAULT_FIXTURE = PROJECT_ROOT / "tests" / "fixtures" / "congestion" / "scenarios.jsonl"


def check_scenarios(fixture_path: Path):
    """Evaluate every scenario in the fixture.

    Returns:
        (passed, total, failures) where failures holds "description: reason" lines
    """
    passed = 0
    total = 0
    failures = []

    with open(fixture_path, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue

            total += 1
            scenario = json.loads(line)
            description = scenario.get("description", "unknown")

            gas_price_wei = int(scenario["gas_price_gwei"] * WEI_PER_GWEI)
            level = estimate_congestion(gas_price_wei, scenario["avg_response_ms"])
            expected = CongestionLevel(scenario["expected"])

            if level == expected:
                passed += 1
                print(f"[congestion_smoke] Testing {description}... PASS", file=sys.stderr)
            else:
                reason = f"got {level.value}, expected {expected.value}"
                failures.append(f"{description}: {reason}")
                print(f"[congestion_smoke] Testing {description}... FAIL ({reason})", file=sys.stderr)

    return passed, total, failures


def run_congestion_smoke_tests(fixture_path: Path = DEFAULT_FIXTURE) -> int:
    """Run the fixture and return the process exit code."""
    print("[congestion_smoke] Starting congestion estimator tests...", file=sys.stderr)

    try:
        passed, total, failures = check_scenarios(fixture_path)
    except FileNotFoundError:
        print(f"[congestion_smoke] ERROR: Fixture file not found at {fixture_path}", file=sys.stderr)
        return 1
    except (json.JSONDecodeError, KeyError, ValueError) as e:
        print(f"[congestion_smoke] ERROR: Invalid scenario in fixture: {e}", file=sys.stderr)
        return 1

    if failures:
        print(f"[congestion_smoke] FAILED ({passed}/{total} tests passed)", file=sys.stderr)
        return 1

    print(f"[congestion_smoke] OK ({passed}/{total} tests passed)", file=sys.stderr)
    return 0


if __name__ == "__main__":
    fixture = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_FIXTURE
    sys.exit(run_congestion_smoke_tests(fixture))
