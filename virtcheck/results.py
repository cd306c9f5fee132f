#!/usr/bin/env python3
"""
Persist scenario results as JSON and CSV files
"""

import csv
import json
import logging
import os
from datetime import datetime
from typing import List, Optional, Tuple

from virtcheck.scenarios import ScenarioResult


def save_results(results: List[ScenarioResult], base_dir: str = "results",
                 prefix: str = "scenario_results", namespace: Optional[str] = None,
                 logger: Optional[logging.Logger] = None) -> Tuple[str, str, str]:
    """
    Save scenario results into a new timestamped folder under base_dir.

    Args:
        results: Scenario results in run order
        base_dir: Base directory to store results
        prefix: File prefix for generated files
        namespace: Test namespace, used in the folder name
        logger: Logger instance (optional)

    Returns:
        Tuple of (json_path, csv_path, summary_json_path)
    """
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    suffix = f"_{namespace}" if namespace else ""
    output_dir = os.path.join(base_dir, f"{timestamp}{suffix}")
    os.makedirs(output_dir, exist_ok=True)

    json_path = os.path.join(output_dir, f"{prefix}.json")
    csv_path = os.path.join(output_dir, f"{prefix}.csv")
    summary_json_path = os.path.join(output_dir, f"summary_{prefix}.json")

    data = [
        {
            "scenario": r.name,
            "passed": r.passed,
            "duration_sec": round(r.duration, 2),
            "error": r.error,
        }
        for r in results
    ]

    with open(json_path, "w") as jf:
        json.dump(data, jf, indent=4)

    with open(csv_path, "w", newline="") as cf:
        writer = csv.DictWriter(cf, fieldnames=["scenario", "passed", "duration_sec", "error"])
        writer.writeheader()
        writer.writerows(data)

    passed = sum(1 for r in results if r.passed)
    summary = {
        "total_scenarios": len(results),
        "passed": passed,
        "failed": len(results) - passed,
        "total_duration_sec": round(sum(r.duration for r in results), 2),
        "failed_scenarios": [r.name for r in results if not r.passed],
    }
    with open(summary_json_path, "w") as sf:
        json.dump(summary, sf, indent=4)

    if logger:
        logger.info(f"Saved results to {output_dir}")

    return json_path, csv_path, summary_json_path
