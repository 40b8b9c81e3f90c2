# nowcapital/batch.py
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from nowcapital.errors import ConnectorError
from nowcapital.models import Settings
from nowcapital.models.retirement.profile import is_absent
from nowcapital.models.service.connector import execute

logger = logging.getLogger(__name__)


def _unflatten(record: Dict[str, Any]) -> Dict[str, Any]:
    """{'p1AdvancedOptions.lifAge': 72} -> {'p1AdvancedOptions': {'lifAge': 72}}; empty cells dropped."""
    out: Dict[str, Any] = {}
    for key, value in record.items():
        if is_absent(value):
            continue
        parts = str(key).split(".")
        node = out
        for part in parts[:-1]:
            # a dotted column beats a plain column of the same name
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        if isinstance(node.get(parts[-1]), dict):
            continue
        node[parts[-1]] = value
    return out


def rows_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    # blank cells come through as NaN and are dropped by _unflatten
    return [_unflatten(r) for r in df.to_dict(orient="records")]


def load_rows(path) -> List[Dict[str, Any]]:
    path = Path(path)
    if path.suffix.lower() == ".json":
        with open(path) as fh:
            data = json.load(fh)
        return [_unflatten(r) for r in (data if isinstance(data, list) else [data])]
    df = pd.read_csv(path, dtype=str)
    return rows_from_frame(df)


def write_results(results: List[Dict[str, Any]], path) -> None:
    path = Path(path)
    if path.suffix.lower() == ".csv":
        pd.json_normalize(results).to_csv(path, index=False)
    else:
        with open(path, "w") as fh:
            json.dump(results, fh, indent=2)


def run_batch(in_path, out_path=None, operation=None, continue_on_fail=None, settings=None, client=None):
    rows = load_rows(in_path)
    logger.info("Loaded %s rows from %s", len(rows), in_path)
    results = execute(rows, operation=operation, continue_on_fail=continue_on_fail, settings=settings, client=client)
    if out_path:
        write_results(results, out_path)
        logger.info("Wrote %s results to %s", len(results), out_path)
    return results


def main(argv=None):
    ap = argparse.ArgumentParser(description="Run NowCapital operations over a file of rows.")
    ap.add_argument("rows", help="CSV (dotted columns for collections) or JSON list of rows")
    ap.add_argument("--operation", default=None, help="default operation for rows without one")
    ap.add_argument("--out", default=None, help="write results to .json or .csv")
    ap.add_argument("--continue-on-fail", action="store_true", default=None)
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    try:
        results = run_batch(
            args.rows, args.out, operation=args.operation,
            continue_on_fail=args.continue_on_fail, settings=Settings.from_env(),
        )
    except (ConnectorError, ValueError) as e:
        logger.error(f"Batch failed: {e}")
        return 1
    if not args.out:
        json.dump(results, sys.stdout, indent=2)
    return 0


# Manual trigger
if __name__ == "__main__":
    sys.exit(main())
