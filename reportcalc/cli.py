"""
Minimal CLI for engine smoke-tests (no form layer).

Usage examples:
  python -m reportcalc.cli resolve --celsius 21.5 --policy interpolate
  python -m reportcalc.cli ratio --primary 120 --secondary 10 --measured 11.4
  python -m reportcalc.cli new --report-type voltage-potential-transformer-mts --output state.json
  python -m reportcalc.cli edit --input state.json --set temperature.fahrenheit=212

Commands:
  - resolve: correction factor for a Celsius value under a policy
  - correct: temperature-corrected reading
  - ratio: turns ratio row evaluation
  - new: fresh report state
  - edit: apply one or more field edits to a saved state
  - table: dump the correction table (.json or .csv)
"""
from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
from itertools import zip_longest
from typing import Any, Dict, List, Optional

from . import api
from . import calibration as CAL
from . import formulas as F
from .anchors import ANCHORS, TCF_TABLE
from .schemas import ReportState

# Runtime constants checked by --fail-on-drift
_GUARDED = (
    "REFERENCE_CELSIUS", "DEFAULT_FACTOR", "RATIO_PASS_LIMIT_PCT", "INSULATION_RATIO_MIN",
    "CORRECTED_DECIMALS", "RATIO_DECIMALS", "DEVIATION_DECIMALS", "INSULATION_RATIO_DECIMALS",
    "DEFAULT_FAHRENHEIT", "DEFAULT_HUMIDITY",
)


def _load_state(path: str) -> ReportState:
    with open(path, "r", encoding="utf-8") as f:
        return api.load_report_state(f.read())


def _drift() -> List[str]:
    """Differences between the runtime constants/table and the frozen anchors."""
    found = [
        f"{name}: anchors={ANCHORS[name]!r} vs calibration={getattr(CAL, name)!r}"
        for name in _GUARDED
        if float(ANCHORS[name]) != float(getattr(CAL, name))
    ]
    runtime = F.DEFAULT_TABLE.as_dict()
    for c, m in TCF_TABLE:
        if runtime.get(c) != m:
            found.append(f"TCF_TABLE[{c}]: anchors={m!r} vs runtime={runtime.get(c)!r}")
    if len(runtime) != len(TCF_TABLE):
        found.append(f"TCF_TABLE: {len(TCF_TABLE)} anchored rows vs {len(runtime)} at runtime")
    return found


def _write_csv(payload: Dict[str, Any], path: str) -> None:
    # scalar fields fill the first row; list fields become columns
    columns = {k: v if isinstance(v, list) else [v] for k, v in payload.items()}
    if any(isinstance(x, (dict, list)) for col in columns.values() for x in col):
        raise SystemExit("CSV output takes flat results; write report states as .json")
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(columns)
        w.writerows(zip_longest(*columns.values(), fillvalue=""))


def _write_output(payload: Dict[str, Any], path: Optional[str]) -> None:
    if not path:
        json.dump(payload, sys.stdout, ensure_ascii=False)
        sys.stdout.write("\n")
        return
    ext = os.path.splitext(path)[1].lower()
    if ext == ".csv":
        _write_csv(payload, path)
    elif ext == ".json":
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
    else:
        raise SystemExit(f"Unsupported output extension: {ext} (use .json or .csv)")


def _split_assignment(text: str) -> tuple[str, str]:
    path, sep, value = text.partition("=")
    if not sep or not path:
        raise SystemExit(f"--set expects PATH=VALUE, got {text!r}")
    return path.strip(), value


def cmd_resolve(args: argparse.Namespace) -> int:
    factor = api.resolve_correction_factor(args.celsius, args.policy)
    _write_output({"celsius": args.celsius, "policy": args.policy, "correction_factor": factor}, args.output)
    return 0


def cmd_correct(args: argparse.Namespace) -> int:
    _write_output({"raw_value": args.raw, "factor": args.factor,
                   "corrected_value": api.apply_correction(args.raw, args.factor)}, args.output)
    return 0


def cmd_ratio(args: argparse.Namespace) -> int:
    _write_output(api.evaluate_ratio_test(args.primary, args.secondary, args.measured), args.output)
    return 0


def cmd_new(args: argparse.Namespace) -> int:
    state = api.new_report_state(
        report_type=args.report_type,
        policy=args.policy,
        fahrenheit=args.fahrenheit,
        humidity=args.humidity,
        ratio_rows=args.ratio_rows,
    )
    _write_output(state.model_dump(mode="json"), args.output)
    return 0


def cmd_edit(args: argparse.Namespace) -> int:
    state = _load_state(args.input)
    for assignment in args.set:
        path, value = _split_assignment(assignment)
        state = api.apply_edit(state, path, value)
    _write_output(state.model_dump(mode="json"), args.output)
    return 0


def cmd_table(args: argparse.Namespace) -> int:
    entries = F.DEFAULT_TABLE.entries
    _write_output({"celsius": [c for c, _ in entries], "multiplier": [m for _, m in entries]}, args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="reportcalc.cli", description="Correction and validation engine CLI (no form layer)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log recalculation steps to stderr")
    p.add_argument("--fail-on-drift", action="store_true", help="Fail if calibration differs from anchors")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_res = sub.add_parser("resolve", help="Correction factor for a Celsius value")
    p_res.add_argument("--celsius", type=float, required=True)
    p_res.add_argument("--policy", choices=list(CAL.POLICIES), required=True)
    p_res.add_argument("--output", required=False, help="Output file (.json or .csv)")
    p_res.set_defaults(func=cmd_resolve)

    p_cor = sub.add_parser("correct", help="Temperature-corrected reading")
    p_cor.add_argument("--raw", required=True, help="Raw reading as entered")
    p_cor.add_argument("--factor", type=float, required=True)
    p_cor.add_argument("--output", required=False, help="Output file (.json or .csv)")
    p_cor.set_defaults(func=cmd_correct)

    p_rat = sub.add_parser("ratio", help="Evaluate a turns ratio row")
    p_rat.add_argument("--primary", required=True)
    p_rat.add_argument("--secondary", required=True)
    p_rat.add_argument("--measured", default="")
    p_rat.add_argument("--output", required=False, help="Output file (.json or .csv)")
    p_rat.set_defaults(func=cmd_ratio)

    p_new = sub.add_parser("new", help="Create a fresh report state")
    p_new.add_argument("--report-type", required=True)
    p_new.add_argument("--policy", choices=list(CAL.POLICIES), default=None,
                       help="Override the report type's declared policy")
    p_new.add_argument("--fahrenheit", type=float, default=CAL.DEFAULT_FAHRENHEIT)
    p_new.add_argument("--humidity", type=float, default=CAL.DEFAULT_HUMIDITY)
    p_new.add_argument("--ratio-rows", type=int, default=CAL.DEFAULT_RATIO_ROWS)
    p_new.add_argument("--output", required=False, help="Output file (.json)")
    p_new.set_defaults(func=cmd_new)

    p_edit = sub.add_parser("edit", help="Apply field edits to a saved report state")
    p_edit.add_argument("--input", required=True, help="Path to JSON report state")
    p_edit.add_argument("--set", action="append", required=True, metavar="PATH=VALUE",
                        help="Field edit, applied in order (repeatable)")
    p_edit.add_argument("--output", required=False, help="Output file (.json)")
    p_edit.set_defaults(func=cmd_edit)

    p_tab = sub.add_parser("table", help="Dump the correction table")
    p_tab.add_argument("--output", required=False, help="Output file (.json or .csv)")
    p_tab.set_defaults(func=cmd_table)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, stream=sys.stderr)
    if args.fail_on_drift:
        drift = _drift()
        if drift:
            sys.stderr.write("calibration drift (anchors vs runtime):\n" + "".join(f" - {d}\n" for d in drift))
            return 1
    try:
        return args.func(args)
    except ValueError as e:
        # wiring errors (bad path/policy/report type) and malformed snapshots
        logging.getLogger(__name__).debug("command failed", exc_info=True)
        sys.stderr.write(f"error: {e}\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
