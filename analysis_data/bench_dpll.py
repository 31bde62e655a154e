"""
Run the DPLL solver over bucket files (one DIMACS-lite CNF per line), cross-check
every verdict against pysat's Minisat22, save per-instance stats to JSON and
report medians per bucket.

Example:
    python -m analysis_data.bench_dpll --input ./dataset/bench_raw --out-dir ./output/dpll
"""
import os
import glob
import time
import argparse

import numpy as np
from tqdm import tqdm
from pysat.solvers import Minisat22

from py_dpll.dpll import DPLLSolver, Lbool
from utils.utils import (read_sat_problems_lines, cnf_line_2_CNF_class,
                         formula_from_cnf, save_dicts_to_json, verify_model)

METRICS = ["decisions", "propagations", "conflicts", "time_ms"]


def solve_line(problem_line: str, order: str = "index") -> dict:
    """
    Solve one CNF line and check it against Minisat22.

    Args:
    	problem_line: One-line DIMACS-lite CNF.
    	order: Branching order passed to DPLLSolver.

    Returns:
    	Record dict with the verdicts, agreement flag, model check and stats.
    """
    cnf = cnf_line_2_CNF_class(problem_line)
    formula = formula_from_cnf(cnf)

    S = DPLLSolver()
    S.decision_order = order
    t0 = time.perf_counter()
    status = S.solve_(formula)
    t1 = time.perf_counter()
    result = S.get_result(status)

    with Minisat22(bootstrap_with=cnf.clauses) as oracle:
        oracle_sat = oracle.solve()

    model_ok = None
    if result.sat:
        model_ok = verify_model(cnf.clauses, result.model)

    return {
        "n_v": formula.nVars(),
        "n_c": formula.nClauses(),
        "sat": result.sat,
        "oracle_sat": bool(oracle_sat),
        "agree": result.sat == bool(oracle_sat),
        "model_ok": model_ok,
        "dpll_stats": {
            "decisions": S.decisions,
            "propagations": S.propagations,
            "conflicts": S.conflicts,
            "max_level": S.max_level,
            "time_ms": (t1 - t0) * 1000.0,
        },
    }


def summarize(records):
    """
    Median of each metric over the records of one bucket.

    Args:
    	records: Output of solve_line() for every instance.

    Returns:
    	Dict metric -> median (None when there are no records).
    """
    out = {}
    for m in METRICS:
        values = np.array([r["dpll_stats"][m] for r in records], dtype=float)
        values = values[np.isfinite(values)]
        out[m] = float(np.median(values)) if values.size else None
    return out


def print_bucket_summary(name, records, summary):
    n_sat = sum(1 for r in records if r["sat"])
    n_bad = sum(1 for r in records if not r["agree"] or r["model_ok"] is False)
    print(f"FILE: {name}  (n={len(records)}, sat={n_sat}, unsat={len(records) - n_sat}, mismatches={n_bad})")
    for m in METRICS:
        v = summary[m]
        v_str = "NA" if v is None else f"{v:.3f}"
        print(f"  median {m}: {v_str}")
    print("")


def run_bucket(path: str, out_dir: str, order: str):
    lines = read_sat_problems_lines(path)
    records = [solve_line(line, order) for line in tqdm(lines, desc=f"[{os.path.basename(path)}]")]
    name = os.path.splitext(os.path.basename(path))[0]
    save_dicts_to_json(records, os.path.join(out_dir, f"{name}.json"))
    summary = summarize(records)
    print_bucket_summary(os.path.basename(path), records, summary)
    return records


def main():
    ap = argparse.ArgumentParser(description="Benchmark the DPLL solver on CNF buckets")
    ap.add_argument("--input", default="./dataset/bench_raw",
                    help="A bucket .txt file or a folder of them")
    ap.add_argument("--out-dir", default="./output/dpll")
    ap.add_argument("--order", choices=("index", "clause"), default="index")
    args = ap.parse_args()

    if os.path.isdir(args.input):
        files = sorted(glob.glob(os.path.join(args.input, "*.txt")))
    else:
        files = [args.input]
    if not files:
        print(f"No .txt buckets in {args.input}")
        return

    mismatches = 0
    for path in files:
        records = run_bucket(path, args.out_dir, args.order)
        mismatches += sum(1 for r in records if not r["agree"] or r["model_ok"] is False)
    if mismatches:
        raise SystemExit(f"{mismatches} instances disagree with Minisat22")


if __name__ == "__main__":
    main()
