"""
Generate CNF benchmark buckets and write each CNF on one line
(DIMACS-lite: integers with trailing 0 per clause).

Families:
    * random    - planted random k-SAT, satisfiable by construction,
    * pigeonhole - n+1 pigeons into n holes, unsatisfiable,
    * chain     - chains of binary implications, satisfiable.

Example:
    # One bucket of planted 3-SAT with 5-15 variables, 500 items
    python -m generate_dataset.gen_cnf_buckets random \
        --vars-min 5 --vars-max 15 --samples 500 --out-dir ./dataset/bench_raw/
"""
import argparse
import random
from pathlib import Path
from typing import Iterable, List

import numpy as np
from tqdm import trange


LITERAL_AGREES_PROB = 0.5


def generate_random_assignment(num_vars: int) -> np.ndarray:
    """
    Draw the planted assignment: entry i is the value of variable i + 1.
    """
    return np.random.rand(num_vars) < 0.5


def generate_sat_clause_from_assignment(assignment: np.ndarray, num_literals: int) -> List[int]:
    """
    Create one clause over distinct variables that the planted assignment satisfies.

    Each literal agrees with the assignment with probability
    LITERAL_AGREES_PROB; if none does, one position is forced to agree.

    Args:
    	assignment: Planted assignment.
    	num_literals: Number of literals in the clause.

    Returns:
    	Clause as signed integers, e.g. [1, -3, 7].
    """
    chosen = np.random.permutation(len(assignment))[:num_literals]
    agrees = np.random.rand(num_literals) < LITERAL_AGREES_PROB
    if not agrees.any():
        agrees[np.random.randint(num_literals)] = True
    positive = assignment[chosen] == agrees
    return [int(v) + 1 if pos else -(int(v) + 1) for v, pos in zip(chosen, positive)]


def generate_sat_problem(num_vars: int, num_clauses: int, clause_size: int) -> List[List[int]]:
    """
    Planted random k-SAT: every clause is built to agree with one hidden assignment,
    so the formula is satisfiable.

    Raises:
    	ValueError: unless 1 <= clause_size <= num_vars.
    """
    if clause_size < 1 or clause_size > num_vars:
        raise ValueError(f"clause_size {clause_size} not in 1..{num_vars}")
    assignment = generate_random_assignment(num_vars)
    return [generate_sat_clause_from_assignment(assignment, clause_size) for _ in range(num_clauses)]


def generate_pigeonhole(holes: int) -> List[List[int]]:
    """
    Pigeonhole principle PHP(holes + 1, holes); unsatisfiable for every holes >= 1.

    Variable p * holes + h + 1 means pigeon p sits in hole h.
    """
    pigeons = holes + 1

    def x(p, h):
        return p * holes + h + 1

    clauses = [[x(p, h) for h in range(holes)] for p in range(pigeons)]
    for h in range(holes):
        for p1 in range(pigeons):
            for p2 in range(p1 + 1, pigeons):
                clauses.append([-x(p1, h), -x(p2, h)])
    return clauses


def generate_chain(num_vars: int) -> List[List[int]]:
    """(x1 v x2) and, for each i, (-x_i v x_{i+2}) and (-x_{i+1} v x_{i+2})."""
    if num_vars < 2:
        raise ValueError("a chain needs at least 2 variables")
    clauses = [[1, 2]]
    for i in range(1, num_vars - 1):
        clauses.append([-i, i + 2])
        clauses.append([-(i + 1), i + 2])
    return clauses


def to_dimacs_like_format(clauses: List[List[int]]) -> str:
    """
    Convert clauses like [[1, -3], [2]] to '1 -3 0 2 0' form in a single line.

    Args:
    	clauses: List of clauses (each a list of signed integers).

    Returns:
    	One-line DIMACS-lite string with '0' delimiters.
    """
    return " ".join(" ".join([str(x) for x in clause] + ["0"]) for clause in clauses)


def _write_lines(fname: Path, formulas: Iterable[List[List[int]]]) -> Path:
    fname.parent.mkdir(parents=True, exist_ok=True)
    with fname.open("w") as fh:
        for clauses in formulas:
            fh.write(to_dimacs_like_format(clauses) + "\n")
    return fname


def write_bucket(
        vars_min: int,
        vars_max: int,
        samples: int,
        ratio_min: float,
        ratio_max: float,
        clause_size: int,
        out_dir: Path,
) -> Path:
    """
    Write `samples` planted random CNFs to <out_dir>/sat_<vars_min>_<vars_max>.txt.

    The variable count of each formula is uniform in [vars_min, vars_max] and
    its clause count is the variable count times a ratio drawn uniformly from
    [ratio_min, ratio_max], rounded.

    Returns:
    	Path of the written bucket.
    """
    def formulas():
        for _ in trange(samples, desc=f"[sat_{vars_min}_{vars_max}] {samples:,} formulas"):
            n = random.randint(vars_min, vars_max)
            m = int(round(random.uniform(ratio_min, ratio_max) * n))
            yield generate_sat_problem(n, m, clause_size)

    return _write_lines(out_dir / f"sat_{vars_min}_{vars_max}.txt", formulas())


FAMILIES = {"pigeonhole": generate_pigeonhole, "chain": generate_chain}


def write_family(name: str, sizes: List[int], out_dir: Path) -> Path:
    """Write one pigeonhole or chain formula per size to <out_dir>/<name>.txt."""
    return _write_lines(out_dir / f"{name}.txt", (FAMILIES[name](n) for n in sizes))


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate CNF benchmark buckets")
    ap.add_argument("family", choices=("random", *FAMILIES))

    ap.add_argument("--vars-min", type=int, default=5)
    ap.add_argument("--vars-max", type=int, default=15)
    ap.add_argument("--samples", type=int, default=100,
                    help="Number of formulas for the random family")
    ap.add_argument("--sizes", type=int, nargs="+", default=[3, 4, 5],
                    help="Holes (pigeonhole) or variables (chain), one formula each")

    ap.add_argument("--ratio-min", type=float, default=4.1)
    ap.add_argument("--ratio-max", type=float, default=4.4)
    ap.add_argument("--clause-size", type=int, default=3)
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--out-dir", type=Path, required=True)
    return ap.parse_args()


def main() -> None:
    args = parse_args()

    random.seed(args.seed)
    np.random.seed(args.seed)

    if args.family == "random":
        path = write_bucket(
            vars_min=args.vars_min,
            vars_max=args.vars_max,
            samples=args.samples,
            ratio_min=args.ratio_min,
            ratio_max=args.ratio_max,
            clause_size=args.clause_size,
            out_dir=args.out_dir,
        )
    else:
        path = write_family(args.family, args.sizes, args.out_dir)
    print(f"Wrote {path}")


if __name__ == "__main__":
    main()
