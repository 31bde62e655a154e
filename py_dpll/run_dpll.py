# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
DIMACS front end and command-line runner for the DPLL solver.

Example:
    python -m py_dpll.run_dpll ./dataset/example.cnf --model --stats
"""
import sys
import gzip
import time
import psutil
import argparse

from enum import Enum
from typing import Iterable, List

from py_dpll.dpll import DPLLSolver, Formula, Lbool, SolveResult
from utils.trace_utils import convert_keytrace_to_str


class ParseErrorKind(Enum):
    MISSING_HEADER = "missing header"
    MALFORMED_HEADER = "malformed header"
    DUPLICATE_HEADER = "duplicate header"
    INVALID_TOKEN = "invalid token"
    LITERAL_OUT_OF_RANGE = "literal out of range"
    CLAUSE_COUNT_MISMATCH = "clause count mismatch"
    TRUNCATED_INPUT = "truncated input"
    INVALID_ENCODING = "invalid encoding"


class DimacsParseError(ValueError):
    """A DIMACS input that cannot be turned into a Formula."""

    def __init__(self, kind: ParseErrorKind, message: str, line_no: int = 0):
        self.kind = kind
        self.message = message
        self.line_no = line_no
        where = f"line {line_no}: " if line_no else ""
        super().__init__(f"{where}{kind.value}: {message}")


def _parse_header(parts: List[str], line_no: int):
    if len(parts) != 4 or parts[0] != 'p' or parts[1] != 'cnf':
        raise DimacsParseError(ParseErrorKind.MALFORMED_HEADER,
                               "expected 'p cnf <num_vars> <num_clauses>'", line_no)
    try:
        n_vars, n_clauses = int(parts[2]), int(parts[3])
    except ValueError:
        raise DimacsParseError(ParseErrorKind.MALFORMED_HEADER,
                               f"counts must be integers, got '{parts[2]} {parts[3]}'", line_no)
    if n_vars < 0 or n_clauses < 0:
        raise DimacsParseError(ParseErrorKind.MALFORMED_HEADER,
                               "counts must be non-negative", line_no)
    return n_vars, n_clauses


def parse_dimacs_lines(lines: Iterable[str]) -> Formula:
    """
    Parse DIMACS CNF text line by line into a Formula.

    - 'c' lines are comments, blank lines are skipped.
    - Exactly one 'p cnf <vars> <clauses>' line, before any clause data.
    - Clauses are nonzero integers terminated by 0 and may span lines.
    - A '%' line ends the clause data (SATLIB trailer).

    Raises:
        DimacsParseError: on any violation; the declared counts are checked
        against the content instead of being trusted.
    """
    n_vars = None
    n_clauses = 0
    clauses = []
    lits = []
    line_no = 0

    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line[0] == 'c':
            continue
        if line[0] == '%':
            break

        parts = line.split()
        if line[0] == 'p':
            if n_vars is not None:
                raise DimacsParseError(ParseErrorKind.DUPLICATE_HEADER,
                                       "more than one problem line", line_no)
            n_vars, n_clauses = _parse_header(parts, line_no)
            continue

        if n_vars is None:
            raise DimacsParseError(ParseErrorKind.MISSING_HEADER,
                                   "clause data before the problem line", line_no)
        for lit_str in parts:
            try:
                lit_val = int(lit_str)
            except ValueError:
                raise DimacsParseError(ParseErrorKind.INVALID_TOKEN,
                                       f"'{lit_str}' is not an integer", line_no)
            if lit_val == 0:
                clauses.append(lits)
                lits = []
            elif abs(lit_val) > n_vars:
                raise DimacsParseError(ParseErrorKind.LITERAL_OUT_OF_RANGE,
                                       f"literal {lit_val} outside 1..{n_vars}", line_no)
            else:
                lits.append(lit_val)

    if n_vars is None:
        raise DimacsParseError(ParseErrorKind.MISSING_HEADER, "no 'p cnf' line found", line_no)
    if lits:
        raise DimacsParseError(ParseErrorKind.TRUNCATED_INPUT,
                               f"last clause {lits} is not terminated by 0", line_no)
    if len(clauses) != n_clauses:
        raise DimacsParseError(ParseErrorKind.CLAUSE_COUNT_MISMATCH,
                               f"header declares {n_clauses} clauses, found {len(clauses)}", line_no)

    return Formula.from_dimacs(clauses, n_vars)


def parse_dimacs_string(text: str) -> Formula:
    return parse_dimacs_lines(text.splitlines())


def parse_dimacs(filename: str) -> Formula:
    """
    Read a .cnf (or .cnf.gz) file into a Formula.

    Raises:
        DimacsParseError: also when the bytes are not valid UTF-8.
        OSError: when the file cannot be read.
    """
    open_fn = gzip.open if filename.endswith('.gz') else open
    with open_fn(filename, 'rb') as f:
        data = f.read()
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError as e:
        line_no = data.count(b'\n', 0, e.start) + 1
        raise DimacsParseError(ParseErrorKind.INVALID_ENCODING,
                               f"byte 0x{data[e.start]:02x} at offset {e.start} is not UTF-8", line_no)
    return parse_dimacs_string(text)



def formula_to_dimacs(formula: Formula) -> str:
    out = [f"p cnf {formula.nVars()} {formula.nClauses()}"]
    for clause in formula.to_dimacs_clauses():
        out.append(" ".join([str(x) for x in clause] + ["0"]))
    return "\n".join(out) + "\n"


def format_model(model: List[bool]) -> str:
    lits = [str(i + 1) if val else str(-(i + 1)) for i, val in enumerate(model)]
    return "v " + " ".join(lits + ["0"])


def format_result(result: SolveResult, print_model: bool = False) -> str:
    if not result.sat:
        return "UNSAT\n"
    if print_model:
        return "SAT\n" + format_model(result.model) + "\n"
    return "SAT\n"


def print_stats(S: DPLLSolver, start_time: float):
    cpu_time = time.process_time() - start_time

    process = psutil.Process()
    mem_used = process.memory_info().rss / (1024 * 1024)  # in MB

    conflicts_per_sec = S.conflicts / cpu_time if cpu_time > 0 else 0
    decisions_per_sec = S.decisions / cpu_time if cpu_time > 0 else 0
    propagations_per_sec = S.propagations / cpu_time if cpu_time > 0 else 0

    print("variables             : {}".format(S.nVars()))
    print("clauses               : {}".format(S.nClauses()))
    print("conflicts             : {:<14} ({:.0f} /sec)".format(S.conflicts, conflicts_per_sec))
    print("decisions             : {:<14} ({:.0f} /sec)".format(S.decisions, decisions_per_sec))
    print("propagations          : {:<14} ({:.0f} /sec)".format(S.propagations, propagations_per_sec))
    print("max decision level    : {}".format(S.max_level))
    print("Memory used           : {:.2f} MB".format(mem_used))
    print("CPU time              : {:.3f} s".format(cpu_time))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Solve a DIMACS CNF with the python DPLL solver."
    )
    parser.add_argument("input_file", help="Path to input CNF file (.cnf or .cnf.gz).")
    parser.add_argument("--model", action="store_true",
                        help="Print the satisfying assignment as a 'v ... 0' line.")
    parser.add_argument(
        "-o", "--output_file", default="-",
        help="Path to write result (SAT/UNSAT + model). Use '-' for stdout only."
    )
    parser.add_argument("--order", choices=("index", "clause"), default="index",
                        help="Branching order: lowest variable index, or first open clause.")
    parser.add_argument("-v", "--verbosity", type=int, choices=(0, 1, 2), default=0)
    parser.add_argument("--stats", action="store_true", help="Print search statistics.")
    parser.add_argument("--trace", action="store_true",
                        help="Print the key trace that leads to the final assignment.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    start_time = time.process_time()

    try:
        formula = parse_dimacs(args.input_file)
    except DimacsParseError as e:
        print(f"PARSE ERROR! {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, EOFError) as e:
        print(f"ERROR! Could not read {args.input_file}: {e}", file=sys.stderr)
        sys.exit(1)

    S = DPLLSolver()
    S.verbosity = args.verbosity
    S.decision_order = args.order
    status = S.solve_(formula)
    result = S.get_result(status)

    if args.stats:
        print_stats(S, start_time)
    if args.trace:
        print("c trace: " + convert_keytrace_to_str(S.key_trace_events))

    text = format_result(result, print_model=args.model)
    print(text, end='')
    if args.output_file and args.output_file != '-':
        with open(args.output_file, 'w') as rf:
            rf.write(format_result(result, print_model=True))

    sys.exit(10 if status == Lbool.TRUE else 20)


if __name__ == "__main__":
    main()
