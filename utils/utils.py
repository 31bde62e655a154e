"""
General helpers: bucket and JSON files, pysat CNF interop, model checking.
"""
import os
import json

from typing import List, Optional, Sequence, Union
from pysat.formula import CNF

from py_dpll.dpll import Formula


def get_cnf_files(folder_path: str) -> List[str]:
    """Returns a sorted list of .cnf / .cnf.gz files in the specified folder."""
    return sorted(
        os.path.join(folder_path, f)
        for f in os.listdir(folder_path)
        if f.endswith('.cnf') or f.endswith('.cnf.gz')
    )


def save_dicts_to_json(results: list, output_filename: str) -> None:
    """Dump per-instance records to output_filename, creating its folder if needed."""
    folder = os.path.dirname(output_filename)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(output_filename, 'w') as fh:
        json.dump(results, fh, indent=4)


def read_sat_problems_lines(filename: str) -> List[str]:
    """
    Read a bucket file holding one DIMACS-lite CNF per line, e.g. "1 -2 0 3 0".

    Returns:
        list: The non-blank lines, stripped.
    """
    with open(filename, 'r') as fh:
        return [line.strip() for line in fh if line.strip()]


def cnf_line_2_CNF_class(problem_line: str) -> CNF:
    """
    Parses a problem string into a CNF object.

    Args:
        problem_line (str): The problem string where clauses are divided by '0'.

    Returns:
        CNF object representing the SAT problem. A '0' with no literals before
        it is kept as an empty clause.
    """
    cnf = CNF()
    clause = []
    for token in problem_line.strip().split():
        literal = int(token)
        if literal == 0:
            cnf.append(clause)
            clause = []
        else:
            clause.append(literal)

    if clause:
        cnf.append(clause)
    return cnf


def formula_from_cnf(cnf: CNF, num_vars: Optional[int] = None) -> Formula:
    """
    Convert a pysat CNF into a Formula.

    Args:
        cnf: pysat formula.
        num_vars: Variable count; defaults to cnf.nv (the largest variable seen).
    """
    if num_vars is None:
        num_vars = cnf.nv
    return Formula.from_dimacs(cnf.clauses, num_vars)


def formula_to_cnf(formula: Formula) -> CNF:
    cnf = CNF(from_clauses=formula.to_dimacs_clauses())
    # pysat derives nv from the literals; keep declared but unused variables
    cnf.nv = max(cnf.nv, formula.nVars())
    return cnf


def write_temp_cnf_file(cnf_formula: Union[CNF, Formula], filename: str = './temp_problem.cnf') -> None:
    if isinstance(cnf_formula, Formula):
        cnf_formula = formula_to_cnf(cnf_formula)
    cnf_formula.to_file(filename)


def verify_model(clauses: Sequence[Sequence[int]], model: Sequence[bool]) -> bool:
    """
    Check a model against signed DIMACS clauses.

    Args:
        clauses: Clauses of nonzero signed integers.
        model: model[i] is the value of variable i + 1.

    Returns:
        True if every clause has at least one literal made true by the model.
    """
    for clause in clauses:
        if not any(model[abs(x) - 1] == (x > 0) for x in clause):
            return False
    return True
