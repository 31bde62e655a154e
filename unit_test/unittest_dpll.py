# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the DPLL search: soundness, completeness against brute force
and Minisat22, determinism, branching order and search statistics.
"""
import io
import itertools
import random
import unittest
from contextlib import redirect_stdout

from pysat.examples.genhard import PHP
from pysat.solvers import Minisat22

from py_dpll.dpll import DPLLSolver, Formula, Lbool, solve
from generate_dataset.gen_cnf_buckets import generate_pigeonhole
from utils.trace_utils import extract_trace


def brute_force_sat(clauses, num_vars) -> bool:
    for values in itertools.product([False, True], repeat=num_vars):
        if all(any(values[abs(x) - 1] == (x > 0) for x in c) for c in clauses):
            return True
    return False


def random_clauses(rng: random.Random, num_vars: int, num_clauses: int):
    clauses = []
    for _ in range(num_clauses):
        size = rng.randint(1, min(3, num_vars))
        chosen = rng.sample(range(1, num_vars + 1), size)
        clauses.append([v if rng.random() < 0.5 else -v for v in chosen])
    return clauses


class TestSolveScenarios(unittest.TestCase):
    def test_single_unit_clause(self):
        result = solve(Formula.from_dimacs([[1]], 1))
        self.assertTrue(result.sat)
        self.assertEqual(result.model, [True])

    def test_contradicting_units(self):
        result = solve(Formula.from_dimacs([[1], [-1]], 1))
        self.assertFalse(result.sat)
        self.assertIsNone(result.model)

    def test_three_variable_formula(self):
        clauses = [[1, 2], [-1, 3], [-2, -3]]
        result = solve(Formula.from_dimacs(clauses, 3))
        self.assertTrue(result.sat)
        self.assertEqual(result.model, [True, False, True])

    def test_pigeonhole_four_into_three(self):
        clauses = generate_pigeonhole(3)
        for order in ("index", "clause"):
            with self.subTest(order=order):
                self.assertFalse(solve(Formula.from_dimacs(clauses, 12), decision_order=order).sat)

    def test_pigeonhole_other_encoding(self):
        php = PHP(3)
        formula = Formula.from_dimacs(php.clauses, php.nv)
        self.assertFalse(solve(formula).sat)

    def test_pigeonhole_reversed_variable_order(self):
        clauses = [[13 - abs(x) if x > 0 else -(13 - abs(x)) for x in c] for c in generate_pigeonhole(3)]
        self.assertFalse(solve(Formula.from_dimacs(clauses, 12)).sat)

    def test_empty_formula_is_sat(self):
        result = solve(Formula([], 0))
        self.assertTrue(result.sat)
        self.assertEqual(result.model, [])

    def test_empty_clause_is_unsat(self):
        for clauses in ([[]], [[1, 2], [], [3]], [[1], [2], [-3], []]):
            with self.subTest(clauses=clauses):
                self.assertFalse(solve(Formula.from_dimacs(clauses, 3)).sat)

    def test_unused_variables_are_completed(self):
        result = solve(Formula.from_dimacs([[-2]], 4))
        self.assertTrue(result.sat)
        self.assertEqual(len(result.model), 4)
        self.assertFalse(result.model[1])

    def test_tautology_and_duplicates(self):
        result = solve(Formula.from_dimacs([[1, -1], [2, 2], [-2, -2, 3]], 3))
        self.assertTrue(result.sat)
        self.assertTrue(result.model[1])
        self.assertTrue(result.model[2])


class TestSolverProperties(unittest.TestCase):
    def setUp(self):
        self.rng = random.Random(20240611)

    def test_against_brute_force(self):
        for i in range(300):
            num_vars = self.rng.randint(1, 6)
            clauses = random_clauses(self.rng, num_vars, self.rng.randint(1, 14))
            formula = Formula.from_dimacs(clauses, num_vars)
            for order in ("index", "clause"):
                with self.subTest(i=i, order=order):
                    result = solve(formula, decision_order=order)
                    self.assertEqual(result.sat, brute_force_sat(clauses, num_vars))
                    if result.sat:
                        self.assertTrue(formula.satisfied_by(result.model))

    def test_against_minisat(self):
        for i in range(60):
            num_vars = self.rng.randint(10, 25)
            clauses = [self.rng.sample(range(1, num_vars + 1), 3) for _ in range(int(4.3 * num_vars))]
            clauses = [[v if self.rng.random() < 0.5 else -v for v in c] for c in clauses]
            formula = Formula.from_dimacs(clauses, num_vars)
            with self.subTest(i=i):
                result = solve(formula)
                with Minisat22(bootstrap_with=clauses) as oracle:
                    self.assertEqual(result.sat, oracle.solve())
                if result.sat:
                    self.assertTrue(formula.satisfied_by(result.model))

    def test_deterministic(self):
        for i in range(30):
            num_vars = self.rng.randint(3, 12)
            formula = Formula.from_dimacs(random_clauses(self.rng, num_vars, 3 * num_vars), num_vars)
            with self.subTest(i=i):
                first = solve(formula)
                second = solve(formula)
                self.assertEqual(first, second)

    def test_units_only_need_no_decision(self):
        S = DPLLSolver()
        status = S.solve_(Formula.from_dimacs([[1], [-2], [3], [1]], 3))
        self.assertEqual(status, Lbool.TRUE)
        self.assertEqual(S.decisions, 0)
        self.assertEqual(S.get_result(status).model, [True, False, True])

    def test_deep_search_does_not_recurse(self):
        n = 1200
        formula = Formula.from_dimacs([[i, -i] for i in range(1, n + 1)], n)
        S = DPLLSolver()
        self.assertEqual(S.solve_(formula), Lbool.TRUE)
        self.assertEqual(S.decisions, n)
        self.assertEqual(S.max_level, n)


class TestSolverState(unittest.TestCase):
    def test_backtrack_takes_false_branch(self):
        S = DPLLSolver()
        S.record_entire_trace = True
        status = S.solve_(Formula.from_dimacs([[-1, 2], [-1, -2]], 2))
        self.assertEqual(status, Lbool.TRUE)
        self.assertEqual(S.get_result(status).model, [False, True])
        self.assertEqual(S.decisions, 1)
        self.assertEqual(S.conflicts, 1)
        self.assertEqual(S.trace, "D 1 L 1 A 2 BT -1 L 1 ")
        self.assertEqual(S.key_trace_events, [("BT", -1, 1)])

    def test_trace_of_three_variable_formula(self):
        S = DPLLSolver()
        S.record_entire_trace = True
        S.solve_(Formula.from_dimacs([[1, 2], [-1, 3], [-2, -3]], 3))
        self.assertEqual(S.trace, "D 1 L 1 A 3 A -2 ")
        self.assertEqual(S.key_trace_events, [("D", 1, 1), ("A", 3, 1), ("A", -2, 1)])

    def test_decision_orders_differ(self):
        formula = Formula.from_dimacs([[3, 2]], 3)

        by_index = DPLLSolver()
        by_index.solve_(formula)
        self.assertEqual(by_index.decisions, 2)
        self.assertEqual(by_index.key_trace_events, [("D", 1, 1), ("D", 2, 2)])

        by_clause = DPLLSolver()
        by_clause.decision_order = "clause"
        by_clause.solve_(formula)
        self.assertEqual(by_clause.decisions, 1)
        self.assertEqual(by_clause.key_trace_events, [("D", 3, 1)])

    def test_unsat_leaves_no_solution(self):
        S = DPLLSolver()
        status = S.solve_(Formula.from_dimacs(generate_pigeonhole(2), 6))
        self.assertEqual(status, Lbool.FALSE)
        self.assertEqual(S.solution, [])
        self.assertEqual(S.get_result(status), (False, None))
        self.assertGreater(S.conflicts, 0)

    def test_solver_is_reusable(self):
        S = DPLLSolver()
        self.assertEqual(S.solve_(Formula.from_dimacs([[1], [-1]], 1)), Lbool.FALSE)
        self.assertEqual(S.solve_(Formula.from_dimacs([[1, 2], [-1]], 2)), Lbool.TRUE)
        self.assertEqual(S.solution, [Lbool.FALSE, Lbool.TRUE])
        self.assertEqual(S.solves, 2)

    def test_model_and_trail_stay_consistent(self):
        S = DPLLSolver()
        S.solve_(Formula.from_dimacs([[1, 2], [-1, 3], [-2, -3]], 3))
        assigned = [v for v in S.model.assigns if v != Lbool.UNDEF]
        self.assertEqual(len(assigned), S.model.nAssigns())
        self.assertEqual(len(S.model.assigns), 3)

    def test_invalid_options(self):
        S = DPLLSolver()
        S.decision_order = "random"
        with self.assertRaises(ValueError):
            S.solve_(Formula([], 0))
        S = DPLLSolver()
        S.verbosity = 7
        with self.assertRaises(ValueError):
            S.solve_(Formula([], 0))

    def test_verbose_output_is_the_trace(self):
        S = DPLLSolver()
        S.verbosity = 1
        S.record_entire_trace = True
        buf = io.StringIO()
        with redirect_stdout(buf):
            S.solve_(Formula.from_dimacs([[-1, 2], [-1, -2], [3, 1]], 3))
        self.assertEqual(extract_trace(buf.getvalue()), S.trace.strip())


if __name__ == '__main__':
    unittest.main()
