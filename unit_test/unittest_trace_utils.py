# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the trace helpers, including agreement between the key trace
kept by the solver and the one reduced from its entire trace.
"""
import random
import unittest

import numpy as np

from py_dpll.dpll import DPLLSolver, Formula
from generate_dataset.gen_cnf_buckets import generate_pigeonhole, generate_sat_problem
from utils.trace_utils import (convert_keytrace_to_str, extract_trace,
                               extract_numbers_in_order, get_key_trace)


class TestTraceHelpers(unittest.TestCase):
    def test_convert_keytrace_to_str(self):
        events = [('A', 3, 0), ('D', 1, 1), ('A', -2, 1), ('BT', -4, 2)]
        self.assertEqual(convert_keytrace_to_str(events), "A 3 D 1 L 1 A -2 BT -4 L 2")
        self.assertEqual(convert_keytrace_to_str([]), "")

    def test_convert_rejects_unknown_event(self):
        with self.assertRaises(ValueError):
            convert_keytrace_to_str([('X', 1, 0)])

    def test_extract_trace(self):
        output = "banner\nA 4 D 1 L 1 A -2 BT -1 L 1 A 5 \nSAT\n"
        self.assertEqual(extract_trace(output), "A 4 D 1 L 1 A -2 BT -1 L 1 A 5")

    def test_extract_numbers_in_order(self):
        trace = "A 4 D 1 L 1 A -2 D 3 L 2 BT -3 L 2 BT -1 L 1"
        self.assertEqual(extract_numbers_in_order(trace), [1, 3, -3, -1])

    def test_get_key_trace(self):
        trace = "A 4 D 1 L 1 A -2 D 3 L 2 A 5 BT -3 L 2 A 6"
        self.assertEqual(get_key_trace(trace), "A 4 D 1 L 1 A -2 BT -3 L 2 A 6")

        trace = "A 4 D 1 L 1 A -2 D 3 L 2 A 5 BT -3 L 2 BT -1 L 1 A 7"
        self.assertEqual(get_key_trace(trace), "A 4 BT -1 L 1 A 7")

    def test_get_key_trace_errors(self):
        with self.assertRaises(ValueError):
            get_key_trace("D 1 X 1")
        with self.assertRaises(ValueError):
            get_key_trace("A")
        with self.assertRaises(ValueError):
            get_key_trace("Q 1")
        for truncated in ("D", "BT", "A 1 D 2", "D 1 L"):
            with self.assertRaises(ValueError):
                get_key_trace(truncated)


class TestSolverTraces(unittest.TestCase):
    def setUp(self):
        random.seed(7)
        np.random.seed(7)

    def solve_with_trace(self, clauses, num_vars) -> DPLLSolver:
        S = DPLLSolver()
        S.record_entire_trace = True
        S.solve_(Formula.from_dimacs(clauses, num_vars))
        return S

    def test_key_trace_matches_entire_trace(self):
        problems = [(generate_pigeonhole(h), h * (h + 1)) for h in (1, 2, 3)]
        for _ in range(20):
            n = random.randint(5, 12)
            problems.append((generate_sat_problem(n, 4 * n, 3), n))
        for i, (clauses, n) in enumerate(problems):
            with self.subTest(i=i):
                S = self.solve_with_trace(clauses, n)
                self.assertEqual(get_key_trace(S.trace), convert_keytrace_to_str(S.key_trace_events))

    def test_key_trace_describes_final_trail(self):
        clauses = generate_sat_problem(10, 40, 3)
        S = self.solve_with_trace(clauses, 10)
        key = convert_keytrace_to_str(S.key_trace_events).split()
        lits = [int(key[i + 1]) for i, t in enumerate(key) if t in ('D', 'BT', 'A')]
        trail = [(x >> 1) + 1 if not x & 1 else -((x >> 1) + 1) for x in S.model.trail]
        self.assertEqual(lits, trail)


if __name__ == '__main__':
    unittest.main()
