# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the benchmark formula generators and bucket writers.
"""
import random
import shutil
import tempfile
import unittest
from pathlib import Path

import numpy as np

from py_dpll.dpll import Formula, solve
from generate_dataset.gen_cnf_buckets import (generate_sat_problem, generate_pigeonhole, generate_chain,
                                              to_dimacs_like_format, write_bucket, write_family)
from utils.utils import read_sat_problems_lines, cnf_line_2_CNF_class, verify_model


class TestGenerators(unittest.TestCase):
    def setUp(self):
        random.seed(3)
        np.random.seed(3)

    def test_planted_problems_are_satisfiable(self):
        for n in (3, 8, 15):
            with self.subTest(n=n):
                clauses = generate_sat_problem(n, int(4.3 * n), 3)
                self.assertEqual(len(clauses), int(4.3 * n))
                for c in clauses:
                    self.assertEqual(len(c), 3)
                    self.assertEqual(len(set(abs(x) for x in c)), 3)
                    self.assertTrue(all(1 <= abs(x) <= n for x in c))
                result = solve(Formula.from_dimacs(clauses, n))
                self.assertTrue(result.sat)
                self.assertTrue(verify_model(clauses, result.model))

    def test_clause_size_too_large(self):
        with self.assertRaises(ValueError):
            generate_sat_problem(2, 5, 3)

    def test_pigeonhole_shape(self):
        clauses = generate_pigeonhole(3)
        self.assertEqual(len(clauses), 4 + 3 * 6)
        self.assertEqual(max(abs(x) for c in clauses for x in c), 12)
        self.assertEqual(clauses[0], [1, 2, 3])

    def test_pigeonhole_is_unsat(self):
        for holes in (1, 2, 3):
            with self.subTest(holes=holes):
                formula = Formula.from_dimacs(generate_pigeonhole(holes), holes * (holes + 1))
                self.assertFalse(solve(formula).sat)

    def test_chain(self):
        clauses = generate_chain(5)
        self.assertEqual(clauses, [[1, 2], [-1, 3], [-2, 3], [-2, 4], [-3, 4], [-3, 5], [-4, 5]])
        self.assertTrue(solve(Formula.from_dimacs(generate_chain(30), 30)).sat)
        with self.assertRaises(ValueError):
            generate_chain(1)

    def test_dimacs_like_line(self):
        line = to_dimacs_like_format([[1, -3], [2]])
        self.assertEqual(line, "1 -3 0 2 0")
        self.assertEqual(cnf_line_2_CNF_class(line).clauses, [[1, -3], [2]])


class TestBucketWriters(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = Path(tempfile.mkdtemp())
        random.seed(5)
        np.random.seed(5)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_write_bucket(self):
        path = write_bucket(5, 9, 12, 4.1, 4.4, 3, self.tmp_dir / "raw")
        self.assertEqual(path.name, "sat_5_9.txt")
        lines = read_sat_problems_lines(str(path))
        self.assertEqual(len(lines), 12)
        for line in lines:
            cnf = cnf_line_2_CNF_class(line)
            self.assertLessEqual(cnf.nv, 9)
            self.assertTrue(all(len(c) == 3 for c in cnf.clauses))
            self.assertTrue(solve(Formula.from_dimacs(cnf.clauses, cnf.nv)).sat)

    def test_write_family(self):
        path = write_family("pigeonhole", [1, 2], self.tmp_dir)
        lines = read_sat_problems_lines(str(path))
        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[0], "1 0 2 0 -1 -2 0")


if __name__ == '__main__':
    unittest.main()
