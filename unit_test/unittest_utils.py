# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the general helpers and the benchmark runner.
"""
import os
import json
import random
import shutil
import tempfile
import unittest

import numpy as np
from pysat.formula import CNF

from py_dpll.dpll import Formula
from py_dpll.run_dpll import parse_dimacs
from utils.utils import (get_cnf_files, save_dicts_to_json, read_sat_problems_lines, cnf_line_2_CNF_class,
                         formula_from_cnf, formula_to_cnf, write_temp_cnf_file, verify_model)
from generate_dataset.gen_cnf_buckets import generate_pigeonhole, generate_sat_problem, to_dimacs_like_format
from analysis_data.bench_dpll import METRICS, solve_line, summarize


class TestUtils(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_cnf_line_keeps_empty_clause(self):
        cnf = cnf_line_2_CNF_class("1 -2 0 0 3 0")
        self.assertEqual(cnf.clauses, [[1, -2], [], [3]])
        self.assertEqual(cnf.nv, 3)

    def test_cnf_line_without_final_zero(self):
        self.assertEqual(cnf_line_2_CNF_class("1 0 2 -3").clauses, [[1], [2, -3]])

    def test_formula_from_and_to_cnf(self):
        cnf = CNF(from_clauses=[[1, -3], [2]])
        formula = formula_from_cnf(cnf)
        self.assertEqual(formula, Formula.from_dimacs([[1, -3], [2]], 3))
        self.assertEqual(formula_from_cnf(cnf, num_vars=5).nVars(), 5)

        back = formula_to_cnf(Formula.from_dimacs([[-2]], 4))
        self.assertEqual(back.clauses, [[-2]])
        self.assertEqual(back.nv, 4)

    def test_write_temp_cnf_file_reads_back(self):
        formula = Formula.from_dimacs([[1, -2], [2, 3], [-3]], 4)
        filename = os.path.join(self.tmp_dir, "problem.cnf")
        write_temp_cnf_file(formula, filename)
        self.assertEqual(parse_dimacs(filename), formula)

        filename = os.path.join(self.tmp_dir, "from_cnf.cnf")
        write_temp_cnf_file(CNF(from_clauses=[[1, 2], [-1]]), filename)
        self.assertEqual(parse_dimacs(filename).to_dimacs_clauses(), [[1, 2], [-1]])

    def test_verify_model(self):
        clauses = [[1, 2], [-1, 3], [-2, -3]]
        self.assertTrue(verify_model(clauses, [True, False, True]))
        self.assertFalse(verify_model(clauses, [False, False, True]))
        self.assertFalse(verify_model([[]], [True]))
        self.assertTrue(verify_model([], []))

    def test_get_cnf_files(self):
        for name in ("b.cnf", "a.cnf.gz", "notes.txt", "c.cnf"):
            open(os.path.join(self.tmp_dir, name), "w").close()
        files = [os.path.basename(f) for f in get_cnf_files(self.tmp_dir)]
        self.assertEqual(files, ["a.cnf.gz", "b.cnf", "c.cnf"])

    def test_save_dicts_and_read_lines(self):
        out = os.path.join(self.tmp_dir, "nested", "stats.json")
        save_dicts_to_json([{"sat": True, "decisions": 3}], out)
        with open(out) as fh:
            self.assertEqual(json.load(fh), [{"sat": True, "decisions": 3}])

        lines_file = os.path.join(self.tmp_dir, "bucket.txt")
        with open(lines_file, "w") as fh:
            fh.write("1 0\n\n  -1 2 0 \n")
        self.assertEqual(read_sat_problems_lines(lines_file), ["1 0", "-1 2 0"])


class TestBench(unittest.TestCase):
    def setUp(self):
        random.seed(11)
        np.random.seed(11)

    def test_solve_line_pigeonhole(self):
        record = solve_line(to_dimacs_like_format(generate_pigeonhole(2)))
        self.assertEqual(record["n_v"], 6)
        self.assertEqual(record["n_c"], 9)
        self.assertFalse(record["sat"])
        self.assertFalse(record["oracle_sat"])
        self.assertTrue(record["agree"])
        self.assertIsNone(record["model_ok"])
        self.assertGreater(record["dpll_stats"]["conflicts"], 0)

    def test_solve_line_planted(self):
        line = to_dimacs_like_format(generate_sat_problem(12, 50, 3))
        for order in ("index", "clause"):
            with self.subTest(order=order):
                record = solve_line(line, order)
                self.assertTrue(record["sat"])
                self.assertTrue(record["agree"])
                self.assertTrue(record["model_ok"])
                self.assertEqual(set(record["dpll_stats"]),
                                 {"decisions", "propagations", "conflicts", "max_level", "time_ms"})

    def test_summarize(self):
        records = [{"dpll_stats": {"decisions": d, "propagations": 10 * d, "conflicts": 0, "time_ms": 1.0}}
                   for d in (1, 2, 9)]
        summary = summarize(records)
        self.assertEqual(set(summary), set(METRICS))
        self.assertEqual(summary["decisions"], 2.0)
        self.assertEqual(summary["propagations"], 20.0)
        self.assertEqual(summarize([])["decisions"], None)


if __name__ == '__main__':
    unittest.main()
