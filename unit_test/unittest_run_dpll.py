# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the DIMACS parser, result rendering and the command-line runner.
"""
import io
import os
import gzip
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout, redirect_stderr

from py_dpll.dpll import Formula, SolveResult, solve
from py_dpll.run_dpll import (DimacsParseError, ParseErrorKind, parse_dimacs, parse_dimacs_string,
                              formula_to_dimacs, format_result, main)


class TestParseDimacs(unittest.TestCase):
    def assertParseError(self, text: str, kind: ParseErrorKind, line_no: int = None):
        with self.assertRaises(DimacsParseError) as ctx:
            parse_dimacs_string(text)
        self.assertEqual(ctx.exception.kind, kind)
        if line_no is not None:
            self.assertEqual(ctx.exception.line_no, line_no)
        return ctx.exception

    def test_single_unit_clause(self):
        formula = parse_dimacs_string("p cnf 1 1\n1 0\n")
        self.assertEqual(formula.nVars(), 1)
        self.assertEqual(formula.to_dimacs_clauses(), [[1]])
        result = solve(formula)
        self.assertEqual(result, SolveResult(True, [True]))

    def test_contradiction(self):
        self.assertFalse(solve(parse_dimacs_string("p cnf 1 2\n1 0\n-1 0\n")).sat)

    def test_three_variables(self):
        formula = parse_dimacs_string("p cnf 3 3\n1 2 0\n-1 3 0\n-2 -3 0\n")
        result = solve(formula)
        self.assertTrue(result.sat)
        self.assertTrue(formula.satisfied_by(result.model))

    def test_comments_blank_lines_and_whitespace(self):
        text = "c example with comments\n\n   p cnf 3 2  \nc inner comment\n  1 -2 3 0\n\n\t-1 0   \n"
        formula = parse_dimacs_string(text)
        self.assertEqual(formula.to_dimacs_clauses(), [[1, -2, 3], [-1]])

    def test_clauses_span_and_share_lines(self):
        formula = parse_dimacs_string("p cnf 4 3\n1 2\n3 0 -4 0 2\n-1 0\n")
        self.assertEqual(formula.to_dimacs_clauses(), [[1, 2, 3], [-4], [2, -1]])

    def test_lone_zero_is_empty_clause(self):
        formula = parse_dimacs_string("p cnf 0 1\n0\n")
        self.assertEqual(formula.nVars(), 0)
        self.assertTrue(formula.has_empty_clause())
        self.assertFalse(solve(formula).sat)

    def test_declared_variables_are_kept(self):
        formula = parse_dimacs_string("p cnf 5 1\n-2 0\n")
        self.assertEqual(formula.nVars(), 5)
        self.assertEqual(len(solve(formula).model), 5)

    def test_percent_ends_clause_data(self):
        formula = parse_dimacs_string("p cnf 2 1\n1 -2 0\n%\n0\n\n")
        self.assertEqual(formula.to_dimacs_clauses(), [[1, -2]])

    def test_literal_out_of_range(self):
        err = self.assertParseError("p cnf 1 1\n2 0\n", ParseErrorKind.LITERAL_OUT_OF_RANGE, 2)
        self.assertIn("2", err.message)
        self.assertParseError("p cnf 2 1\n1 -3 0\n", ParseErrorKind.LITERAL_OUT_OF_RANGE, 2)

    def test_missing_header(self):
        self.assertParseError("1 2 0\n", ParseErrorKind.MISSING_HEADER, 1)
        self.assertParseError("c only a comment\n", ParseErrorKind.MISSING_HEADER)
        self.assertParseError("", ParseErrorKind.MISSING_HEADER)

    def test_malformed_header(self):
        for text in ("p cnf 1\n", "p dnf 1 1\n1 0\n", "p cnf x 1\n", "p cnf 1 1 1\n1 0\n",
                     "p cnf -1 0\n", "pcnf 1 1\n1 0\n"):
            with self.subTest(text=text):
                self.assertParseError(text, ParseErrorKind.MALFORMED_HEADER, 1)

    def test_duplicate_header(self):
        self.assertParseError("p cnf 1 1\np cnf 1 1\n1 0\n", ParseErrorKind.DUPLICATE_HEADER, 2)

    def test_invalid_token(self):
        self.assertParseError("p cnf 2 1\n1 a 0\n", ParseErrorKind.INVALID_TOKEN, 2)
        self.assertParseError("p cnf 2 1\n1 2.0 0\n", ParseErrorKind.INVALID_TOKEN, 2)

    def test_clause_count_mismatch(self):
        self.assertParseError("p cnf 2 3\n1 0\n2 0\n", ParseErrorKind.CLAUSE_COUNT_MISMATCH)
        self.assertParseError("p cnf 2 1\n1 0\n2 0\n", ParseErrorKind.CLAUSE_COUNT_MISMATCH)

    def test_truncated_input(self):
        self.assertParseError("p cnf 2 1\n1 2\n", ParseErrorKind.TRUNCATED_INPUT)
        self.assertParseError("p cnf 2 2\n1 0\n2", ParseErrorKind.TRUNCATED_INPUT)

    def test_huge_declared_variable_count(self):
        formula = parse_dimacs_string("p cnf 1000000000 0\n")
        self.assertEqual(formula.nVars(), 1000000000)
        self.assertEqual(formula.nClauses(), 0)

    def test_error_is_a_value_error(self):
        with self.assertRaises(ValueError) as ctx:
            parse_dimacs_string("p cnf 1 1\n2 0\n")
        self.assertIn("line 2", str(ctx.exception))

    def test_serialise_and_parse_back(self):
        formula = Formula.from_dimacs([[1, -3], [], [2]], 4)
        text = formula_to_dimacs(formula)
        self.assertEqual(text, "p cnf 4 3\n1 -3 0\n0\n2 0\n")
        self.assertEqual(parse_dimacs_string(text), formula)


class TestParseFiles(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_plain_and_gzip_files(self):
        text = "c test\np cnf 3 2\n1 -2 0\n2 3 0\n"
        plain = os.path.join(self.tmp_dir, "f.cnf")
        with open(plain, "w") as fh:
            fh.write(text)
        packed = os.path.join(self.tmp_dir, "f.cnf.gz")
        with gzip.open(packed, "wt", encoding="utf-8") as fh:
            fh.write(text)

        self.assertEqual(parse_dimacs(plain), parse_dimacs(packed))
        self.assertEqual(parse_dimacs(plain).to_dimacs_clauses(), [[1, -2], [2, 3]])

    def test_invalid_utf8_is_a_parse_error(self):
        path = os.path.join(self.tmp_dir, "latin.cnf")
        with open(path, "wb") as fh:
            fh.write(b"p cnf 1 1\n1 0\nc \xff\xfe\n")
        with self.assertRaises(DimacsParseError) as ctx:
            parse_dimacs(path)
        self.assertEqual(ctx.exception.kind, ParseErrorKind.INVALID_ENCODING)
        self.assertEqual(ctx.exception.line_no, 3)

        packed = os.path.join(self.tmp_dir, "latin.cnf.gz")
        with gzip.open(packed, "wb") as fh:
            fh.write(b"p cnf 1 1\n\xc3\x28 0\n")
        with self.assertRaises(DimacsParseError) as ctx:
            parse_dimacs(packed)
        self.assertEqual(ctx.exception.line_no, 2)


class TestFormatResult(unittest.TestCase):
    def test_sat_with_and_without_model(self):
        result = SolveResult(True, [True, False, True])
        self.assertEqual(format_result(result), "SAT\n")
        self.assertEqual(format_result(result, print_model=True), "SAT\nv 1 -2 3 0\n")

    def test_unsat(self):
        self.assertEqual(format_result(SolveResult(False, None), print_model=True), "UNSAT\n")

    def test_zero_variables(self):
        self.assertEqual(format_result(SolveResult(True, []), print_model=True), "SAT\nv 0\n")


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def write_cnf(self, text: str, name: str = "problem.cnf") -> str:
        path = os.path.join(self.tmp_dir, name)
        with open(path, "w") as fh:
            fh.write(text)
        return path

    def run_main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                main(argv)
        return ctx.exception.code, out.getvalue(), err.getvalue()

    def test_sat_exit_code_and_model(self):
        path = self.write_cnf("p cnf 3 3\n1 2 0\n-1 3 0\n-2 -3 0\n")
        code, out, _ = self.run_main([path, "--model"])
        self.assertEqual(code, 10)
        self.assertEqual(out, "SAT\nv 1 -2 3 0\n")

    def test_unsat_exit_code(self):
        path = self.write_cnf("p cnf 1 2\n1 0\n-1 0\n")
        code, out, _ = self.run_main([path])
        self.assertEqual(code, 20)
        self.assertEqual(out, "UNSAT\n")

    def test_parse_error_exit_code(self):
        path = self.write_cnf("p cnf 1 1\n2 0\n")
        code, out, err = self.run_main([path])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("PARSE ERROR!", err)
        self.assertIn("literal out of range", err)

    def test_invalid_utf8_exit_code(self):
        path = os.path.join(self.tmp_dir, "latin.cnf")
        with open(path, "wb") as fh:
            fh.write(b"p cnf 1 1\n1 0\nc \xff\xfe\n")
        code, out, err = self.run_main([path])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("PARSE ERROR!", err)
        self.assertIn("invalid encoding", err)

    def test_missing_file(self):
        code, _, err = self.run_main([os.path.join(self.tmp_dir, "absent.cnf")])
        self.assertEqual(code, 1)
        self.assertIn("ERROR!", err)

    def test_output_file(self):
        path = self.write_cnf("p cnf 2 2\n1 0\n-2 0\n")
        out_path = os.path.join(self.tmp_dir, "result.txt")
        code, out, _ = self.run_main([path, "-o", out_path])
        self.assertEqual(code, 10)
        self.assertEqual(out, "SAT\n")
        with open(out_path) as fh:
            self.assertEqual(fh.read(), "SAT\nv 1 -2 0\n")

    def test_stats_and_trace(self):
        path = self.write_cnf("p cnf 2 2\n-1 2 0\n-1 -2 0\n")
        code, out, _ = self.run_main([path, "--stats", "--trace", "--order", "clause"])
        self.assertEqual(code, 10)
        self.assertIn("decisions             : 1", out)
        self.assertIn("conflicts             : 1", out)
        self.assertIn("c trace: BT -1 L 1", out)
        self.assertTrue(out.endswith("SAT\n"))


if __name__ == '__main__':
    unittest.main()
