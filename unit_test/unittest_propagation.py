# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the data model (literals, Formula, Model/trail) and for unit propagation.
"""
import unittest

from py_dpll.dpll import (DPLLSolver, Formula, Model, Lbool, CRef, lbool,
                          mkLit, var, sign, lit_from_dimacs, lit_to_dimacs)


def L(x: int) -> int:
    return lit_from_dimacs(x)


class TestLiterals(unittest.TestCase):
    def test_encoding(self):
        self.assertEqual(mkLit(0, False), 0)
        self.assertEqual(mkLit(0, True), 1)
        self.assertEqual(mkLit(2, True), 5)
        self.assertEqual(var(5), 2)
        self.assertTrue(sign(5))
        self.assertFalse(sign(4))
        self.assertEqual(5 ^ 1, 4)

    def test_dimacs_mapping(self):
        self.assertEqual(L(1), 0)
        self.assertEqual(L(-1), 1)
        self.assertEqual(L(-3), 5)
        for x in (1, -1, 7, -7, 42):
            self.assertEqual(lit_to_dimacs(L(x)), x)

    def test_lbool(self):
        self.assertEqual(lbool(True), Lbool.TRUE)
        self.assertEqual(lbool(False), Lbool.FALSE)
        self.assertEqual(lbool(None), Lbool.UNDEF)


class TestFormula(unittest.TestCase):
    def test_occurrence_lists(self):
        f = Formula.from_dimacs([[1, -2], [2, 3], [-2, -3]], 3)
        self.assertEqual(f.nVars(), 3)
        self.assertEqual(f.nClauses(), 3)
        self.assertEqual(f.occurrences(L(-2)), (0, 2))
        self.assertEqual(f.occurrences(L(2)), (1,))
        self.assertEqual(f.occurrences(L(-1)), ())
        self.assertEqual(len(f), 3)
        self.assertEqual(f[1], (L(2), L(3)))
        self.assertEqual(list(f), list(f.clauses))

    def test_duplicate_literals_collapse(self):
        f = Formula.from_dimacs([[1, 1, -2, 1]], 2)
        self.assertEqual(f.to_dimacs_clauses(), [[1, -2]])
        self.assertEqual(f.occurrences(L(1)), (0,))

    def test_out_of_range_literal(self):
        with self.assertRaises(ValueError):
            Formula.from_dimacs([[1, 3]], 2)
        with self.assertRaises(ValueError):
            Formula.from_dimacs([[0]], 2)
        with self.assertRaises(ValueError):
            Formula([[mkLit(2, False)]], 2)
        with self.assertRaises(ValueError):
            Formula([], -1)

    def test_immutable(self):
        f = Formula.from_dimacs([[1]], 1)
        with self.assertRaises(AttributeError):
            f.clauses = ()
        with self.assertRaises(TypeError):
            f.clauses[0] = ()

    def test_huge_declared_variable_count(self):
        f = Formula([[mkLit(0, True)]], 10 ** 9)
        self.assertEqual(f.nVars(), 10 ** 9)
        self.assertEqual(f.occurrences(mkLit(0, True)), (0,))
        self.assertEqual(f.occurrences(mkLit(10 ** 9 - 1, False)), ())

    def test_equality_and_empty_clause(self):
        a = Formula.from_dimacs([[1, -2], []], 2)
        b = Formula.from_dimacs([[1, -2], []], 2)
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertTrue(a.has_empty_clause())
        self.assertNotEqual(a, Formula.from_dimacs([[1, -2], []], 3))

    def test_satisfied_by(self):
        f = Formula.from_dimacs([[1, 2], [-1, 3], [-2, -3]], 3)
        self.assertTrue(f.satisfied_by([True, False, True]))
        self.assertFalse(f.satisfied_by([True, True, True]))
        self.assertFalse(f.satisfied_by([True, False]))


class TestModelTrail(unittest.TestCase):
    def setUp(self):
        self.model = Model(4)

    def test_initially_undetermined(self):
        self.assertEqual(self.model.assigns, [Lbool.UNDEF] * 4)
        self.assertEqual(self.model.nAssigns(), 0)
        self.assertEqual(self.model.checkpoint(), 0)
        self.assertFalse(self.model.is_complete())

    def test_enqueue_sets_value_and_trail(self):
        self.model.uncheckedEnqueue(L(-2))
        self.assertEqual(self.model.value_var(1), Lbool.FALSE)
        self.assertEqual(self.model.value_lit(L(-2)), Lbool.TRUE)
        self.assertEqual(self.model.value_lit(L(2)), Lbool.FALSE)
        self.assertEqual(self.model.value_lit(L(3)), Lbool.UNDEF)
        self.assertEqual(self.model.trail, [L(-2)])

    def test_enqueue_twice_is_rejected(self):
        self.model.uncheckedEnqueue(L(1))
        with self.assertRaises(AssertionError):
            self.model.uncheckedEnqueue(L(-1))

    def test_restore_to_checkpoint(self):
        self.model.uncheckedEnqueue(L(1))
        cp = self.model.checkpoint()
        self.model.uncheckedEnqueue(L(-2))
        self.model.uncheckedEnqueue(L(4))
        self.model.qhead = 3

        self.model.restore(cp)

        self.assertEqual(self.model.trail, [L(1)])
        self.assertEqual(self.model.assigns, [Lbool.TRUE, Lbool.UNDEF, Lbool.UNDEF, Lbool.UNDEF])
        self.assertEqual(self.model.qhead, 1)

    def test_restore_keeps_lower_queue_head(self):
        self.model.uncheckedEnqueue(L(1))
        self.model.uncheckedEnqueue(L(2))
        self.model.restore(1)
        self.assertEqual(self.model.qhead, 0)
        self.model.restore(1)
        self.assertEqual(self.model.trail, [L(1)])

    def test_restore_everything(self):
        for x in (1, -2, 3, -4):
            self.model.uncheckedEnqueue(L(x))
        self.assertTrue(self.model.is_complete())
        self.model.restore(0)
        self.assertEqual(self.model.assigns, [Lbool.UNDEF] * 4)
        self.assertEqual(self.model.trail, [])


class TestPropagate(unittest.TestCase):
    def make_solver(self, clauses, num_vars) -> DPLLSolver:
        S = DPLLSolver()
        S.reset(Formula.from_dimacs(clauses, num_vars))
        return S

    def test_chain_reaches_fixpoint(self):
        S = self.make_solver([[-1, 2], [-2, 3], [-3, 4]], 4)
        S.assign(L(1))
        self.assertEqual(S.propagate(), CRef.UNDEF)
        self.assertEqual(S.model.trail, [L(1), L(2), L(3), L(4)])
        self.assertEqual(S.propagations, 4)
        self.assertEqual(S.model.qhead, S.model.nAssigns())

    def test_conflict_is_reported_without_undo(self):
        S = self.make_solver([[-1, 2], [-1, -2]], 2)
        S.assign(L(1))
        self.assertEqual(S.propagate(), 1)
        self.assertEqual(S.model.trail, [L(1), L(2)])
        self.assertEqual(S.model.qhead, S.model.nAssigns())
        self.assertEqual(S.conflicts, 1)

    def test_two_open_literals_force_nothing(self):
        S = self.make_solver([[-1, 2, 3]], 3)
        S.assign(L(1))
        self.assertEqual(S.propagate(), CRef.UNDEF)
        self.assertEqual(S.model.trail, [L(1)])

    def test_satisfied_clause_is_skipped(self):
        S = self.make_solver([[-1, 2, 3]], 3)
        S.assign(L(3))
        S.assign(L(1))
        S.assign(L(-2))
        self.assertEqual(S.propagate(), CRef.UNDEF)
        self.assertEqual(S.model.nAssigns(), 3)

    def test_enqueue_units(self):
        S = self.make_solver([[2, 3], [-1], [3], [-1]], 3)
        self.assertEqual(S.enqueueUnits(), CRef.UNDEF)
        self.assertEqual(S.model.trail, [L(-1), L(3)])

    def test_enqueue_units_conflicts(self):
        S = self.make_solver([[1, 2], [2], [-2]], 2)
        self.assertEqual(S.enqueueUnits(), 2)
        S = self.make_solver([[1, 2], [], [1]], 2)
        self.assertEqual(S.enqueueUnits(), 1)

    def test_no_branch_variable_once_complete(self):
        S = self.make_solver([[1, 2]], 2)
        S.assign(L(-1))
        self.assertEqual(S.pickBranchVar(), 1)
        S.assign(L(2))
        self.assertEqual(S.pickBranchVar(), S.var_Undef)

    def test_propagation_after_restore(self):
        S = self.make_solver([[-1, 2], [1, 3]], 3)
        cp = S.model.checkpoint()
        S.assign(L(1))
        self.assertEqual(S.propagate(), CRef.UNDEF)
        S.model.restore(cp)
        S.assign(L(-1))
        self.assertEqual(S.propagate(), CRef.UNDEF)
        self.assertEqual(S.model.trail, [L(-1), L(3)])
        self.assertEqual(S.model.value_var(1), Lbool.UNDEF)


if __name__ == '__main__':
    unittest.main()
