# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Python DPLL Implementation.

A chronological-backtracking DPLL solver with unit propagation. Literals use
the MiniSat encoding (2 * var + sign), assignments are undone through a trail
with length checkpoints, and the search keeps an explicit decision stack
instead of recursing, so its depth is bounded by memory, not by the call stack.
"""
from enum import IntEnum
from typing import Iterable, List, NamedTuple, Optional, Sequence


class Lbool(IntEnum):
    TRUE = 0
    FALSE = 1
    UNDEF = 2


def lbool(val: Optional[bool]) -> Lbool:
    if val is True:
        return Lbool.TRUE
    if val is False:
        return Lbool.FALSE
    return Lbool.UNDEF


def sign(lit) -> bool:
    return lit & 1 == 1


def var(lit) -> int:
    return lit >> 1


def mkLit(var_index: int, sign_bit: bool) -> int:
    return (var_index << 1) + (1 if sign_bit else 0)


def lit_from_dimacs(x: int) -> int:
    """Map a signed DIMACS literal (1-based, nonzero) to the internal encoding."""
    assert x != 0
    return mkLit(abs(x) - 1, x < 0)


def lit_to_dimacs(lit: int) -> int:
    var_num = var(lit) + 1
    return -var_num if sign(lit) else var_num


# Clause reference: index of a clause inside Formula.clauses.
class CRef:
    UNDEF = -1


class EnumOption:
    def __init__(self, category, name, desc, default, choices):
        self.category = category
        self.name = name
        self.desc = desc
        self.choices = tuple(choices)
        self.value = default

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, v):
        if v not in self.choices:
            raise ValueError(f"Option '{self.name}' must be one of {self.choices}, got {v!r}")
        self._value = v


class IntOption:
    def __init__(self, category, name, desc, default, irange):
        self.category = category
        self.name = name
        self.desc = desc
        self.irange = irange
        self.value = default

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, v):
        lo, hi = self.irange
        if not isinstance(v, int) or not lo <= v <= hi:
            raise ValueError(f"Option '{self.name}' must be an int in [{lo}, {hi}], got {v!r}")
        self._value = v


class Formula:
    """
    An immutable CNF formula over variables 0..num_vars-1.

    Clauses are stored as tuples of internal literals. ``occurrences(p)`` lists
    the indices of the clauses containing literal ``p``, which is what
    propagation scans when ``p`` becomes false. Only literals that occur get an
    entry, so the index grows with the clauses, not with the declared
    variable count.
    """

    def __init__(self, clauses: Iterable[Iterable[int]], num_vars: int):
        if num_vars < 0:
            raise ValueError(f"num_vars must be non-negative, got {num_vars}")
        self._num_vars = num_vars
        cs = []
        occurs = {}
        for ci, clause in enumerate(clauses):
            lits = []
            for p in clause:
                if p < 0 or var(p) >= num_vars:
                    raise ValueError(f"Literal {p} of clause {ci} is outside {num_vars} variables")
                if p not in lits:
                    lits.append(p)
                    occurs.setdefault(p, []).append(ci)
            cs.append(tuple(lits))
        self._clauses = tuple(cs)
        self._occurs = {p: tuple(o) for p, o in occurs.items()}

    @classmethod
    def from_dimacs(cls, clauses: Iterable[Iterable[int]], num_vars: int) -> 'Formula':
        """Build a Formula from clauses of signed 1-based DIMACS integers."""
        internal = []
        for clause in clauses:
            lits = []
            for x in clause:
                if x == 0 or abs(x) > num_vars:
                    raise ValueError(f"DIMACS literal {x} is outside 1..{num_vars}")
                lits.append(lit_from_dimacs(x))
            internal.append(lits)
        return cls(internal, num_vars)

    @property
    def clauses(self):
        return self._clauses

    def occurrences(self, p: int):
        return self._occurs.get(p, ())

    def nVars(self) -> int:
        return self._num_vars

    def nClauses(self) -> int:
        return len(self)

    def __len__(self) -> int:
        return len(self._clauses)

    def __iter__(self):
        return iter(self._clauses)

    def __getitem__(self, i: int):
        return self._clauses[i]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Formula):
            return NotImplemented
        return self._num_vars == other._num_vars and self._clauses == other._clauses

    def __hash__(self):
        return hash((self._num_vars, self._clauses))

    def __repr__(self) -> str:
        return f"Formula(num_vars={self._num_vars}, clauses={self.to_dimacs_clauses()})"

    def to_dimacs_clauses(self) -> List[List[int]]:
        return [[lit_to_dimacs(p) for p in c] for c in self._clauses]

    def has_empty_clause(self) -> bool:
        return any(len(c) == 0 for c in self._clauses)

    def satisfied_by(self, values: Sequence[bool]) -> bool:
        """Check a total assignment (one bool per variable) against every clause."""
        if len(values) != self._num_vars:
            return False
        return all(
            any(values[var(p)] != sign(p) for p in c)
            for c in self._clauses
        )


class Model:
    """
    Partial assignment plus the trail of assignment events.

    The trail holds the literals made true, oldest first. Its length is a
    checkpoint; ``restore`` is the only way assignments are undone.
    """

    def __init__(self, num_vars: int):
        self.assigns = [Lbool.UNDEF] * num_vars
        self.trail = []
        self.qhead = 0

    def nVars(self) -> int:
        return len(self.assigns)

    def nAssigns(self) -> int:
        return len(self.trail)

    def value_var(self, x: int) -> Lbool:
        return self.assigns[x]

    def value_lit(self, p: int) -> Lbool:
        val = self.assigns[var(p)]
        if val == Lbool.UNDEF:
            return Lbool.UNDEF
        if sign(p):
            return Lbool.FALSE if val == Lbool.TRUE else Lbool.TRUE
        return val

    def uncheckedEnqueue(self, p: int):
        assert self.value_lit(p) == Lbool.UNDEF
        self.assigns[var(p)] = Lbool.FALSE if sign(p) else Lbool.TRUE
        self.trail.append(p)

    def checkpoint(self) -> int:
        return len(self.trail)

    def restore(self, checkpoint: int):
        assert 0 <= checkpoint <= len(self.trail)
        for c in range(len(self.trail) - 1, checkpoint - 1, -1):
            self.assigns[var(self.trail[c])] = Lbool.UNDEF
        del self.trail[checkpoint:]
        self.qhead = min(self.qhead, checkpoint)

    def is_complete(self) -> bool:
        return len(self.trail) == len(self.assigns)


class Decision:
    def __init__(self, var_index: int, checkpoint: int):
        self.var = var_index
        self.checkpoint = checkpoint  # trail length before the decision
        self.flipped = False          # True once the False branch is in progress


class SolveResult(NamedTuple):
    sat: bool
    model: Optional[List[bool]]


class DPLLSolver:
    def __init__(self):
        _cat = "CORE"
        self.opt_decision_order = EnumOption(_cat, "order", "Branching variable order", "index",
                                             ("index", "clause"))
        self.opt_verbosity = IntOption(_cat, "verb", "Verbosity level", 0, (0, 2))

        self.decision_order = self.opt_decision_order.value
        self.verbosity = self.opt_verbosity.value
        self.var_Undef = -1

        self.solves = 0
        self.decisions = 0
        self.propagations = 0
        self.conflicts = 0
        self.max_level = 0

        self.formula = None
        self.model = None
        self.decision_stack = []
        self.solution = []

        self.trace_enabled = True
        self.trace = ''
        self.record_entire_trace = False
        self.record_key_trace = True
        self.key_trace_events = []

    def decisionLevel(self) -> int:
        return len(self.decision_stack)

    def nVars(self) -> int:
        return self.formula.nVars() if self.formula is not None else 0

    def nClauses(self) -> int:
        return self.formula.nClauses() if self.formula is not None else 0

    def reset(self, formula: Formula):
        """Start a fresh solve over ``formula``: new Model, empty trail and stack."""
        self.formula = formula
        self.model = Model(formula.nVars())
        self.decision_stack = []
        self.solution = []
        self.trace = ''
        self.key_trace_events = []

    def _record(self, etype: str, p: int, level: int):
        if not self.trace_enabled:
            return
        val = lit_to_dimacs(p)
        if etype == 'A':
            token = f"A {val} "
        else:
            token = f"{etype} {val} L {level} "
        if self.record_entire_trace:
            self.trace += token
        if self.record_key_trace:
            if etype == 'BT':
                self.key_trace_events = [
                    (t, v, lvl) for (t, v, lvl) in self.key_trace_events if lvl < level
                ]
            self.key_trace_events.append((etype, val, level))
        if self.verbosity >= 1:
            print(token, end='')

    def assign(self, p: int, etype: str = 'A'):
        self.model.uncheckedEnqueue(p)
        self._record(etype, p, self.decisionLevel())

    def enqueueUnits(self) -> int:
        """
        Seed the propagation queue with the formula's unit clauses.

        Returns the index of a clause that is already false (an empty clause,
        or a unit clause contradicting an earlier one), else CRef.UNDEF.
        """
        for ci, c in enumerate(self.formula):
            if len(c) == 0:
                return ci
            if len(c) == 1:
                val = self.model.value_lit(c[0])
                if val == Lbool.FALSE:
                    return ci
                if val == Lbool.UNDEF:
                    self.assign(c[0])
        return CRef.UNDEF

    def propagate(self) -> int:
        """
        Run unit propagation to a fixpoint.

        Every literal on the trail past ``qhead`` is dequeued; clauses holding
        its negation are re-evaluated. Returns the index of a falsified clause
        on conflict (nothing is undone), or CRef.UNDEF at the fixpoint.
        """
        model = self.model
        formula = self.formula
        while model.qhead < model.nAssigns():
            p = model.trail[model.qhead]
            model.qhead += 1
            self.propagations += 1
            for cr in formula.occurrences(p ^ 1):
                unassigned = None
                n_undef = 0
                satisfied = False
                for q in formula[cr]:
                    val = model.value_lit(q)
                    if val == Lbool.TRUE:
                        satisfied = True
                        break
                    if val == Lbool.UNDEF:
                        n_undef += 1
                        unassigned = q
                if satisfied or n_undef > 1:
                    continue
                if n_undef == 0:
                    self.conflicts += 1
                    model.qhead = model.nAssigns()
                    return cr
                self.assign(unassigned)
        return CRef.UNDEF

    def satisfied(self, c) -> bool:
        for q in c:
            if self.model.value_lit(q) == Lbool.TRUE:
                return True
        return False

    def allSatisfied(self) -> bool:
        return all(self.satisfied(c) for c in self.formula)

    def pickBranchVar(self) -> int:
        model = self.model
        if model.is_complete():
            return self.var_Undef
        if self.decision_order == "clause":
            for c in self.formula.clauses:
                if self.satisfied(c):
                    continue
                for q in c:
                    if model.value_lit(q) == Lbool.UNDEF:
                        return var(q)
            return self.var_Undef
        for x in range(model.nVars()):
            if model.value_var(x) == Lbool.UNDEF:
                return x
        return self.var_Undef

    def newDecisionLevel(self, x: int):
        self.decision_stack.append(Decision(x, self.model.checkpoint()))
        self.decisions += 1
        self.max_level = max(self.max_level, self.decisionLevel())
        self.assign(mkLit(x, False), 'D')

    def backtrack(self) -> bool:
        """
        Undo the most recent open branch and take its False side.

        Levels whose both polarities have failed are popped. Returns False
        when the stack is exhausted, i.e. the whole space has been refuted.
        """
        while self.decision_stack:
            d = self.decision_stack[-1]
            self.model.restore(d.checkpoint)
            if not d.flipped:
                d.flipped = True
                self.assign(mkLit(d.var, True), 'BT')
                return True
            self.decision_stack.pop()
        return False

    def search(self) -> Lbool:
        while True:
            confl = self.propagate()
            if confl != CRef.UNDEF:
                if not self.backtrack():
                    return Lbool.FALSE
                continue
            if self.allSatisfied():
                return Lbool.TRUE
            next_ = self.pickBranchVar()
            # a fully assigned model with a false clause is caught by propagate()
            assert next_ != self.var_Undef
            self.newDecisionLevel(next_)

    def solve_(self, formula: Formula) -> Lbool:
        # attributes may have been set directly; route them through the options
        self.opt_decision_order.value = self.decision_order
        self.opt_verbosity.value = self.verbosity
        self.reset(formula)
        self.solves += 1
        if self.verbosity >= 2:
            print("============================[ DPLL ]===========================================")
            print(f"| Vars {formula.nVars():>8} | Clauses {formula.nClauses():>8} | Order {self.decision_order:>6} |")
            print("===============================================================================")

        if self.enqueueUnits() != CRef.UNDEF:
            status = Lbool.FALSE
        else:
            status = self.search()

        if self.verbosity >= 1:
            print()
        if status == Lbool.TRUE:
            # variables left open by a satisfied formula are completed as True
            self.solution = [
                lbool(self.model.value_var(x) != Lbool.FALSE)
                for x in range(formula.nVars())
            ]
        return status

    def get_result(self, status: Lbool) -> SolveResult:
        if status == Lbool.TRUE:
            return SolveResult(True, [v == Lbool.TRUE for v in self.solution])
        return SolveResult(False, None)


def solve(formula: Formula, decision_order: str = "index", verbosity: int = 0) -> SolveResult:
    """
    Decide ``formula`` and return SolveResult(sat, model).

    ``model`` is a list with one bool per variable when sat, otherwise None.
    """
    S = DPLLSolver()
    S.decision_order = decision_order
    S.verbosity = verbosity
    return S.get_result(S.solve_(formula))
