"""
This file includes some help functions for DPLL search traces.

A trace is a flat token string written by DPLLSolver:
  * "D <lit> L <level>"  - decision, always the positive literal,
  * "A <lit>"            - assignment forced by propagation (or a root unit),
  * "BT <lit> L <level>" - the negative branch taken after the positive one failed.

Helpers here:
  * convert structured solver events into a flat trace string,
  * pull trace tokens from raw solver stdout,
  * read ordered branching numbers from a trace string,
  * reduce an entire trace to the key trace that survives backtracking.
"""
import re

from typing import List, Tuple


def convert_keytrace_to_str(events: List[Tuple[str, int, int]]) -> str:
    """
    Converts a list of tuples like:
        [('A', 3, 0), ('D', 1, 1), ('A', -2, 1), ('BT', -4, 2)]
    into a string like:
        "A 3 D 1 L 1 A -2 BT -4 L 2"

    Rules:
    - If etype in ('D', 'BT'): output "<etype> <val> L <lvl>"
    - If etype == 'A': output "A <val>"
    """
    out_tokens = []
    for etype, val, lvl in events:
        if etype in ("D", "BT"):
            out_tokens.extend([etype, str(val), "L", str(lvl)])
        elif etype == "A":
            out_tokens.extend(["A", str(val)])
        else:
            raise ValueError(f"Unknown event type '{etype}'")

    return " ".join(out_tokens)


def extract_trace(solver_output: str) -> str:
    """
    Extracts the trace from solver stdout (verbosity >= 1), keeping 'D', 'A' and 'BT' entries.

    Args:
        solver_output (str): Captured output of the solver.

    Returns:
        str: The extracted trace as a single string.
    """
    trace_pattern = re.compile(r'(BT\s+-?\d+\s+L\s+\d+|D\s+-?\d+\s+L\s+\d+|A\s+-?\d+)')
    return ' '.join(trace_pattern.findall(solver_output))


def extract_numbers_in_order(trace_string: str) -> List[int]:
    """
    Extracts the branching literals (D and BT) in order of traces.

    Args:
        trace_string: A string of traces.

    Returns:
        A list of integers.
    """
    pattern = r'(?:D|BT)\s+(-?\d+)'
    return [int(m) for m in re.findall(pattern, trace_string)]


def get_key_trace(trace: str) -> str:
    """
    Extract the key trace from the entire trace.

    A 'BT x L k' replaces decision level k: every step recorded at level k or
    above is dropped before the BT step is kept.

    Args:
        trace: A string represents the entire trace.

    Returns:
        str: The key trace, which describes the final trail.
    """
    tokens = trace.split()
    index = 0
    stack = []
    current_level = 0
    while index < len(tokens):
        token = tokens[index]
        if token in ('D', 'BT'):
            if index + 3 >= len(tokens) or tokens[index + 2] != 'L':
                raise ValueError(f"Expected 'L' after {token} literal")
            lit = tokens[index + 1]
            level = int(tokens[index + 3])
            if token == 'BT':
                stack = [(lvl, s) for (lvl, s) in stack if lvl < level]
            current_level = level
            stack.append((level, [token, lit, 'L', str(level)]))
            index += 4
        elif token == 'A':
            if index + 1 >= len(tokens):
                raise ValueError("Expected a literal after 'A'")
            stack.append((current_level, ['A', tokens[index + 1]]))
            index += 2
        else:
            raise ValueError(f"Unknown token '{token}'")

    final_trace = []
    for _, step in stack:
        final_trace.extend(step)
    return ' '.join(final_trace)
