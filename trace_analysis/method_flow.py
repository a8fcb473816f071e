"""
Probe placement and coverage propagation for a single method.

The coverage agent does not record lines. It inserts boolean probes at
fixed points of each method's control flow and flips them when executed.
To turn probes back into covered instructions the analysis has to place
the probes exactly where the agent placed them:

- before every return and athrow,
- on every jump or switch edge whose target label is reached from more
  than one place,
- before a label that is reached by fall-through and is either such a
  multi-target or the start of a line containing a method invocation.

Probe ids are handed out in visiting order, continuing across the methods
of a class. An executed probe marks the instruction it follows as covered,
and coverage then flows backwards along the chain of predecessors until it
reaches an instruction already known to be covered.

The rules are those of JaCoCo 0.7.x. The filters added in 0.8 (enum
methods, private empty constructors and so on) are not applied.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from utils.errors import AnalysisError
from .bytecode import EXIT, GOTO, INVOKE, JUMP, SUBROUTINE, SWITCH, Instruction, iter_instructions
from .class_file import CodeAttribute, MethodInfo

UNKNOWN_LINE = -1


class _Label:
    """Flow information attached to a bytecode offset."""

    __slots__ = ('offset', 'target', 'successor', 'multi_target', 'method_invocation_line',
                 'done', 'probe_id', 'instruction')

    def __init__(self, offset: int):
        self.offset = offset
        self.target = False
        self.successor = False
        self.multi_target = False
        self.method_invocation_line = False
        self.done = False
        self.probe_id = None
        self.instruction = None

    def set_target(self) -> None:
        if self.target or self.successor:
            self.multi_target = True
        else:
            self.target = True

    def set_successor(self) -> None:
        self.successor = True
        if self.target:
            self.multi_target = True

    @property
    def needs_probe(self) -> bool:
        return self.successor and (self.multi_target or self.method_invocation_line)


class _Node:
    """An instruction as seen by coverage propagation."""

    __slots__ = ('line', 'predecessor', 'covered')

    def __init__(self, line: int, predecessor: Optional["_Node"]):
        self.line = line
        self.predecessor = predecessor
        self.covered = False

    def mark_covered(self) -> None:
        node = self
        while node is not None and not node.covered:
            node.covered = True
            node = node.predecessor


@dataclass
class _Step:
    label: Optional[_Label]
    lines: List[int]
    instruction: Optional[Instruction]


@dataclass
class MethodCoverage:
    """Coverage of one method body."""
    name: str
    descriptor: str
    instruction_count: int = 0
    covered_instruction_count: int = 0
    # Source line -> whether any instruction on it was executed.
    lines: Dict[int, bool] = field(default_factory=dict)

    @property
    def covered(self) -> bool:
        return self.covered_instruction_count > 0


def _build_steps(code: CodeAttribute) -> Tuple[List[_Step], Dict[int, _Label]]:
    instructions = list(iter_instructions(code.code))
    labels: Dict[int, _Label] = {}

    def label_at(offset: int) -> _Label:
        if offset not in labels:
            labels[offset] = _Label(offset)
        return labels[offset]

    for insn in instructions:
        for target in insn.targets:
            label_at(target)
    for handler in code.exception_table:
        label_at(handler.start_pc)
        label_at(handler.end_pc)
        label_at(handler.handler_pc)
    lines_at: Dict[int, List[int]] = {}
    for start_pc, line in code.line_numbers:
        label_at(start_pc)
        lines_at.setdefault(start_pc, []).append(line)
    for bound in code.local_variable_bounds:
        label_at(bound)

    steps = [_Step(labels.get(insn.offset), lines_at.get(insn.offset, []), insn) for insn in instructions]
    end = len(code.code)
    if end in labels:
        steps.append(_Step(labels[end], lines_at.get(end, []), None))
    return steps, labels


def _mark_labels(steps: List[_Step], labels: Dict[int, _Label], code: CodeAttribute) -> None:
    """First pass: find which labels are jump targets, successors or invocation lines."""
    for handler in reversed(code.exception_table):
        labels[handler.start_pc].set_target()
        labels[handler.handler_pc].set_target()

    successor = False
    first = True
    line_start = None
    for step in steps:
        if step.label is not None:
            if first:
                step.label.set_target()
            if successor:
                step.label.set_successor()
            if step.lines:
                line_start = step.label
        insn = step.instruction
        if insn is None:
            continue
        if insn.kind in (JUMP, GOTO):
            labels[insn.target].set_target()
            successor = insn.kind == JUMP
        elif insn.kind == SWITCH:
            targets = [labels[offset] for offset in insn.targets]
            for label in targets:
                label.done = False
            for label in targets:
                if not label.done:
                    label.set_target()
                    label.done = True
            successor = False
        elif insn.kind == EXIT:
            successor = False
        elif insn.kind == SUBROUTINE:
            raise AnalysisError(f"Subroutines are not supported (offset {insn.offset})")
        else:
            successor = True
            if insn.kind == INVOKE and line_start is not None:
                line_start.method_invocation_line = True
        first = False


class _MethodAnalyzer:
    """Second pass: allocate probe ids and build the predecessor chains."""

    def __init__(self, labels: Dict[int, _Label], probes: Optional[List[bool]], probe_ids: Iterator[int]):
        self.labels = labels
        self.probes = probes
        self.probe_ids = probe_ids
        self.nodes: List[_Node] = []
        self.pending_labels: List[_Label] = []
        self.last: Optional[_Node] = None
        self.current_line = UNKNOWN_LINE
        self.jumps: List[Tuple[_Node, _Label]] = []
        self.executed: List[_Node] = []

    def add_probe(self, probe_id: int) -> None:
        if self.last is None:
            return
        if self.probes is not None and probe_id < len(self.probes) and self.probes[probe_id]:
            self.executed.append(self.last)

    def visit_label(self, label: _Label) -> None:
        if label.needs_probe:
            self.add_probe(next(self.probe_ids))
            self.last = None
        self.pending_labels.append(label)
        if not label.successor:
            self.last = None

    def visit_instruction(self, insn: Instruction) -> None:
        node = _Node(self.current_line, self.last)
        for label in self.pending_labels:
            label.instruction = node
        self.pending_labels.clear()
        self.nodes.append(node)
        self.last = node

        if insn.kind == EXIT:
            self.add_probe(next(self.probe_ids))
        elif insn.kind in (JUMP, GOTO):
            target = self.labels[insn.target]
            if target.multi_target:
                self.add_probe(next(self.probe_ids))
            else:
                self.jumps.append((node, target))
        elif insn.kind == SWITCH:
            self.visit_switch(node, insn)

    def visit_switch(self, node: _Node, insn: Instruction) -> None:
        default = self.labels[insn.target]
        cases = [self.labels[offset] for offset in insn.case_targets]

        for label in cases:
            label.done = False
        with_probes = False
        if default.multi_target:
            default.probe_id = next(self.probe_ids)
            with_probes = True
        default.done = True
        for label in cases:
            if label.multi_target and not label.done:
                label.probe_id = next(self.probe_ids)
                with_probes = True
            label.done = True

        for label in [default] + cases:
            label.done = False
        for label in [default] + cases:
            if label.done:
                continue
            if with_probes and label.multi_target:
                self.add_probe(label.probe_id)
            else:
                self.jumps.append((node, label))
            label.done = True

    def finish(self) -> None:
        for source, label in self.jumps:
            if label.instruction is not None:
                label.instruction.predecessor = source
        for node in self.executed:
            node.mark_covered()


def analyze_method(method: MethodInfo, probes: Optional[List[bool]], probe_ids: Iterator[int]) -> MethodCoverage:
    """
    Compute the coverage of one method from the probes of its class.
    
    Args:
        method: Parsed method; methods without code consume no probes
        probes: Probe array recorded for the class, or None if it never ran
        probe_ids: Shared id sequence for the class, advanced past this method's probes
        
    Returns:
        Instruction and line coverage of the method
    """
    coverage = MethodCoverage(method.name, method.descriptor)
    if method.code is None or not method.code.code:
        return coverage

    steps, labels = _build_steps(method.code)
    _mark_labels(steps, labels, method.code)

    analyzer = _MethodAnalyzer(labels, probes, probe_ids)
    for step in steps:
        if step.label is not None:
            analyzer.visit_label(step.label)
        if step.lines:
            analyzer.current_line = step.lines[-1]
        if step.instruction is not None:
            analyzer.visit_instruction(step.instruction)
    analyzer.finish()

    for node in analyzer.nodes:
        coverage.instruction_count += 1
        if node.covered:
            coverage.covered_instruction_count += 1
        if node.line != UNKNOWN_LINE:
            coverage.lines[node.line] = coverage.lines.get(node.line, False) or node.covered
    return coverage
