"""
Expression AST with evaluation, pretty printing, constant folding and
stack-machine code generation implemented as visitors.

Nodes only know ``accept``, which dispatches to ``visitor.visit_<node>``.
"""

import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...exceptions import ResourceNotFoundException, UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

OPERATORS: Dict[str, Tuple[Callable[[float, float], float], str]] = {
    "+": (operator.add, "ADD"),
    "-": (operator.sub, "SUB"),
    "*": (operator.mul, "MUL"),
    "/": (operator.truediv, "DIV"),
}


class Node(ABC):
    def accept(self, visitor: "Visitor") -> Any:
        method = getattr(visitor, f"visit_{type(self).__name__.lower()}")
        return method(self)


@dataclass(frozen=True)
class Number(Node):
    value: float


@dataclass(frozen=True)
class Variable(Node):
    name: str


@dataclass(frozen=True)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise UnsupportedTypeException("operator", self.op, OPERATORS)


@dataclass(frozen=True)
class Assign(Node):
    name: str
    value: Node


@dataclass(frozen=True)
class Block(Node):
    statements: Tuple[Node, ...]


class Visitor(ABC):
    @abstractmethod
    def visit_number(self, node: Number) -> Any: ...

    @abstractmethod
    def visit_variable(self, node: Variable) -> Any: ...

    @abstractmethod
    def visit_binaryop(self, node: BinaryOp) -> Any: ...

    @abstractmethod
    def visit_assign(self, node: Assign) -> Any: ...

    @abstractmethod
    def visit_block(self, node: Block) -> Any: ...


class Evaluator(Visitor):
    def __init__(self, env: Optional[Dict[str, float]] = None):
        self.env: Dict[str, float] = dict(env or {})

    def visit_number(self, node: Number) -> float:
        return node.value

    def visit_variable(self, node: Variable) -> float:
        if node.name not in self.env:
            raise ResourceNotFoundException("variable", node.name)
        return self.env[node.name]

    def visit_binaryop(self, node: BinaryOp) -> float:
        func, _ = OPERATORS[node.op]
        return func(node.left.accept(self), node.right.accept(self))

    def visit_assign(self, node: Assign) -> float:
        self.env[node.name] = node.value.accept(self)
        return self.env[node.name]

    def visit_block(self, node: Block) -> Any:
        result = None
        for statement in node.statements:
            result = statement.accept(self)
        return result


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class PrettyPrinter(Visitor):
    def visit_number(self, node: Number) -> str:
        return _fmt(node.value)

    def visit_variable(self, node: Variable) -> str:
        return node.name

    def visit_binaryop(self, node: BinaryOp) -> str:
        return f"({node.left.accept(self)} {node.op} {node.right.accept(self)})"

    def visit_assign(self, node: Assign) -> str:
        return f"{node.name} = {node.value.accept(self)}"

    def visit_block(self, node: Block) -> str:
        return "\n".join(statement.accept(self) for statement in node.statements)


class ConstantFolder(Visitor):
    """Returns a new tree with constant sub-expressions evaluated."""

    def visit_number(self, node: Number) -> Node:
        return node

    def visit_variable(self, node: Variable) -> Node:
        return node

    def visit_binaryop(self, node: BinaryOp) -> Node:
        left, right = node.left.accept(self), node.right.accept(self)
        if isinstance(left, Number) and isinstance(right, Number):
            # Division by a zero constant is left for runtime.
            if not (node.op == "/" and right.value == 0):
                return Number(OPERATORS[node.op][0](left.value, right.value))
        return BinaryOp(node.op, left, right)

    def visit_assign(self, node: Assign) -> Node:
        return Assign(node.name, node.value.accept(self))

    def visit_block(self, node: Block) -> Node:
        return Block(tuple(statement.accept(self) for statement in node.statements))


class StackCodeGenerator(Visitor):
    def __init__(self) -> None:
        self.instructions: List[str] = []

    def visit_number(self, node: Number) -> List[str]:
        self.instructions.append(f"PUSH {_fmt(node.value)}")
        return self.instructions

    def visit_variable(self, node: Variable) -> List[str]:
        self.instructions.append(f"LOAD {node.name}")
        return self.instructions

    def visit_binaryop(self, node: BinaryOp) -> List[str]:
        node.left.accept(self)
        node.right.accept(self)
        self.instructions.append(OPERATORS[node.op][1])
        return self.instructions

    def visit_assign(self, node: Assign) -> List[str]:
        node.value.accept(self)
        self.instructions.append(f"STORE {node.name}")
        return self.instructions

    def visit_block(self, node: Block) -> List[str]:
        for statement in node.statements:
            statement.accept(self)
        return self.instructions


def run_stack_code(instructions: List[str], env: Optional[Dict[str, float]] = None) -> Dict[str, float]:
    """Tiny interpreter for the generated code; returns the final variables."""
    env = dict(env or {})
    stack: List[float] = []
    by_opcode = {opcode: func for func, opcode in OPERATORS.values()}
    for instruction in instructions:
        opcode, _, arg = instruction.partition(" ")
        if opcode == "PUSH":
            stack.append(float(arg))
        elif opcode == "LOAD":
            stack.append(env[arg])
        elif opcode == "STORE":
            env[arg] = stack.pop()
        else:
            right, left = stack.pop(), stack.pop()
            stack.append(by_opcode[opcode](left, right))
    return env


def sample_program() -> Block:
    # rate = 2 * 3 + 1; total = (price * rate) - discount
    return Block((
        Assign("rate", BinaryOp("+", BinaryOp("*", Number(2), Number(3)), Number(1))),
        Assign("total", BinaryOp("-", BinaryOp("*", Variable("price"), Variable("rate")), Variable("discount"))),
    ))


@demo(
    "visitor.ast-compiler",
    pattern="Visitor",
    category=Category.BEHAVIORAL,
    title="Evaluate, print, fold and compile an expression tree",
)
def run_demo() -> None:
    program = sample_program()
    print("Source:")
    print(program.accept(PrettyPrinter()))

    evaluator = Evaluator({"price": 10, "discount": 5})
    print(f"\nEvaluated total: {program.accept(evaluator)} (env {evaluator.env})")

    folded = program.accept(ConstantFolder())
    print(f"\nFolded:\n{folded.accept(PrettyPrinter())}")

    code = folded.accept(StackCodeGenerator())
    print(f"\nStack code: {code}")
    print(f"Executed: {run_stack_code(code, {'price': 10, 'discount': 5})}")

    try:
        Variable("missing").accept(Evaluator())
    except ResourceNotFoundException as e:
        print(f"\nError: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
