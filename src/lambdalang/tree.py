"""AST node types shared by the parsers and both evaluators.

Nodes are frozen dataclasses: produced once by a parser and never mutated,
so the same tree can be evaluated any number of times in either mode.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple
from typing_extensions import TypeAlias


@dataclass(frozen=True)
class Num:
    value: float


@dataclass(frozen=True)
class Str:
    value: str


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Var:
    name: str


@dataclass(frozen=True)
class Lambda:
    params: Tuple[str, ...]
    body: 'Node'
    name: Optional[str] = None   # self-reference for named-recursive closures


@dataclass(frozen=True)
class Call:
    func: 'Node'
    args: Tuple['Node', ...]


@dataclass(frozen=True)
class If:
    cond: 'Node'
    then: 'Node'
    else_: Optional['Node'] = None


@dataclass(frozen=True)
class Assign:
    target: 'Node'
    value: 'Node'


@dataclass(frozen=True)
class Binary:
    op: str
    left: 'Node'
    right: 'Node'


@dataclass(frozen=True)
class Prog:
    body: Tuple['Node', ...]


@dataclass(frozen=True)
class LetBinding:
    name: str
    init: Optional['Node'] = None


@dataclass(frozen=True)
class Let:
    bindings: Tuple[LetBinding, ...]
    body: 'Node'


Node: TypeAlias = Num | Str | Bool | Var | Lambda | Call | If | Assign | Binary | Prog | Let

FALSE = Bool(False)

# Node class -> label used by the JSON dump and pretty printer.
NODE_LABELS: Dict[type, str] = {
    Num: "num",
    Str: "str",
    Bool: "bool",
    Var: "var",
    Lambda: "lambda",
    Call: "call",
    If: "if",
    Assign: "assign",
    Binary: "binary",
    Prog: "prog",
    Let: "let",
}


def node_label(node: Any) -> str:
    return NODE_LABELS.get(type(node), type(node).__name__)


def to_data(node: Any) -> Any:
    """Convert a node into plain dicts/lists, tagging each node with its label."""
    if isinstance(node, tuple):
        return [to_data(item) for item in node]

    if isinstance(node, LetBinding):
        return {"name": node.name, "def": to_data(node.init)}

    if type(node) in NODE_LABELS:
        data: Dict[str, Any] = {"type": node_label(node)}

        for f in fields(node):
            key = "else" if f.name == "else_" else f.name
            data[key] = to_data(getattr(node, f.name))

        return data

    return node


def dump_json(node: Node, indent: int = 3) -> str:
    return json.dumps(to_data(node), indent=indent, ensure_ascii=False)


def pretty(node: Node, indent: str = '  ') -> str:
    """Return pretty-printed tree representation."""
    def _pretty(n: Any, level: int) -> str:
        pad = indent * level

        match n:
            case Num(value=v) | Str(value=v) | Bool(value=v):
                return f'{pad}{node_label(n)}\t{v!r}\n'
            case Var(name=name):
                return f'{pad}var\t{name}\n'
            case Lambda(params=params, body=body, name=name):
                head = f'{pad}lambda {name or ""}({", ".join(params)})\n'
                return head + _pretty(body, level + 1)
            case Call(func=func, args=args):
                return f'{pad}call\n' + _pretty(func, level + 1) + ''.join(_pretty(a, level + 1) for a in args)
            case If(cond=cond, then=then, else_=else_):
                out = f'{pad}if\n' + _pretty(cond, level + 1) + _pretty(then, level + 1)
                return out + (_pretty(else_, level + 1) if else_ is not None else '')
            case Assign(target=target, value=value):
                return f'{pad}assign\n' + _pretty(target, level + 1) + _pretty(value, level + 1)
            case Binary(op=op, left=left, right=right):
                return f'{pad}binary\t{op}\n' + _pretty(left, level + 1) + _pretty(right, level + 1)
            case Prog(body=body):
                return f'{pad}prog\n' + ''.join(_pretty(x, level + 1) for x in body)
            case Let(bindings=bindings, body=body):
                lines = [f'{pad}let\n']
                for b in bindings:
                    lines.append(f'{pad}{indent}{b.name} =\n')
                    if b.init is not None:
                        lines.append(_pretty(b.init, level + 2))
                lines.append(_pretty(body, level + 1))
                return ''.join(lines)
            case _:
                return f'{pad}{n!r}\n'

    return _pretty(node, 0)
