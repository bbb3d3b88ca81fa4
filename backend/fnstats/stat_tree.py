from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Union

Number = Union[int, float]


@dataclass(frozen=True)
class StatLeaf:
    """Accumulated counters for one reporting bucket, plus derived rates."""

    counters: Mapping[str, Number]
    rates: Mapping[str, float] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Number:
        if name in self.counters:
            return self.counters[name]
        return self.rates[name]

    def __contains__(self, name: object) -> bool:
        return name in self.counters or name in self.rates

    def get(self, name: str, default: Optional[Number] = None) -> Optional[Number]:
        try:
            return self[name]
        except KeyError:
            return default

    def to_dict(self) -> Dict[str, Number]:
        return {**self.counters, **self.rates}


@dataclass(frozen=True)
class StatBranch:
    """An internal tree level; ``dimension`` names what its child keys are."""

    dimension: str
    children: Mapping[str, "StatNode"] = field(default_factory=dict)

    def __getitem__(self, name: str) -> "StatNode":
        return self.children[name]

    def __contains__(self, name: object) -> bool:
        return name in self.children

    def __iter__(self) -> Iterator[str]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def items(self) -> Iterator[Tuple[str, "StatNode"]]:
        return iter(self.children.items())

    def to_dict(self) -> Dict[str, Any]:
        return {name: child.to_dict() for name, child in self.children.items()}


StatNode = Union[StatBranch, StatLeaf]


def map_leaves(node: StatNode, transform: Callable[[StatLeaf], StatLeaf]) -> StatNode:
    """Rebuild ``node`` depth-first with every leaf replaced by ``transform(leaf)``."""
    if isinstance(node, StatLeaf):
        return transform(node)
    if isinstance(node, StatBranch):
        return StatBranch(
            dimension=node.dimension,
            children={
                name: map_leaves(child, transform)
                for name, child in node.children.items()
            },
        )
    raise TypeError(f"Not a stat tree node: {type(node).__name__}")


def prune_branches(
    node: StatNode, keep: Callable[[str, str], bool]
) -> Optional[StatNode]:
    """Drop children for which ``keep(dimension, name)`` is false.

    Branches left without children are dropped as well, so the result is
    ``None`` when nothing survives.
    """
    if isinstance(node, StatLeaf):
        return node
    if not isinstance(node, StatBranch):
        raise TypeError(f"Not a stat tree node: {type(node).__name__}")
    children: Dict[str, StatNode] = {}
    for name, child in node.children.items():
        if not keep(node.dimension, name):
            continue
        pruned = prune_branches(child, keep)
        if pruned is not None:
            children[name] = pruned
    if not children:
        return None
    return StatBranch(dimension=node.dimension, children=children)


def iter_leaves(
    node: StatNode, path: Tuple[str, ...] = ()
) -> Iterator[Tuple[Tuple[str, ...], StatLeaf]]:
    if isinstance(node, StatLeaf):
        yield path, node
        return
    for name, child in node.children.items():
        yield from iter_leaves(child, path + (name,))
