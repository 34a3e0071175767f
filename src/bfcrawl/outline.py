"""
Depth-tagged walk over the elements of an HTML document.
"""
from __future__ import annotations

import sys
from typing import List, Protocol, TextIO, Tuple

from bs4 import BeautifulSoup, Tag


class OutlineVisitor(Protocol):
    def enter(self, tag: Tag, depth: int) -> None:
        ...

    def leave(self, tag: Tag, depth: int) -> None:
        ...


def walk(root: Tag, visitor: OutlineVisitor) -> None:
    """
    Visit every element below root, calling enter before its children
    (preorder) and leave after them (postorder).

    Children of root are at depth 0. Text, comments and other non-element
    nodes are skipped. Uses an explicit stack, so deep documents do not hit
    the recursion limit.
    """
    stack: List[Tuple[Tag, int, bool]] = [
        (child, 0, False) for child in reversed(root.contents) if isinstance(child, Tag)
    ]
    while stack:
        tag, depth, entered = stack.pop()
        if entered:
            visitor.leave(tag, depth)
            continue

        visitor.enter(tag, depth)
        stack.append((tag, depth, True))
        stack.extend(
            (child, depth + 1, False) for child in reversed(tag.contents) if isinstance(child, Tag)
        )


class OutlinePrinter:
    """Print <tag> on entry and </tag> on exit, indented by depth."""

    def __init__(self, out: TextIO = sys.stdout, indent: int = 2) -> None:
        self.out = out
        self.indent = indent

    def enter(self, tag: Tag, depth: int) -> None:
        self.out.write(f"{' ' * (depth * self.indent)}<{tag.name}>\n")

    def leave(self, tag: Tag, depth: int) -> None:
        self.out.write(f"{' ' * (depth * self.indent)}</{tag.name}>\n")


def outline(html: str, out: TextIO = sys.stdout, indent: int = 2) -> None:
    soup = BeautifulSoup(html, "lxml")
    walk(soup, OutlinePrinter(out, indent))
