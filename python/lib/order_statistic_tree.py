#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
order_statistic_tree.py
-----------------------

An ordered multiset container built on a **Red‑Black** tree whose nodes are
augmented with subtree value counts.  Several values may share one key; they
are kept on a per‑key stack and handed back most‑recently‑inserted first.

Features
~~~~~~~~
* `tree.put(key, value)`         – insert (duplicates stack up on the key)
* `tree.get(key, default)`       – newest value for *key*, or *default*
* `tree.remove(key, default)`    – pop the newest value for *key*
* `key in tree`, `len(tree)`, `bool(tree)`
* `tree.min()`, `tree.max()`     – value stored under the smallest / largest key
* `tree.select(rank)`            – value of the given rank (1‑indexed)
* `tree.predecessor(key)`        – value under the greatest key below *key*
* `tree.validate()`              – check every invariant (for tests/debugging)

All structural operations are O(log n).  Every leaf position points to one
shared, per‑tree sentinel (`tree.nil`) so the balancing code needs no `None`
checks.

Typical usage
~~~~~~~~~~~~~
>>> from order_statistic_tree import OrderStatisticTree
>>> tree = OrderStatisticTree()
>>> tree.put(10, "a")
>>> tree.put(10, "b")
>>> tree.put(4, "c")
>>> len(tree)
3
>>> tree.get(10)
'b'
>>> [tree.select(i) for i in range(1, len(tree) + 1)]
['c', 'b', 'a']
>>> tree.remove(10)
'b'
>>> tree.predecessor(10)
'c'
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    Generator,
    Generic,
    Iterable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------
#  Type variables (keys must be comparable by `cmp`, values may be anything)
# ----------------------------------------------------------------------
K = TypeVar("K")
V = TypeVar("V")

# ----------------------------------------------------------------------
#  Node colour constants
# ----------------------------------------------------------------------
RED = True
BLACK = False


def _natural_cmp(a: Any, b: Any) -> int:
    """Three‑way comparison using the keys' own ordering."""
    return (a > b) - (a < b)


# ----------------------------------------------------------------------
#  Errors
# ----------------------------------------------------------------------
class OrderStatisticTreeError(Exception):
    """Base class for every error raised by this module."""


class EmptyContainerError(OrderStatisticTreeError, IndexError):
    """An operation that needs at least one stored value hit an empty tree."""


class OutOfRangeError(OrderStatisticTreeError, IndexError):
    """A rank fell outside ``[1, size]``."""


class InvalidStructuralAssumption(OrderStatisticTreeError, RuntimeError):
    """
    The tree's shape or colouring contradicts what a balancing step relies on.
    Correct use of the public API never triggers this; it means a defect.
    """


def _invariant_broken(message: str) -> InvalidStructuralAssumption:
    logger.error("red-black invariant broken: %s", message)
    return InvalidStructuralAssumption(message)


class _Node(Generic[K, V]):
    """Internal node object – not meant to be used directly by callers.

    ``values`` is a stack: the last element is the newest value and the one
    returned first.  ``count`` is the number of values stored in the subtree
    rooted here (this node's stack included).
    """

    __slots__ = ("key", "values", "color", "left", "right", "parent", "count")

    def __init__(
        self,
        key: Optional[K] = None,
        values: Optional[List[V]] = None,
        color: bool = BLACK,
        left: Optional["_Node[K, V]"] = None,
        right: Optional["_Node[K, V]"] = None,
        parent: Optional["_Node[K, V]"] = None,
    ) -> None:
        self.key = key
        self.values: List[V] = [] if values is None else values
        self.color = color
        self.left = left
        self.right = right
        self.parent = parent
        self.count = len(self.values)

    @property
    def value(self) -> V:
        """The value a lookup on this node returns (top of the stack)."""
        return self.values[-1]

    def __repr__(self) -> str:
        col = "R" if self.color == RED else "B"
        return f"<{col} {self.key!r} x{len(self.values)} n={self.count}>"


class OrderStatisticTree(Generic[K, V]):
    """
    An ordered multiset of ``key -> value`` pairs kept in a red‑black tree.

    Parameters
    ----------
    items : iterable of (key, value)   optional
        Pairs inserted one at a time with :meth:`put`.
    cmp : Callable[[K, K], int], optional
        Three‑way comparator returning a negative number, zero or a positive
        number.  Defaults to the natural ordering of the keys.

    The tree is not thread‑safe; callers sharing one instance across threads
    must hold their own lock around every call.
    """

    __slots__ = ("_root", "_nil", "_size", "_cmp")

    # ------------------------------------------------------------------
    #   Construction / basic container protocol
    # ------------------------------------------------------------------
    def __init__(
        self,
        items: Optional[Iterable[Tuple[K, V]]] = None,
        *,
        cmp: Optional[Callable[[K, K], int]] = None,
    ) -> None:
        # The sentinel leaf node – shared by every leaf of this tree only.
        # Its links point back at itself and are never reassigned.
        self._nil: _Node[K, V] = _Node()
        self._nil.left = self._nil.right = self._nil.parent = self._nil

        self._root: _Node[K, V] = self._nil
        self._size: int = 0
        self._cmp: Callable[[K, K], int] = _natural_cmp if cmp is None else cmp

        if items is not None:
            for key, value in items:
                self.put(key, value)

    @property
    def root(self) -> _Node[K, V]:
        """Root node (the sentinel when empty).  Read‑only access for checkers."""
        return self._root

    @property
    def nil(self) -> _Node[K, V]:
        """The sentinel standing in for every empty subtree of this tree."""
        return self._nil

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._size > 0

    def __contains__(self, key: object) -> bool:
        return self._search_node(key) is not self._nil  # type: ignore[arg-type]

    def size(self) -> int:
        """Total number of stored values (duplicates included)."""
        return self._size

    def is_empty(self) -> bool:
        return self._size == 0

    # ------------------------------------------------------------------
    #   Helper look‑up (internal)
    # ------------------------------------------------------------------
    def _search_node(self, key: K) -> _Node[K, V]:
        """Return the node that holds *key* or the sentinel if not found."""
        cur = self._root
        while cur is not self._nil:
            c = self._cmp(key, cur.key)  # type: ignore[arg-type]
            if c == 0:
                return cur
            cur = cur.left if c < 0 else cur.right
        return self._nil

    def _adjust_counts(self, node: _Node[K, V], delta: int) -> None:
        """Add *delta* to the count of *node* and every ancestor above it."""
        while node is not self._nil:
            node.count += delta
            node = node.parent

    # ------------------------------------------------------------------
    #   Public lookup methods
    # ------------------------------------------------------------------
    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the newest value stored under *key*, or *default*."""
        node = self._search_node(key)
        if node is self._nil:
            return default
        return node.value

    def contains(self, key: K) -> bool:
        return key in self

    # ------------------------------------------------------------------
    #   Minimum / maximum helpers
    # ------------------------------------------------------------------
    def _minimum_node(self, start: Optional[_Node[K, V]] = None) -> _Node[K, V]:
        """Return the node with the smallest key in the subtree rooted at *start*."""
        node = start if start is not None else self._root
        if node is self._nil:
            raise EmptyContainerError("tree is empty")
        while node.left is not self._nil:
            node = node.left
        return node

    def _maximum_node(self, start: Optional[_Node[K, V]] = None) -> _Node[K, V]:
        """Return the node with the largest key in the subtree rooted at *start*."""
        node = start if start is not None else self._root
        if node is self._nil:
            raise EmptyContainerError("tree is empty")
        while node.right is not self._nil:
            node = node.right
        return node

    def min(self) -> V:
        """Return the newest value stored under the smallest key."""
        return self._minimum_node().value

    def max(self) -> V:
        """Return the newest value stored under the largest key."""
        return self._maximum_node().value

    def min_key(self) -> K:
        return self._minimum_node().key  # type: ignore[return-value]

    def max_key(self) -> K:
        return self._maximum_node().key  # type: ignore[return-value]

    # ------------------------------------------------------------------
    #   Order statistics
    # ------------------------------------------------------------------
    def select(self, rank: int) -> V:
        """
        Return the value of the given *rank* (1‑indexed) among all stored
        values.  Keys are walked in ascending order; the values sharing one
        key are counted newest first, the order ``get``/``remove`` hand them
        out.

        Raises ``EmptyContainerError`` on an empty tree and
        ``OutOfRangeError`` when *rank* is not in ``[1, size]``.
        """
        if isinstance(rank, bool) or not isinstance(rank, int):
            raise TypeError(f"select(): rank must be an int, got {rank!r}")
        if self._root is self._nil:
            raise EmptyContainerError("select() on an empty tree")
        if not 1 <= rank <= self._root.count:
            raise OutOfRangeError(
                f"select(): rank {rank} outside [1, {self._root.count}]"
            )

        node = self._root
        while True:
            if node is self._nil:
                raise _invariant_broken(f"subtree counts ran out at rank {rank}")
            left = node.left.count
            own = len(node.values)
            if rank <= left:
                node = node.left
            elif rank > left + own:
                rank -= left + own
                node = node.right
            else:
                return node.values[left - rank]

    def predecessor(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """
        Return the newest value under the greatest key strictly smaller than
        *key*.  *default* is returned when *key* is not stored or is the
        minimum.  Raises ``EmptyContainerError`` on an empty tree.
        """
        if self._root is self._nil:
            raise EmptyContainerError("predecessor() on an empty tree")
        node = self._search_node(key)
        if node is self._nil:
            return default

        if node.left is not self._nil:
            return self._maximum_node(node.left).value

        # Walk up until we leave a right subtree.
        y = node.parent
        while y is not self._nil and node is y.left:
            node = y
            y = y.parent
        if y is self._nil:
            return default
        return y.value

    # ------------------------------------------------------------------
    #   Insertion
    # ------------------------------------------------------------------
    def put(self, key: K, value: V) -> None:
        """Store *value* under *key*; an existing key gets it on top of its stack."""
        parent = self._nil
        cur = self._root
        c = 0

        while cur is not self._nil:
            c = self._cmp(key, cur.key)  # type: ignore[arg-type]
            if c == 0:
                # Key already present → no change in shape or colour.
                cur.values.append(value)
                self._adjust_counts(cur, 1)
                self._size += 1
                return
            parent = cur
            cur = cur.left if c < 0 else cur.right

        # `parent` is where the new node hangs (the sentinel for an empty tree).
        new_node = _Node(
            key=key,
            values=[value],
            color=RED,
            left=self._nil,
            right=self._nil,
            parent=parent,
        )

        if parent is self._nil:
            self._root = new_node
        elif c < 0:
            parent.left = new_node
        else:
            parent.right = new_node

        self._adjust_counts(parent, 1)
        self._size += 1
        logger.debug("created node for key %r", key)
        self._fix_insert(new_node)

    def _fix_insert(self, z: _Node[K, V]) -> None:
        """Restore red‑black properties after linking the RED node `z`."""
        while z.parent.color == RED:
            if z.parent is z.parent.parent.left:
                y = z.parent.parent.right  # uncle
                if y.color == RED:
                    # Case 1 – recolour
                    z.parent.color = BLACK
                    y.color = BLACK
                    z.parent.parent.color = RED
                    z = z.parent.parent
                else:
                    if z is z.parent.right:
                        # Case 2 – inner child, turn it into case 3
                        z = z.parent
                        self._rotate_left(z)
                    # Case 3 – outer child
                    z.parent.color = BLACK
                    z.parent.parent.color = RED
                    self._rotate_right(z.parent.parent)
            else:  # Mirror of the above (parent is a right child)
                y = z.parent.parent.left
                if y.color == RED:
                    z.parent.color = BLACK
                    y.color = BLACK
                    z.parent.parent.color = RED
                    z = z.parent.parent
                else:
                    if z is z.parent.left:
                        z = z.parent
                        self._rotate_right(z)
                    z.parent.color = BLACK
                    z.parent.parent.color = RED
                    self._rotate_left(z.parent.parent)
        self._root.color = BLACK

    # ------------------------------------------------------------------
    #   Left / right rotations – helper primitives
    # ------------------------------------------------------------------
    def _rotate_left(self, x: _Node[K, V]) -> None:
        """Left‑rotate the subtree rooted at `x`."""
        y = x.right
        if y is self._nil:
            raise _invariant_broken("rotate_left called on a node with nil right child")
        x.right = y.left
        if y.left is not self._nil:
            y.left.parent = x
        y.parent = x.parent
        if x.parent is self._nil:
            self._root = y
        elif x is x.parent.left:
            x.parent.left = y
        else:
            x.parent.right = y
        y.left = x
        x.parent = y
        # Same values below the pivot pair, only the two counts move.
        y.count = x.count
        x.count = len(x.values) + x.left.count + x.right.count
        logger.debug("rotated left at %r", x.key)

    def _rotate_right(self, y: _Node[K, V]) -> None:
        """Right‑rotate the subtree rooted at `y`."""
        x = y.left
        if x is self._nil:
            raise _invariant_broken("rotate_right called on a node with nil left child")
        y.left = x.right
        if x.right is not self._nil:
            x.right.parent = y
        x.parent = y.parent
        if y.parent is self._nil:
            self._root = x
        elif y is y.parent.right:
            y.parent.right = x
        else:
            y.parent.left = x
        x.right = y
        y.parent = x
        x.count = y.count
        y.count = len(y.values) + y.left.count + y.right.count
        logger.debug("rotated right at %r", y.key)

    # ------------------------------------------------------------------
    #   Deletion
    # ------------------------------------------------------------------
    def remove(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """
        Pop and return the newest value stored under *key*, or return
        *default* if the key is absent.  The node itself only leaves the tree
        once its last value is gone.
        """
        node = self._search_node(key)
        if node is self._nil:
            return default

        value = node.values.pop()
        self._adjust_counts(node, -1)
        self._size -= 1
        if not node.values:
            self._delete_node(node)
        return value

    def _transplant(self, u: _Node[K, V], v: _Node[K, V]) -> None:
        """Replace subtree rooted at `u` with the subtree rooted at `v`."""
        if u.parent is self._nil:
            self._root = v
        elif u is u.parent.left:
            u.parent.left = v
        else:
            u.parent.right = v
        if v is not self._nil:
            v.parent = u.parent

    def _delete_node(self, z: _Node[K, V]) -> None:
        """
        Unlink the now empty node `z` and fix up any colour violations.

        The caller has already taken `z`'s last value off every count on the
        path to the root, so only a successor move needs more bookkeeping.
        """
        y = z  # node whose colour leaves its slot
        y_original_color = y.color
        if z.left is self._nil:
            x, x_parent = z.right, z.parent
            self._transplant(z, z.right)
        elif z.right is self._nil:
            x, x_parent = z.left, z.parent
            self._transplant(z, z.left)
        else:
            # z has two children: its in‑order successor `y` takes its place
            y = self._minimum_node(z.right)
            y_original_color = y.color
            x = y.right

            moved = len(y.values)
            node = y.parent
            while node is not z:
                node.count -= moved
                node = node.parent

            if y.parent is z:
                x_parent = y
            else:
                x_parent = y.parent
                self._transplant(y, y.right)
                y.right = z.right
                y.right.parent = y
            self._transplant(z, y)
            y.left = z.left
            y.left.parent = y
            y.color = z.color
            y.count = z.count

        logger.debug("removed node for key %r", z.key)
        z.left = z.right = z.parent = None

        if y_original_color == BLACK:
            self._fix_delete(x, x_parent)

    def _fix_delete(self, x: _Node[K, V], parent: _Node[K, V]) -> None:
        """
        Restore red‑black properties after a black node left the slot now held
        by `x`.  `x` may be the sentinel, so its parent is passed in and carried
        along explicitly instead of being read from `x.parent`.
        """
        while x is not self._root and x.color == BLACK:
            if x is parent.left:
                w = parent.right  # sibling
                if w is self._nil:
                    raise _invariant_broken(f"black-deficient {x!r} has no sibling")
                if w.color == RED:
                    # Case 1 – sibling is red
                    w.color = BLACK
                    parent.color = RED
                    self._rotate_left(parent)
                    w = parent.right
                if w.left.color == BLACK and w.right.color == BLACK:
                    # Case 2 – both of sibling's children are black
                    w.color = RED
                    x = parent
                    parent = x.parent
                else:
                    if w.right.color == BLACK:
                        # Case 3 – near nephew red, far nephew black
                        w.left.color = BLACK
                        w.color = RED
                        self._rotate_right(w)
                        w = parent.right
                    # Case 4 – far nephew red
                    w.color = parent.color
                    parent.color = BLACK
                    w.right.color = BLACK
                    self._rotate_left(parent)
                    x = self._root
            else:
                # Mirror of the above, with "left" and "right" swapped
                w = parent.left
                if w is self._nil:
                    raise _invariant_broken(f"black-deficient {x!r} has no sibling")
                if w.color == RED:
                    w.color = BLACK
                    parent.color = RED
                    self._rotate_right(parent)
                    w = parent.left
                if w.right.color == BLACK and w.left.color == BLACK:
                    w.color = RED
                    x = parent
                    parent = x.parent
                else:
                    if w.left.color == BLACK:
                        w.right.color = BLACK
                        w.color = RED
                        self._rotate_left(w)
                        w = parent.left
                    w.color = parent.color
                    parent.color = BLACK
                    w.left.color = BLACK
                    self._rotate_right(parent)
                    x = self._root
        x.color = BLACK

    # ------------------------------------------------------------------
    #   Validation/checking utilities – useful for debugging
    # ------------------------------------------------------------------
    def _inorder_nodes(self) -> Generator[_Node[K, V], None, None]:
        stack: List[_Node[K, V]] = []
        cur = self._root
        while stack or cur is not self._nil:
            while cur is not self._nil:
                stack.append(cur)
                cur = cur.left
            cur = stack.pop()
            yield cur
            cur = cur.right

    def validate(self) -> None:
        """
        Verify that the tree satisfies all of its invariants: key order,
        red‑black colouring, equal black height, subtree counts and parent
        links.  Raises ``AssertionError`` describing the first violation.
        """
        nil = self._nil
        assert nil.color == BLACK, "Sentinel is not black"
        assert nil.count == 0 and not nil.values, "Sentinel holds values"
        assert (
            nil.left is nil and nil.right is nil and nil.parent is nil
        ), "Sentinel links were modified"
        assert self._root.color == BLACK, "Root is not black"
        assert self._root is nil or self._root.parent is nil, "Root has a parent"

        def dfs(node: _Node[K, V]) -> int:
            """Return the black height of *node*, asserting along the way."""
            if node is nil:
                return 1

            assert node.values, f"Live node {node!r} has no values"
            if node.color == RED:
                assert node.left.color == BLACK, "Red node has red left child"
                assert node.right.color == BLACK, "Red node has red right child"
            for child in (node.left, node.right):
                if child is not nil:
                    assert child.parent is node, f"Broken parent link at {child!r}"

            assert node.count == (
                len(node.values) + node.left.count + node.right.count
            ), f"Subtree count mismatch at {node!r}"

            left_black = dfs(node.left)
            right_black = dfs(node.right)
            assert left_black == right_black, "Black-height mismatch"
            return left_black + (1 if node.color == BLACK else 0)

        dfs(self._root)

        prev: Optional[_Node[K, V]] = None
        for node in self._inorder_nodes():
            if prev is not None:
                assert (
                    self._cmp(prev.key, node.key) < 0  # type: ignore[arg-type]
                ), f"BST order violated between {prev!r} and {node!r}"
            prev = node

        assert self._root.count == self._size, "Root count differs from size"

    def __repr__(self) -> str:
        return f"OrderStatisticTree(size={self._size})"
