"""
Module: composer.banks.tree

Purpose:
    Index a course's question-bank forest as a flat arena of nodes keyed by
    id with parent/child adjacency maps, and answer the two questions the
    candidate list needs: "every question in the forest" and "every bank
    under this one".

Key Functions:
    - flatten(forest): All questions of a nested forest, annotated with bank id
    - BankTree.from_forest(): Index a nested forest
    - BankTree.from_records(): Index flat records linked by parent_id
    - BankTree.from_payload(): Pick one of the two for a backend listing
    - BankTree.flatten(): Questions of every node, depth-first pre-order
    - BankTree.collect_subtree_ids(node_id): Node id plus all descendants
    - BankTree.options(): (id, name, depth) rows for a bank picker

Algorithm:
    All walks are iterative (explicit stack), so pathological depth never
    hits the recursion limit. Loading rejects a node seen twice (duplicate
    id or a second parent), a nested node whose parent_id names a different
    bank, and any parent chain that revisits itself.
    Records whose parent is missing are dropped with their subtree
    (fail closed) instead of aborting the load.

Dependencies:
    - exam_composer.core.models: BankNode, Question

Used By:
    - composer.filtering.candidates: Bank-scope filtering
    - composer.controller: Candidate list construction
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from exam_composer.core.errors import DataIntegrityError
from exam_composer.core.models import BankNode, Question

logger = logging.getLogger(__name__)


def flatten(forest: Iterable[BankNode]) -> List[Question]:
    """
    Flatten a nested bank forest into its questions.

    Example:
        >>> flatten([BankNode("A", "A", children=(b, c))])  # b: 2 questions, c: 1
        [Question(1, bank='B', ...), Question(2, bank='B', ...), Question(3, bank='C', ...)]
    """
    return BankTree.from_forest(forest).flatten()


class BankTree:
    """
    Arena index over a bank forest (read-only).

    Attributes:
        root_ids: Ids of root nodes in load order
    """

    def __init__(
        self,
        nodes: Dict[str, BankNode],
        parent_of: Dict[str, Optional[str]],
        children_of: Dict[str, List[str]],
        root_ids: List[str],
    ) -> None:
        self._nodes = nodes
        self._parent_of = parent_of
        self._children_of = children_of
        self.root_ids: Tuple[str, ...] = tuple(root_ids)

    # ─────────────────────────────────────────────────────────────────────────
    # Construction
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def empty(cls) -> BankTree:
        return cls({}, {}, {}, [])

    @classmethod
    def from_forest(cls, forest: Iterable[BankNode]) -> BankTree:
        """
        Index a nested forest.

        A node may leave ``parent_id`` unset; nesting implies it. When set,
        it must name the node it is nested under (None for a root).

        Raises:
            DataIntegrityError: If a node id appears more than once or a
                node's parent_id contradicts its position
        """
        nodes: Dict[str, BankNode] = {}
        parent_of: Dict[str, Optional[str]] = {}
        children_of: Dict[str, List[str]] = {}
        root_ids: List[str] = []

        for root in forest:
            root_ids.append(root.id)
            stack: List[Tuple[BankNode, Optional[str]]] = [(root, None)]
            while stack:
                node, parent_id = stack.pop()
                if node.id in nodes:
                    raise DataIntegrityError(
                        f"Bank {node.id!r} appears more than once in the forest"
                    )
                if node.parent_id is not None and node.parent_id != parent_id:
                    where = f"under {parent_id!r}" if parent_id else "at the root"
                    raise DataIntegrityError(
                        f"Bank {node.id!r} names parent {node.parent_id!r} but is nested {where}"
                    )
                nodes[node.id] = node
                parent_of[node.id] = parent_id
                children_of[node.id] = [child.id for child in node.children]
                # Reverse so the first child is popped first
                for child in reversed(node.children):
                    stack.append((child, node.id))

        logger.debug(f"Indexed {len(nodes)} banks under {len(root_ids)} roots")
        return cls(nodes, parent_of, children_of, root_ids)

    @classmethod
    def from_records(cls, records: Iterable[BankNode]) -> BankTree:
        """
        Index flat records linked only by ``parent_id``.

        Nested ``children`` on the records are ignored; adjacency comes
        from ``parent_id``. Sibling order follows record order.

        Raises:
            DataIntegrityError: On duplicate ids or a parent cycle
        """
        nodes: Dict[str, BankNode] = {}
        order: List[str] = []
        for record in records:
            if record.id in nodes:
                raise DataIntegrityError(f"Duplicate bank id {record.id!r}")
            nodes[record.id] = record
            order.append(record.id)

        # Cycle check: walk each parent chain once, memoizing verified nodes
        verified: set = set()
        for node_id in order:
            chain: List[str] = []
            seen_in_chain: set = set()
            current: Optional[str] = node_id
            while current is not None and current in nodes and current not in verified:
                if current in seen_in_chain:
                    raise DataIntegrityError(
                        f"Bank parent chain revisits {current!r}: {' -> '.join(chain + [current])}"
                    )
                seen_in_chain.add(current)
                chain.append(current)
                current = nodes[current].parent_id
            verified.update(chain)

        children_of: Dict[str, List[str]] = {node_id: [] for node_id in order}
        root_ids: List[str] = []
        orphans: List[str] = []
        for node_id in order:
            parent_id = nodes[node_id].parent_id
            if parent_id is None:
                root_ids.append(node_id)
            elif parent_id in nodes:
                children_of[parent_id].append(node_id)
            else:
                orphans.append(node_id)

        if orphans:
            logger.warning(f"Dropping banks with missing parents (and their subtrees): {orphans}")

        # Keep only what is reachable from a root
        reachable: Dict[str, BankNode] = {}
        parent_of: Dict[str, Optional[str]] = {}
        for root_id in root_ids:
            stack: List[Tuple[str, Optional[str]]] = [(root_id, None)]
            while stack:
                node_id, parent_id = stack.pop()
                reachable[node_id] = nodes[node_id]
                parent_of[node_id] = parent_id
                for child_id in reversed(children_of[node_id]):
                    stack.append((child_id, node_id))

        return cls(
            reachable,
            parent_of,
            {node_id: children_of[node_id] for node_id in reachable},
            root_ids,
        )

    @classmethod
    def from_payload(cls, banks: Iterable[BankNode]) -> BankTree:
        """
        Index a bank listing in whichever shape the backend sent.

        A listing where no node embeds children but some name a parent is
        flat and goes through from_records(); anything else is a nested
        forest.
        """
        banks = list(banks)
        nested = any(node.children for node in banks)
        if not nested and any(node.parent_id is not None for node in banks):
            logger.debug(f"Bank listing is flat ({len(banks)} records)")
            return cls.from_records(banks)
        return cls.from_forest(banks)

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get(self, node_id: str) -> Optional[BankNode]:
        return self._nodes.get(node_id)

    def parent_id(self, node_id: str) -> Optional[str]:
        return self._parent_of.get(node_id)

    def child_ids(self, node_id: str) -> Tuple[str, ...]:
        return tuple(self._children_of.get(node_id, ()))

    def iter_preorder(self, start_id: Optional[str] = None) -> Iterator[Tuple[str, int]]:
        """
        Yield (node_id, depth) depth-first, parents before children.

        Args:
            start_id: Walk only this subtree; None walks every root
        """
        if start_id is None:
            starts = list(self.root_ids)
        elif start_id in self._nodes:
            starts = [start_id]
        else:
            return

        stack: List[Tuple[str, int]] = [(node_id, 0) for node_id in reversed(starts)]
        while stack:
            node_id, depth = stack.pop()
            yield node_id, depth
            for child_id in reversed(self._children_of.get(node_id, ())):
                stack.append((child_id, depth + 1))

    def flatten(self) -> List[Question]:
        """
        Concatenate every node's own questions, parents before children.

        Each question is annotated with the id of the node it came from.
        A question id is only emitted once, even if the backend listed it
        under two banks.

        Returns:
            Flat question list
        """
        questions: List[Question] = []
        seen_ids: set = set()
        for node_id, _ in self.iter_preorder():
            for question in self._nodes[node_id].questions:
                if question.id in seen_ids:
                    logger.warning(
                        f"Question {question.id} listed under more than one bank; "
                        f"keeping first occurrence"
                    )
                    continue
                seen_ids.add(question.id)
                if question.bank_id != node_id:
                    question = replace(question, bank_id=node_id)
                questions.append(question)
        return questions

    def collect_subtree_ids(self, node_id: str) -> List[str]:
        """
        Return ``node_id`` plus the id of every descendant.

        Unknown ids fail closed: an empty list, never an exception.
        """
        if node_id not in self._nodes:
            logger.warning(f"Bank {node_id!r} not found; subtree is empty")
            return []
        return [nid for nid, _ in self.iter_preorder(node_id)]

    def options(self) -> List[Tuple[str, str, int]]:
        """(id, name, depth) for every bank, in tree order."""
        return [
            (node_id, self._nodes[node_id].name, depth)
            for node_id, depth in self.iter_preorder()
        ]

    def __repr__(self) -> str:
        return f"BankTree(banks={len(self._nodes)}, roots={len(self.root_ids)})"
