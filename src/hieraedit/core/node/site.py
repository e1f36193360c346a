"""Site manifests: ``<env>/manifests/*.pp`` evaluated once per node.

Top-level statements run in order, file by file, in one scope whose
variables become node globals. ``node`` definitions are collected and the
best match for the certname runs last, in the same scope. Class, defined
type and function definitions found at top level are skipped; they are
resolved through the modules index.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Sequence

from hieraedit.core.ast import (
    ClassDefinition,
    ExpressionNode,
    FunctionDefinition,
    LocalScope,
    NodeDefinition,
    Resolver,
    ReturnSignal,
)
from hieraedit.core.ast.nodes import run_statements, statement_list
from hieraedit.core.exceptions import CompilationError, ParseError
from hieraedit.core.utils.io import read_json

logger = logging.getLogger(__name__)


def node_names(certname: str) -> list[str]:
    """``web1.example.com`` -> ``["web1.example.com", "web1.example", "web1"]``."""
    parts = certname.lower().split(".")
    return [".".join(parts[:i]) for i in range(len(parts), 0, -1)]


class SiteManifests:
    """Compiled site manifests of one environment, as ``(name, artifact)`` pairs."""

    def __init__(self, manifests: Sequence[tuple[str, Path]], parse: Callable[[Any], ExpressionNode]) -> None:
        self.manifests = [(name, Path(artifact)) for name, artifact in manifests]
        self._parse = parse

    def __len__(self) -> int:
        return len(self.manifests)

    def _statements(self, name: str, artifact: Path) -> list[ExpressionNode]:
        try:
            data = read_json(artifact)
        except (OSError, ValueError) as exc:
            raise CompilationError(
                f"Failed to parse manifest {name}: {exc}", context={"manifest": name, "artifact": str(artifact)}
            ) from exc
        try:
            return statement_list(self._parse(data))
        except ParseError as exc:
            raise CompilationError(f"Failed to parse manifest {name}: {exc}", context={"manifest": name}) from exc

    def evaluate(self, scope: LocalScope, certname: str, resolver: Resolver) -> NodeDefinition | None:
        """Run every manifest into ``scope``; returns the node definition used.

        Raises:
            CompilationError: unreadable artifact or a failing statement.
        """
        nodes: list[NodeDefinition] = []
        for name, artifact in self.manifests:
            statements = self._statements(name, artifact)
            logger.debug("Evaluating manifest %s (%d statements)", name, len(statements))
            top_level = []
            for statement in statements:
                if isinstance(statement, NodeDefinition):
                    nodes.append(statement)
                elif not isinstance(statement, (ClassDefinition, FunctionDefinition)):
                    top_level.append(statement)
            self._run(name, top_level, scope, resolver)

        node = self._select(nodes, certname, scope, resolver)
        if node is not None:
            self._run(f"node definition of {certname}", node.body, scope, resolver)
        return node

    def _select(
        self, nodes: Sequence[NodeDefinition], certname: str, scope: LocalScope, resolver: Resolver
    ) -> NodeDefinition | None:
        names = node_names(certname)
        best: tuple[int, NodeDefinition] | None = None
        for node in nodes:
            rank = node.rank(names, scope, resolver)
            if rank is not None and (best is None or rank < best[0]):
                best = (rank, node)
        if best is None:
            if nodes:
                logger.info("No node definition matches %s", certname)
            return None
        return best[1]

    def _run(self, name: str, statements: Sequence[ExpressionNode], scope: LocalScope, resolver: Resolver) -> None:
        try:
            run_statements(statements, scope, resolver)
        except ReturnSignal:
            return
        except CompilationError:
            raise
        except Exception as exc:
            raise CompilationError(f"Failed to resolve manifest {name}: {exc}", context={"manifest": name}) from exc


__all__ = ["SiteManifests", "node_names"]
