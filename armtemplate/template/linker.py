"""Resolve ``dependsOn`` identifiers to resources and order deployment.

Resources are stored once, in ``ArmTemplate.resources``. Dependencies stay
identifiers on the resource and are linked here to positions in that list,
without evaluating any expression.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..expression.ast import (
    ArmExpression,
    FunctionExpression,
    FunctionName,
    LiteralExpression,
    LiteralKind,
)
from ..expression.render import render_expression
from .errors import DependencyCycleError, UnresolvedDependencyError
from .schema import ArmResource, ArmTemplate


@dataclass(frozen=True)
class DependencyGraph:
    """Dependencies between the resources of one template.

    Attributes:
        template: The linked template.
        edges: For each resource position, the positions it depends on, in
            declaration order and without duplicates.
    """
    template: ArmTemplate
    edges: Tuple[Tuple[int, ...], ...]

    def dependencies_of(self, index: int) -> List[ArmResource]:
        """Resources that the resource at ``index`` depends on."""
        return [self.template.resources[target] for target in self.edges[index]]

    def deployment_order(self) -> List[int]:
        """Resource positions ordered so that dependencies come first.

        Among resources that are ready at the same time, declaration order
        wins, so a template without dependencies keeps its order.

        Raises:
            DependencyCycleError: If the dependencies form a cycle.
        """
        remaining = {index: set(targets) for index, targets in enumerate(self.edges)}
        order = []
        while remaining:
            ready = [index for index, targets in sorted(remaining.items()) if not targets]
            if not ready:
                raise DependencyCycleError(self._find_cycle(remaining))
            for index in ready:
                order.append(index)
                del remaining[index]
            for targets in remaining.values():
                targets.difference_update(ready)
        return order

    def _find_cycle(self, remaining: Dict[int, set]) -> List[int]:
        # Every remaining node has an unfinished dependency, so walking
        # them must revisit a node.
        start = min(remaining)
        path = [start]
        seen = {start: 0}
        current = start
        while True:
            current = min(remaining[current])
            if current in seen:
                return path[seen[current]:] + [current]
            seen[current] = len(path)
            path.append(current)


def link_dependencies(template: ArmTemplate) -> DependencyGraph:
    """Resolve every ``dependsOn`` entry of ``template`` to a resource position.

    A dependency matches a resource when it is the same expression as the
    resource's name, when it is a literal equal to the name or to
    ``<type>/<name>``, or when it is a ``resourceId()`` call naming the
    resource's type and name.

    Args:
        template: Decoded template.

    Returns:
        DependencyGraph: Links between resource positions.

    Raises:
        UnresolvedDependencyError: If an entry matches no resource.
    """
    edges = []
    for index, resource in enumerate(template.resources):
        targets: List[int] = []
        for dependency in resource.depends_on or []:
            target = _resolve(template.resources, dependency)
            if target is None:
                raise UnresolvedDependencyError(index, render_expression(dependency))
            if target not in targets:
                targets.append(target)
        edges.append(tuple(targets))
    return DependencyGraph(template, tuple(edges))


def _resolve(resources: Tuple[ArmResource, ...], dependency: ArmExpression) -> Optional[int]:
    for index, resource in enumerate(resources):
        if _matches(resource, dependency):
            return index
    return None


def _matches(resource: ArmResource, dependency: ArmExpression) -> bool:
    if dependency == resource.name:
        return True
    name = _literal_text(resource.name)
    if isinstance(dependency, LiteralExpression):
        text = _literal_text(dependency)
        if text is None or name is None:
            return False
        text = text.lower()
        return text == name.lower() or text == f"{resource.type}/{name}".lower()
    if isinstance(dependency, FunctionExpression) and dependency.name is FunctionName.RESOURCE_ID:
        return _matches_resource_id(resource, dependency.arguments, name)
    return False


def _matches_resource_id(
    resource: ArmResource, arguments: Tuple[ArmExpression, ...], name: Optional[str]
) -> bool:
    # resourceId() may lead with subscription and resource group arguments,
    # so find the resource type among them and compare what follows.
    for position, argument in enumerate(arguments):
        text = _literal_text(argument)
        if text is None or text.lower() != resource.type.lower():
            continue
        name_parts = arguments[position + 1:]
        if len(name_parts) == 1 and name_parts[0] == resource.name:
            return True
        texts = [_literal_text(part) for part in name_parts]
        if name is None or not texts or None in texts:
            continue
        if "/".join(texts).lower() == name.lower():
            return True
    return False


def _literal_text(expression: ArmExpression) -> Optional[str]:
    if isinstance(expression, LiteralExpression) and expression.kind is LiteralKind.STRING:
        return expression.value
    return None
