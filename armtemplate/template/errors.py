"""Errors raised while decoding and linking templates."""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..exceptions import ArmTemplateError
from ..expression.errors import ParseError

FieldPath = Tuple[Union[str, int], ...]


@dataclass(frozen=True)
class DecodeIssue:
    """One problem found in a template document.

    Attributes:
        path: Location of the field, e.g. ``("resources", 0, "name")``.
        message: Human-readable description.
        cause: The expression parse error behind this issue, if any.
    """
    path: FieldPath
    message: str
    cause: Optional[ParseError] = None

    @property
    def location(self) -> str:
        """Dotted form of ``path``, e.g. ``resources[0].name``."""
        text = ""
        for part in self.path:
            if isinstance(part, int):
                text += f"[{part}]"
            else:
                text += f".{part}" if text else str(part)
        return text or "<root>"


class TemplateDecodeError(ArmTemplateError):
    """A template document does not match the template schema.

    Attributes:
        issues: Every problem found, in document order.
    """

    def __init__(self, issues: Sequence[DecodeIssue]):
        self.issues = list(issues)
        lines = [f"{issue.location}: {issue.message}" for issue in self.issues]
        super().__init__(
            f"Invalid ARM template ({len(self.issues)} issue(s)):\n" + "\n".join(lines)
        )

    @property
    def parse_errors(self) -> List[ParseError]:
        """Expression parse errors among the issues."""
        return [issue.cause for issue in self.issues if issue.cause is not None]

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "TemplateDecodeError":
        """Convert pydantic's error report, keeping field paths and parse errors."""
        issues = []
        for detail in error.errors():
            cause = (detail.get("ctx") or {}).get("error")
            if not isinstance(cause, ParseError):
                cause = None
            message = cause.reason if cause is not None else detail["msg"]
            issues.append(DecodeIssue(tuple(detail["loc"]), message, cause))
        return cls(issues)


class UnresolvedDependencyError(ArmTemplateError):
    """A ``dependsOn`` entry matches no resource in the template.

    Attributes:
        resource_index: Position of the resource declaring the dependency.
        dependency: The identifier that could not be resolved, as ARM text.
    """

    def __init__(self, resource_index: int, dependency: str):
        self.resource_index = resource_index
        self.dependency = dependency
        super().__init__(
            f"resources[{resource_index}] depends on '{dependency}', "
            "which matches no resource in the template"
        )


class DependencyCycleError(ArmTemplateError):
    """Resources depend on each other in a cycle.

    Attributes:
        cycle: Resource indices on the cycle, first index repeated at the end.
    """

    def __init__(self, cycle: Sequence[int]):
        self.cycle = list(cycle)
        path = " -> ".join(f"resources[{index}]" for index in self.cycle)
        super().__init__(f"Dependency cycle: {path}")
