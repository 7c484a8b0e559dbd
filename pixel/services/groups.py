"""Registry of scenario groups and their BackstopJS configurations."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pixel.errors import UnknownGroupError
from pixel.schemas import FeatureFlags, GroupDefinition, ScenarioConfig, ScenarioPaths

A11Y_SUFFIX = "-a11y"


def _scenario(slug: str, config_file: str) -> ScenarioConfig:
    return ScenarioConfig(id=slug, config_file=config_file, paths=ScenarioPaths.for_group(slug))


def _build(table: Dict[str, Dict[str, object]]) -> Dict[str, GroupDefinition]:
    # Validated once at import so a malformed entry fails before any run starts.
    return {name: GroupDefinition.model_validate(spec) for name, spec in table.items()}


GROUPS: Dict[str, GroupDefinition] = _build(
    {
        "desktop": {
            "name": "Desktop",
            "priority": 1,
            "config": _scenario("desktop", "configDesktop.js"),
        },
        "mobile": {
            "name": "Mobile",
            "priority": 1,
            "config": _scenario("mobile", "configMobile.js"),
        },
        "login": {
            "name": "Login and account creation",
            "priority": 2,
            "config": _scenario("login", "configLogin.js"),
        },
        "echo": {
            "name": "Echo notifications",
            "priority": 2,
            "config": _scenario("echo", "configEcho.js"),
        },
        "wikilambda": {
            "name": "WikiLambda",
            "priority": 3,
            "config": _scenario("wikilambda", "configWikiLambda.js"),
            "features": FeatureFlags(enable_wikilambda=True),
        },
        "codex": {
            "name": "Codex",
            "priority": 3,
            "config": _scenario("codex", "configCodex.js"),
        },
    }
)

A11Y_GROUPS: Dict[str, GroupDefinition] = _build(
    {
        "desktop": {
            "name": "Desktop (accessibility)",
            "priority": 1,
            "config": _scenario("a11y-desktop", "configDesktopA11y.js"),
            "a11y": True,
            "log_results": True,
        },
        "mobile": {
            "name": "Mobile (accessibility)",
            "priority": 1,
            "config": _scenario("a11y-mobile", "configMobileA11y.js"),
            "a11y": True,
            "log_results": True,
        },
    }
)


class GroupRegistry:
    def __init__(
        self,
        groups: Optional[Dict[str, GroupDefinition]] = None,
        a11y_groups: Optional[Dict[str, GroupDefinition]] = None,
    ) -> None:
        self._groups = dict(GROUPS if groups is None else groups)
        self._a11y_groups = dict(A11Y_GROUPS if a11y_groups is None else a11y_groups)

    def _table(self, a11y: bool) -> Dict[str, GroupDefinition]:
        return self._a11y_groups if a11y else self._groups

    def resolve(self, name: str, a11y: bool = False) -> GroupDefinition:
        try:
            return self._table(a11y)[name]
        except KeyError:
            raise UnknownGroupError(name, a11y) from None

    def names(self, a11y: bool = False) -> List[str]:
        return list(self._table(a11y))

    def all_groups(self) -> List[Tuple[str, GroupDefinition]]:
        """Standard and accessibility groups; accessibility keys carry the ``-a11y`` suffix."""
        entries = list(self._groups.items())
        entries.extend((f"{name}{A11Y_SUFFIX}", group) for name, group in self._a11y_groups.items())
        return entries
