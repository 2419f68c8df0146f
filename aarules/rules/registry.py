"""Rule registry — discovers and loads all per-operation rules."""

from __future__ import annotations

import importlib
import logging
import pkgutil
from typing import Iterable, Type

from aarules.core.errors import RuleLoadError
from aarules.core.types import RuleId
from aarules.rules.base_rule import BaseRule

logger = logging.getLogger(__name__)


class RuleRegistry:
    """Registry for all per-operation validation rules.

    Discovers rules from the ``checks`` package and provides methods to list,
    look up and instantiate them in run order.
    """

    def __init__(self) -> None:
        self._rules: dict[RuleId, Type[BaseRule]] = {}
        self._loaded = False

    def discover(self) -> None:
        """Auto-discover all rule classes from the checks package."""
        if self._loaded:
            return

        import aarules.rules.checks as checks_pkg

        for _finder, module_name, _is_pkg in pkgutil.walk_packages(
            checks_pkg.__path__,
            prefix=checks_pkg.__name__ + ".",
        ):
            try:
                module = importlib.import_module(module_name)
            except Exception as e:
                logger.error("Failed to load rule module %s: %s", module_name, e)
                raise RuleLoadError(f"failed to load rule module {module_name}: {e}") from e
            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if (
                    isinstance(attr, type)
                    and issubclass(attr, BaseRule)
                    and attr is not BaseRule
                    and attr.RULE_ID is not None
                ):
                    self._rules[attr.RULE_ID] = attr

        self._loaded = True
        logger.debug("Discovered %d rules", len(self._rules))

    def register(self, rule_cls: Type[BaseRule]) -> None:
        """Add a rule class outside the checks package."""
        if rule_cls.RULE_ID is None:
            raise RuleLoadError(f"{rule_cls.__name__} has no RULE_ID")
        self.discover()
        self._rules[rule_cls.RULE_ID] = rule_cls

    def get_all(self) -> list[Type[BaseRule]]:
        """Return all registered rule classes in run order."""
        self.discover()
        return sorted(self._rules.values(), key=lambda r: (r.ORDER, r.RULE_ID.value))

    def get_by_id(self, rule_id: RuleId) -> Type[BaseRule] | None:
        self.discover()
        return self._rules.get(rule_id)

    def instantiate(self, disabled: Iterable[RuleId] = ()) -> list[BaseRule]:
        """Instantiate every enabled rule, in run order."""
        disabled = set(disabled)
        rules: list[BaseRule] = []
        for rule_cls in self.get_all():
            if rule_cls.RULE_ID in disabled:
                logger.warning("Rule %s is disabled by configuration", rule_cls.RULE_ID.value)
                continue
            rules.append(rule_cls())
        return rules

    def count(self) -> int:
        self.discover()
        return len(self._rules)


# Global registry singleton
registry = RuleRegistry()
