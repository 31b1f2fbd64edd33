"""Danger policy — which tools need confirmation, and how dangerous they are."""

from __future__ import annotations

from loguru import logger

from toolpilot.core.config.schema import Config, DangerLevel, SecurityRule, default_rules


class DangerPolicy:
    """Lookup of SecurityRules by tool name.

    Tools without a rule are ``DangerLevel.NONE`` and never gated.

    Parameters
    ----------
    rules : list[SecurityRule], optional
        Rule table. Defaults to the built-in table of file, browser and
        document tools.
    """

    def __init__(self, rules: list[SecurityRule] | None = None) -> None:
        self._rules: dict[str, SecurityRule] = {}
        for rule in default_rules() if rules is None else rules:
            if rule.tool_name in self._rules:
                logger.warning(f"Duplicate security rule for '{rule.tool_name}', last one wins")
            self._rules[rule.tool_name] = rule

    @classmethod
    def from_config(cls, config: Config) -> DangerPolicy:
        return cls(config.security.rules)

    def get_rule(self, tool_name: str) -> SecurityRule | None:
        return self._rules.get(tool_name)

    def get_danger_level(self, tool_name: str) -> DangerLevel:
        rule = self._rules.get(tool_name)
        return rule.danger_level if rule else DangerLevel.NONE

    def requires_confirmation(self, tool_name: str) -> bool:
        rule = self._rules.get(tool_name)
        return bool(rule and rule.requires_confirmation)

    def get_security_warning(self, tool_name: str) -> str | None:
        """Human-readable warning for gated tools, None otherwise."""
        rule = self._rules.get(tool_name)
        if not rule or not rule.requires_confirmation:
            return None
        description = rule.description or f"Execute {tool_name}"
        return f"{description} - This action requires confirmation before proceeding."

    def dangerous_tools(self) -> set[str]:
        return {name for name, rule in self._rules.items() if rule.requires_confirmation}
