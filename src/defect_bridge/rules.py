from __future__ import annotations

from collections.abc import Iterable

from defect_bridge.models import DefectInstance, Rule, RuleKey

REPOSITORY_KEY = "coverity"


def repository_for(language: str) -> str:
    return f"{REPOSITORY_KEY}-{language}"


def rule_key_for(language: str, instance: DefectInstance) -> RuleKey:
    """Map a defect instance's checker to the rule key of a language repository.

    The rule part is ``<domain>_<checker>``, so the same checker reported by
    different analysis domains (e.g. STATIC_C vs STATIC_JAVA) stays distinct.
    """
    return RuleKey(
        repository=repository_for(language),
        rule=f"{instance.domain}_{instance.checker_name}",
    )


class RulesProfile:
    def __init__(self, rules: Iterable[Rule]):
        self._rules: dict[tuple[str, str], Rule] = {}
        for rule in rules:
            self._rules[(rule.repository, rule.key)] = rule

    def __len__(self) -> int:
        return len(self._rules)

    def get_rule(self, repository: str, key: str) -> Rule | None:
        return self._rules.get((repository, key))

    def get_active_rule(self, repository: str, key: str) -> Rule | None:
        rule = self.get_rule(repository, key)
        if rule is None or not rule.active:
            return None
        return rule

    def active_rules_by_repository(self, repository: str) -> list[Rule]:
        return [
            rule
            for (repo, _), rule in sorted(self._rules.items())
            if repo == repository and rule.active
        ]

    def active_rules(self) -> list[Rule]:
        return [rule for _, rule in sorted(self._rules.items()) if rule.active]
