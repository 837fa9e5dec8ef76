"""Localized texts for rule engine violations.

Each locale lives in ``<locale>.yaml`` next to this module and holds one
entry per axe-core rule id plus an explicit ``default`` entry used for rules
the table does not know.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml

TRANSLATIONS_DIR = Path(__file__).parent


@dataclass(frozen=True)
class RuleTranslation:
    """Localized text and WCAG reference for one rule."""
    description: str
    help_text: str
    fix_suggestion: str
    wcag_criteria: tuple[str, ...]
    wcag_level: Optional[str]

    @classmethod
    def from_dict(cls, data: dict) -> "RuleTranslation":
        return cls(
            description=data["description"],
            help_text=data["help_text"],
            fix_suggestion=data["fix_suggestion"],
            wcag_criteria=tuple(str(c) for c in data.get("wcag_criteria") or []),
            wcag_level=data.get("wcag_level"),
        )


@dataclass(frozen=True)
class TranslationTable:
    """Immutable rule table for one locale."""
    locale: str
    rules: Mapping[str, RuleTranslation]
    default: RuleTranslation
    severity_labels: Mapping[str, str]
    wcag_criteria: Mapping[str, Mapping[str, str]]

    def get(self, rule_id: str) -> RuleTranslation:
        """Return the entry for ``rule_id``, or the default entry filled in with it."""
        translation = self.rules.get(rule_id)
        if translation is not None:
            return translation

        return RuleTranslation(
            description=self.default.description.format(rule_id=rule_id),
            help_text=self.default.help_text.format(rule_id=rule_id),
            fix_suggestion=self.default.fix_suggestion.format(rule_id=rule_id),
            wcag_criteria=self.default.wcag_criteria,
            wcag_level=self.default.wcag_level,
        )

    def severity_label(self, severity: str) -> str:
        """Localized name of a severity, or the severity itself when unlabeled."""
        return self.severity_labels.get(severity, severity)

    def criterion_title(self, criterion: str) -> Optional[str]:
        entry = self.wcag_criteria.get(criterion)
        return entry.get("title") if entry else None


@lru_cache(maxsize=None)
def load_translations(locale: str = "nl") -> TranslationTable:
    """Load and cache the translation table for a locale.

    Raises:
        FileNotFoundError: If no table exists for the locale
    """
    path = TRANSLATIONS_DIR / f"{locale}.yaml"
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    rules = {
        rule_id: RuleTranslation.from_dict(entry)
        for rule_id, entry in (data.get("rules") or {}).items()
    }
    return TranslationTable(
        locale=data.get("locale", locale),
        rules=MappingProxyType(rules),
        default=RuleTranslation.from_dict(data["default"]),
        severity_labels=MappingProxyType(dict(data.get("severity_labels") or {})),
        wcag_criteria=MappingProxyType(
            {str(k): MappingProxyType(v) for k, v in (data.get("wcag_criteria") or {}).items()}
        ),
    )


def get_translation(rule_id: str, locale: str = "nl") -> RuleTranslation:
    """Look up the localized entry for an axe-core rule id."""
    return load_translations(locale).get(rule_id)
