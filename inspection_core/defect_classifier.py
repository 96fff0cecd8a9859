"""Rule-based severity classification for reported vehicle defects.

Turns ``(category, description)`` into a :class:`~inspection_core.schemas.Severity`
using an ordered strategy table loaded from
``rules/classification_rules.yaml``.  Each rule pairs a set of category
terms with an ordered list of outcomes; an outcome fires when every
keyword set it names has at least one hit in the description.

No learned model: the classifier is deterministic, case-insensitive and
accent-insensitive, and never raises on string input.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from inspection_core.schemas import Defect, Severity

logger = logging.getLogger(__name__)

_DEFAULT_RULES_PATH = Path(__file__).resolve().parent / "rules" / "classification_rules.yaml"

_VALID_SEVERITIES = frozenset(s.value for s in Severity)

# ---------------------------------------------------------------------------
# Text normalisation
# ---------------------------------------------------------------------------


def fold(text: Any) -> str:
    """Lowercase *text* and strip diacritics (``"Cassé"`` -> ``"casse"``).

    ``None`` becomes ``""``; any other non-string is passed through ``str()``.
    """
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text).lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


# ---------------------------------------------------------------------------
# Compiled rule table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeywordSet:
    """A named list of folded keywords matched as plain substrings."""

    name: str
    keywords: Tuple[str, ...]

    @classmethod
    def build(cls, name: str, keywords: Iterable[str]) -> "KeywordSet":
        folded = tuple(dict.fromkeys(k for k in (fold(w).strip() for w in keywords) if k))
        return cls(name=name, keywords=folded)

    def hits(self, text: str) -> Tuple[str, ...]:
        """Return the keywords found in already-folded *text*, in declaration order."""
        return tuple(k for k in self.keywords if k in text)


@dataclass(frozen=True)
class Outcome:
    """``when`` keyword sets (all must hit) -> ``severity``."""

    when: Tuple[str, ...]
    severity: Severity


@dataclass(frozen=True)
class ClassificationRule:
    rule_id: str
    categories: Tuple[str, ...]
    outcomes: Tuple[Outcome, ...]
    description: str = ""

    def matches_category(self, category: str) -> bool:
        """A rule with no category terms is the catch-all."""
        if not self.categories:
            return True
        return any(term in category for term in self.categories)


@dataclass(frozen=True)
class ClassificationTrace:
    """Why a defect got its severity.

    Attributes
    ----------
    severity : Severity
        Final classification.
    rule_id : str
        Rule whose category terms matched (``"GENERIC"`` for the fallback).
    keyword_hits : dict[str, tuple[str, ...]]
        Hits per keyword set evaluated by the winning outcome.
    """

    severity: Severity
    rule_id: str
    keyword_hits: Dict[str, Tuple[str, ...]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "rule_id": self.rule_id,
            "keyword_hits": {k: list(v) for k, v in self.keyword_hits.items()},
        }


@dataclass(frozen=True)
class RuleTable:
    """Ordered classification rules plus the keyword sets they refer to."""

    keyword_sets: Dict[str, KeywordSet]
    rules: Tuple[ClassificationRule, ...]

    def evaluate(self, category: Any, description: Any) -> ClassificationTrace:
        cat = fold(category)
        desc = fold(description)

        for rule in self.rules:
            if not rule.matches_category(cat):
                continue
            for outcome in rule.outcomes:
                hits = {name: self.keyword_sets[name].hits(desc) for name in outcome.when}
                if all(hits.values()):
                    return ClassificationTrace(
                        severity=outcome.severity,
                        rule_id=rule.rule_id,
                        keyword_hits=hits,
                    )
            # Validation guarantees the last outcome is unconditional,
            # so this is only reachable with a hand-built table.
            break

        return ClassificationTrace(severity=Severity.MINOR, rule_id="NONE", keyword_hits={})


# ---------------------------------------------------------------------------
# Rule loading
# ---------------------------------------------------------------------------


def _validate_keyword_sets(raw_sets: Any) -> None:
    """Each keyword set must be a list of strings. Raises ValueError."""
    if not isinstance(raw_sets, dict):
        raise ValueError("keyword_sets must be a mapping")
    for name, words in raw_sets.items():
        if not isinstance(words, list):
            raise ValueError(
                f"Keyword set '{name}' must be a list, got {type(words).__name__}"
            )
        for word in words:
            if not isinstance(word, str):
                raise ValueError(f"Keyword set '{name}': keyword {word!r} is not a string")


def _validate_rule(rule: Any, index: int, keyword_sets: Dict[str, Any]) -> None:
    """Validate a single rule dict structure. Raises ValueError on problems."""
    if not isinstance(rule, dict):
        raise ValueError(f"Rule at index {index} must be a mapping, got {type(rule).__name__}")
    required_keys = {"id", "outcomes"}
    missing = required_keys - set(rule.keys())
    if missing:
        raise ValueError(
            f"Rule at index {index} (id={rule.get('id', '?')}) "
            f"missing required keys: {missing}"
        )
    if not isinstance(rule["id"], str) or not rule["id"]:
        raise ValueError(f"Rule at index {index}: id must be a non-empty string")
    categories = rule.get("categories")
    if categories is not None and not isinstance(categories, list):
        raise ValueError(f"Rule {rule['id']}: categories must be a list")
    outcomes = rule["outcomes"]
    if not isinstance(outcomes, list) or len(outcomes) == 0:
        raise ValueError(f"Rule {rule['id']}: outcomes must be a non-empty list")
    for outcome in outcomes:
        if not isinstance(outcome, dict):
            raise ValueError(f"Rule {rule['id']}: each outcome must be a mapping")
        if outcome.get("severity") not in _VALID_SEVERITIES:
            raise ValueError(
                f"Rule {rule['id']}: invalid severity '{outcome.get('severity')}'"
            )
        when = outcome.get("when")
        if when is not None and not isinstance(when, list):
            raise ValueError(f"Rule {rule['id']}: 'when' must be a list of keyword set names")
        for name in when or []:
            if not isinstance(name, str) or name not in keyword_sets:
                raise ValueError(f"Rule {rule['id']}: unknown keyword set '{name}'")
    if outcomes[-1].get("when"):
        raise ValueError(f"Rule {rule['id']}: last outcome must have no 'when' clause")


def _compile(raw: Dict[str, Any]) -> RuleTable:
    raw_sets = raw.get("keyword_sets")
    if raw_sets is None:
        raw_sets = {}
    raw_rules = raw.get("rules")
    _validate_keyword_sets(raw_sets)
    if not isinstance(raw_rules, list) or len(raw_rules) == 0:
        raise ValueError("rules must be a non-empty list")

    seen_ids: set[str] = set()
    for i, rule in enumerate(raw_rules):
        _validate_rule(rule, i, raw_sets)
        rid = rule["id"]
        if rid in seen_ids:
            raise ValueError(f"Duplicate rule id: {rid}")
        seen_ids.add(rid)

    if raw_rules[-1].get("categories"):
        raise ValueError(f"Last rule ({raw_rules[-1]['id']}) must be a catch-all with no categories")

    keyword_sets = {name: KeywordSet.build(name, words) for name, words in raw_sets.items()}
    rules = tuple(
        ClassificationRule(
            rule_id=rule["id"],
            categories=tuple(fold(c) for c in rule.get("categories") or []),
            outcomes=tuple(
                Outcome(when=tuple(o.get("when") or []), severity=Severity(o["severity"]))
                for o in rule["outcomes"]
            ),
            description=rule.get("description", ""),
        )
        for rule in raw_rules
    )
    return RuleTable(keyword_sets=keyword_sets, rules=rules)


def load_rules(path: Optional[Path] = None) -> RuleTable:
    """Load, validate and compile classification rules from YAML.

    Parameters
    ----------
    path :
        Path to YAML file.  Defaults to the bundled
        ``classification_rules.yaml``.

    Raises
    ------
    ValueError
        If the YAML is invalid or any rule fails validation.
    FileNotFoundError
        If the file does not exist.
    """
    path = Path(path) if path is not None else _DEFAULT_RULES_PATH

    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Expected a mapping in {path}, got {type(raw).__name__}")

    table = _compile(raw)
    logger.debug("Loaded %d classification rules from %s", len(table.rules), path)
    return table


_default_table: Optional[RuleTable] = None


def default_rule_table() -> RuleTable:
    global _default_table
    if _default_table is None:
        _default_table = load_rules()
    return _default_table


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def classify(
    category: str,
    description: str,
    *,
    rules: Optional[RuleTable] = None,
) -> Severity:
    """Return the severity of a defect from its category and description."""
    return explain(category, description, rules=rules).severity


def explain(
    category: str,
    description: str,
    *,
    rules: Optional[RuleTable] = None,
) -> ClassificationTrace:
    """Classify and report the matched rule and keyword hits."""
    table = rules if rules is not None else default_rule_table()
    return table.evaluate(category, description)


def effective_severity(defect: Defect, *, rules: Optional[RuleTable] = None) -> Severity:
    """The defect's own severity if set, else the classifier's."""
    if defect.severity is not None:
        return defect.severity
    return classify(defect.category, defect.description, rules=rules)


def classify_defect(defect: Defect, *, rules: Optional[RuleTable] = None) -> Defect:
    """Return a copy of *defect* with ``severity`` filled in."""
    if defect.severity is not None:
        return defect
    return defect.model_copy(update={"severity": effective_severity(defect, rules=rules)})


def classify_defects(
    defects: Sequence[Defect],
    *,
    rules: Optional[RuleTable] = None,
) -> List[Defect]:
    return [classify_defect(d, rules=rules) for d in defects]
