"""Decomposition patterns and anti-pattern inversion.

A pattern that keeps failing is inverted into an explicit "AVOID: ..."
warning. Inversion only happens through ``record_pattern_observation``;
storage never inverts on its own. Anti-patterns keep accruing counts but
are never inverted again.
"""

import re
from dataclasses import replace
from typing import Iterable

import structlog

from shared_types import PatternKind

from .config import AntiPatternConfig
from .decay import utcnow
from .errors import LearningValidationError
from .models import AntiPatternInversion, DecompositionPattern, PatternObservation, new_id

logger = structlog.get_logger()

# (marker regex, canonical pattern name)
PATTERN_MARKERS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"split(?:ting)?\s+by\s+file\s+type", re.I), "Split by file type"),
    (re.compile(r"split(?:ting)?\s+by\s+component", re.I), "Split by component"),
    (re.compile(r"split(?:ting)?\s+by\s+layer", re.I), "Split by layer (UI/logic/data)"),
    (re.compile(r"split(?:ting)?\s+by\s+(?:feature|functionality)", re.I), "Split by feature"),
    (re.compile(r"(?:one|single)\s+file\s+per\s+(?:sub)?task", re.I), "One file per subtask"),
    (re.compile(r"(?:handle|address)\s+shared\s+types?\s+first", re.I), "Handle shared types first"),
    (re.compile(r"(?:api|routes?)\s+(?:before|first)", re.I), "API routes first"),
    (
        re.compile(r"tests?\s+(?:alongside|with)\s+(?:the\s+)?(?:implementation|code)", re.I),
        "Tests alongside implementation",
    ),
    (re.compile(r"tests?\s+(?:in\s+)?(?:a\s+)?separate\s+(?:sub)?task", re.I), "Tests in separate subtask"),
    (re.compile(r"(?:parallel(?:ize)?|concurrent)\s+(?:all|everything)", re.I), "Maximize parallelization"),
    (re.compile(r"(?:sequential|serial)\s+(?:order|execution)", re.I), "Sequential execution order"),
    (re.compile(r"dependency\s+(?:chain|order)", re.I), "Respect dependency chain"),
]


def create_pattern(
    content: str,
    tags: Iterable[str] | None = None,
    kind: PatternKind = PatternKind.PATTERN,
    pattern_id: str | None = None,
) -> DecompositionPattern:
    """New pattern with zero observations."""
    kind = PatternKind(kind)
    return DecompositionPattern(
        id=pattern_id or new_id("pattern-"),
        content=content,
        kind=kind,
        is_negative=kind == PatternKind.ANTI_PATTERN,
        tags=list(tags or []),
    )


def should_invert_pattern(
    pattern: DecompositionPattern, config: AntiPatternConfig | None = None
) -> bool:
    """True when a pattern has failed often enough to become an anti-pattern."""
    config = config or AntiPatternConfig()
    if pattern.kind == PatternKind.ANTI_PATTERN:
        return False
    total = pattern.total_observations
    if total < config.min_observations:
        return False
    return pattern.failure_count / total >= config.failure_ratio_threshold


def base_content(content: str, prefix: str = "AVOID: ") -> str:
    """Pattern text with any anti-pattern prefix removed."""
    marker = prefix.strip()
    stripped = content.strip()
    while stripped.startswith(marker):
        stripped = stripped[len(marker):].lstrip()
    return stripped


def invert_to_anti_pattern(
    pattern: DecompositionPattern,
    reason: str,
    config: AntiPatternConfig | None = None,
) -> AntiPatternInversion:
    """Turn ``pattern`` into an explicit anti-pattern warning."""
    config = config or AntiPatternConfig()
    if not reason or not reason.strip():
        raise LearningValidationError("reason", "inversion needs a reason")

    base = base_content(pattern.content, config.anti_pattern_prefix)
    inverted = replace(
        pattern,
        kind=PatternKind.ANTI_PATTERN,
        is_negative=True,
        content=f"{config.anti_pattern_prefix}{base}",
        reason=reason,
        tags=list(pattern.tags),
        example_task_ids=list(pattern.example_task_ids),
        updated_at=utcnow(),
    )
    logger.info("pattern_inverted", pattern_id=pattern.id, reason=reason)
    return AntiPatternInversion(original=pattern, inverted=inverted, reason=reason)


def record_pattern_observation(
    pattern: DecompositionPattern,
    success: bool,
    task_id: str | None = None,
    config: AntiPatternConfig | None = None,
) -> PatternObservation:
    """Count one success or failure; attach an inversion once the pattern qualifies."""
    config = config or AntiPatternConfig()
    examples = list(pattern.example_task_ids)
    if task_id and task_id not in examples:
        examples.append(task_id)

    updated = replace(
        pattern,
        success_count=pattern.success_count + (1 if success else 0),
        failure_count=pattern.failure_count + (0 if success else 1),
        tags=list(pattern.tags),
        example_task_ids=examples,
        updated_at=utcnow(),
    )

    inversion = None
    if should_invert_pattern(updated, config):
        total = updated.total_observations
        reason = (
            f"Failed {updated.failure_count}/{total} times "
            f"({updated.failure_count / total:.0%} failure rate)"
        )
        inversion = invert_to_anti_pattern(updated, reason, config)

    return PatternObservation(pattern=updated, inversion=inversion)


def extract_patterns_from_description(text: str) -> list[str]:
    """Canonical pattern names mentioned in free text, in marker order."""
    found = []
    for regex, name in PATTERN_MARKERS:
        if regex.search(text or "") and name not in found:
            found.append(name)
    return found


def format_anti_patterns_for_prompt(patterns: Iterable[DecompositionPattern]) -> str:
    """Bulleted "Anti-Patterns to Avoid" block, or "" if there are none."""
    anti = [p for p in patterns if p.kind == PatternKind.ANTI_PATTERN]
    if not anti:
        return ""
    lines = [
        "## Anti-Patterns to Avoid",
        "",
        "Based on past failures, avoid these decomposition approaches:",
        "",
    ]
    lines.extend(f"- {p.content}" for p in anti)
    return "\n".join(lines)


def format_successful_patterns_for_prompt(
    patterns: Iterable[DecompositionPattern], min_success_rate: float = 0.7
) -> str:
    """Bulleted block of patterns whose success rate meets ``min_success_rate``."""
    good = []
    for p in patterns:
        if p.kind == PatternKind.ANTI_PATTERN:
            continue
        rate = p.success_rate
        if rate is not None and rate >= min_success_rate:
            good.append((p, rate))
    if not good:
        return ""
    lines = [
        "## Successful Patterns",
        "",
        "These approaches have worked well in past decompositions:",
        "",
    ]
    lines.extend(f"- {p.content} ({rate:.0%} success rate)" for p, rate in good)
    return "\n".join(lines)
