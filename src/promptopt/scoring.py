"""Deterministic prompt quality scoring."""

import math
import re
from collections import Counter
from typing import List, Optional

from .models.scores import ComparisonResult, DimensionComparison, PromptIssue, ScoreSet

TOKEN_WORD_FACTOR = 1.3
TOKEN_CHARS_PER_TOKEN = 4

CLARITY_BASE = 100
AMBIGUITY_PENALTY = 5
CLARITY_BONUS = 5

SPECIFICITY_BASE = 50
SPECIFICITY_BONUS = 10
VAGUENESS_PENALTY = 3

STRUCTURE_BASE = 40
COMPLETENESS_BASE = 30

TIE_BAND = 5
DIMENSION_NOTE_THRESHOLD = 10
SUGGESTION_THRESHOLD = 60
MAX_SUGGESTIONS = 5

_I = re.IGNORECASE
_M = re.MULTILINE

AMBIGUOUS_TERMS = re.compile(
    r"\b(?:it|this|that|thing|stuff|something|somehow|maybe|perhaps|etc)\b|\band so on\b", _I
)
ROLE_OPENING = re.compile(r"^\s*(?:you are|act as|as an?|your role is|your task is)\b", _I)
SEQUENCING_WORDS = re.compile(r"\b(?:steps?|first|then|next|finally)\b", _I)
LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+\S", _M)

PRECISION_WORDS = re.compile(r"\b(?:exactly|precisely|specifically|must|requir\w*)\b", _I)
DIGIT = re.compile(r"\d")
QUOTED = re.compile(r"\"[^\"\n]+\"|`[^`\n]+`|“[^”\n]+”")
EXAMPLE_MARKERS = re.compile(r"\b(?:examples?|for instance|such as)\b|\be\.g\.", _I)
FORMAT_WORDS = re.compile(r"\b(?:format|json|markdown|csv|table|yaml|bullets?|output)\b", _I)
VAGUE_TERMS = re.compile(
    r"\b(?:good|nice|great|better|best|awesome|some|any|various|several|many"
    r"|improve|enhance|optimize)\b",
    _I,
)

HEADER = re.compile(r"^#{1,6}\s+\S", _M)
BULLET = re.compile(r"^\s*[-*•]\s+\S", _M)
NUMBERED = re.compile(r"^\s*\d+[.)]\s+\S", _M)
FENCED_CODE = re.compile(r"```[\s\S]*?```")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

# (pattern, points) per completeness category
COMPLETENESS_CATEGORIES = [
    (re.compile(r"\b(?:task|goal|objective|purpose|aim|want|need)\b", _I), 15),
    (re.compile(r"\b(?:context|background|situation|given|scenario|audience)\b", _I), 15),
    (re.compile(r"\b(?:output|result|response|return|format)\b", _I), 15),
    (
        re.compile(
            r"\b(?:constraints?|limit\w*|avoid|never)\b|\b(?:must not|should not|do not|don't)\b",
            _I,
        ),
        10,
    ),
    (re.compile(r"\b(?:examples?|samples?|such as|like this)\b|\be\.g\.", _I), 15),
]

ISSUE_PRONOUNS = re.compile(r"\b(?:it|this|that|they|them)\b", _I)
ISSUE_VAGUE_WORDS = {"thing", "stuff", "something", "somehow", "somewhere", "good", "nice", "bad"}
CONTEXT_INDICATORS = {"context", "background", "given", "assuming", "scenario", "situation"}
TASK_VERBS = {
    "write", "create", "generate", "explain", "analyze", "summarize", "translate",
    "help", "tell", "show", "make", "find", "list",
}
SECTION_LINE = re.compile(r"^#+\s|^[A-Z][^.\n]*:$", _M)


def _clamp(value: float) -> int:
    return int(max(0, min(100, value)))


def estimate_tokens(text: str) -> int:
    """Estimate tokens as the mean of a word-based and a char-based guess."""
    words = len(text.split())
    return math.ceil((words * TOKEN_WORD_FACTOR + len(text) / TOKEN_CHARS_PER_TOKEN) / 2)


def score_clarity(prompt: str) -> int:
    score = CLARITY_BASE - AMBIGUITY_PENALTY * len(AMBIGUOUS_TERMS.findall(prompt))
    if ROLE_OPENING.search(prompt):
        score += CLARITY_BONUS
    if SEQUENCING_WORDS.search(prompt):
        score += CLARITY_BONUS
    if prompt.strip().endswith((".", "!", "?")):
        score += CLARITY_BONUS
    if LIST_MARKER.search(prompt):
        score += CLARITY_BONUS
    return _clamp(score)


def score_specificity(prompt: str) -> int:
    score = SPECIFICITY_BASE
    for pattern in (PRECISION_WORDS, DIGIT, QUOTED, EXAMPLE_MARKERS, FORMAT_WORDS):
        if pattern.search(prompt):
            score += SPECIFICITY_BONUS
    score -= VAGUENESS_PENALTY * len(VAGUE_TERMS.findall(prompt))
    return _clamp(score)


def score_structure(prompt: str) -> int:
    score = STRUCTURE_BASE
    headers = len(HEADER.findall(prompt))
    if headers:
        score += 15
    if BULLET.search(prompt):
        score += 10
    if NUMBERED.search(prompt):
        score += 10
    if FENCED_CODE.search(prompt):
        score += 10
    paragraphs = [p for p in PARAGRAPH_BREAK.split(prompt.strip()) if p.strip()]
    if len(paragraphs) >= 2:
        score += 10
    if headers >= 2:
        score += 5
    return _clamp(score)


def score_completeness(prompt: str) -> int:
    score = COMPLETENESS_BASE
    for pattern, points in COMPLETENESS_CATEGORIES:
        if pattern.search(prompt):
            score += points
    return _clamp(score)


def score_efficiency(prompt: str) -> int:
    """Step curve over estimated tokens with a 50-200 token optimum."""
    tokens = estimate_tokens(prompt)
    if tokens < 10:
        return 20
    if tokens < 30:
        return 40
    if tokens < 50:
        return 60
    if tokens <= 200:
        return 100
    if tokens <= 500:
        return 80
    if tokens <= 1000:
        return 60
    return 40


def score_prompt(prompt: str) -> ScoreSet:
    """Score prompt text on five dimensions. Never raises."""
    return ScoreSet(
        clarity=score_clarity(prompt),
        specificity=score_specificity(prompt),
        structure=score_structure(prompt),
        completeness=score_completeness(prompt),
        efficiency=score_efficiency(prompt),
    )


def compare_prompts(prompt_a: str, prompt_b: str) -> ComparisonResult:
    """Score two prompts and report per-dimension and overall winners."""
    scores_a = score_prompt(prompt_a)
    scores_b = score_prompt(prompt_b)
    diff = scores_a.overall - scores_b.overall

    if abs(diff) < TIE_BAND:
        winner = "tie"
        summary = "Both prompts have similar overall quality scores."
    elif diff > 0:
        winner = "a"
        summary = f"Prompt A scores higher overall (+{diff} points)."
    else:
        winner = "b"
        summary = f"Prompt B scores higher overall (+{-diff} points)."

    comparison = []
    notes = []
    for name, score_a in scores_a.dimensions().items():
        score_b = getattr(scores_b, name)
        if score_a > score_b:
            dim_winner = "a"
        elif score_b > score_a:
            dim_winner = "b"
        else:
            dim_winner = "tie"
        comparison.append(
            DimensionComparison(dimension=name, score_a=score_a, score_b=score_b, winner=dim_winner)
        )
        if abs(score_a - score_b) > DIMENSION_NOTE_THRESHOLD:
            notes.append(f"Prompt {dim_winner.upper()} has better {name}")

    if notes:
        summary += " " + ". ".join(notes) + "."

    return ComparisonResult(
        winner=winner,
        score_difference=abs(diff),
        scores_a=scores_a,
        scores_b=scores_b,
        comparison=comparison,
        summary=summary,
    )


def detect_issues(prompt: str) -> List[PromptIssue]:
    """Heuristic issue detection for human-facing reports."""
    issues: List[PromptIssue] = []
    words = re.findall(r"[a-z']+", prompt.lower())
    tokens = estimate_tokens(prompt)

    pronouns = ISSUE_PRONOUNS.findall(prompt)
    if len(pronouns) > 3:
        issues.append(PromptIssue(
            type="ambiguity",
            severity="medium",
            description=f"Found {len(pronouns)} potentially ambiguous pronouns (it, this, that, they, them)",
            suggestion="Replace ambiguous pronouns with specific nouns to improve clarity",
        ))

    vague = [w for w in words if w in ISSUE_VAGUE_WORDS]
    if vague:
        issues.append(PromptIssue(
            type="vagueness",
            severity="medium",
            description=f"Found vague language: {', '.join(dict.fromkeys(vague))}",
            suggestion="Replace vague terms with specific, descriptive language",
        ))

    repeated = [w for w, count in Counter(w for w in words if len(w) > 4).items() if count > 3]
    if repeated:
        issues.append(PromptIssue(
            type="redundancy",
            severity="low",
            description=f"Frequently repeated words: {', '.join(repeated)}",
            suggestion="Consider varying vocabulary or consolidating repeated concepts",
        ))

    if tokens > 50 and not CONTEXT_INDICATORS.intersection(words):
        issues.append(PromptIssue(
            type="missing-context",
            severity="low",
            description="Prompt may lack explicit context or background information",
            suggestion="Consider adding context about the situation, audience, or constraints",
        ))

    has_structure = "\n" in prompt or SECTION_LINE.search(prompt) or LIST_MARKER.search(prompt)
    if tokens > 100 and not has_structure:
        issues.append(PromptIssue(
            type="poor-structure",
            severity="medium",
            description="Long prompt without structural elements (sections, lists, line breaks)",
            suggestion="Break down the prompt into sections or use bullet points for complex requirements",
        ))

    if tokens < 10:
        issues.append(PromptIssue(
            type="too-short",
            severity="high",
            description="Prompt may be too brief to provide adequate guidance",
            suggestion="Add more detail about what you want, expected format, or constraints",
        ))
    elif tokens > 2000:
        issues.append(PromptIssue(
            type="too-long",
            severity="medium",
            description="Very long prompt may reduce focus or increase costs",
            suggestion="Consider breaking into multiple prompts or summarizing key points",
        ))

    if not TASK_VERBS.intersection(words) and "?" not in prompt:
        issues.append(PromptIssue(
            type="ambiguity",
            severity="high",
            description="No clear task or question detected",
            suggestion="Start with an action verb (write, explain, analyze) or pose a clear question",
        ))

    return issues


def suggest_improvements(
    scores: ScoreSet,
    issues: Optional[List[PromptIssue]] = None,
    limit: int = MAX_SUGGESTIONS,
) -> List[str]:
    """Deduplicated suggestions from weak dimensions, then from issues."""
    suggestions: List[str] = []
    if scores.clarity < SUGGESTION_THRESHOLD:
        suggestions.append("Improve clarity by using specific language and clear sentence structure")
    if scores.specificity < SUGGESTION_THRESHOLD:
        suggestions.append("Add specific details: numbers, formats, examples, or constraints")
    if scores.structure < SUGGESTION_THRESHOLD:
        suggestions.append("Organize the prompt with sections, bullet points, or numbered steps")
    if scores.completeness < SUGGESTION_THRESHOLD:
        suggestions.append("Include: task definition, context, output format, and any constraints")
    if scores.efficiency < SUGGESTION_THRESHOLD:
        suggestions.append("Review prompt length and make sure every sentence adds value")

    for issue in issues or []:
        if issue.suggestion and issue.suggestion not in suggestions:
            suggestions.append(issue.suggestion)

    return suggestions[:limit]
