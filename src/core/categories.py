"""
Task category taxonomy shared by the task interpreter and the
procrastination classifier.

Rules are declared in priority order: when two categories score the
same, the one declared first wins. Text matching no rule falls back to
the ``other`` category.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class CategoryRule:
    category: str
    keywords: Tuple[str, ...]
    emoji: str
    default_minutes: int


CATEGORY_RULES: List[CategoryRule] = [
    CategoryRule(
        "fitness",
        ("gym", "workout", "exercise", "run", "jog", "yoga", "stretch", "walk", "swim",
         "bike", "fitness", "push-up", "pushup", "squat", "plank", "cardio", "weights",
         "lift", "sport", "cold shower", "meditation", "meditate"),
        "💪", 45,
    ),
    CategoryRule(
        "work",
        ("meeting", "report", "project", "client", "proposal", "presentation", "deadline",
         "review", "code", "develop", "design", "marketing", "sales", "strategy",
         "analyze", "research", "call", "conference", "sprint", "deploy", "ship",
         "launch", "content", "portfolio", "competitor"),
        "💼", 60,
    ),
    CategoryRule(
        "learning",
        ("read", "study", "learn", "course", "book", "tutorial", "practice", "lesson",
         "class", "lecture", "language", "skill", "certificate", "exam", "homework"),
        "📚", 30,
    ),
    CategoryRule(
        "finance",
        ("budget", "pay", "bill", "bank", "invest", "save", "expense", "tax", "insurance",
         "subscription", "finance", "money", "transfer", "accounting", "invoice"),
        "💰", 15,
    ),
    CategoryRule(
        "admin",
        ("admin", "email", "inbox", "paperwork", "form", "renew", "document", "receipt",
         "reply", "password", "file", "organize", "declutter"),
        "🗂️", 20,
    ),
    CategoryRule(
        "social",
        ("call", "meet", "friend", "family", "dinner", "lunch", "coffee", "party",
         "event", "birthday", "gift", "visit", "hangout", "date", "catch up"),
        "👥", 60,
    ),
    CategoryRule(
        "creative",
        ("write", "draw", "paint", "music", "photo", "video", "blog", "journal",
         "brainstorm", "idea", "create", "art", "compose", "script", "story"),
        "🎨", 45,
    ),
    CategoryRule(
        "errand",
        ("buy", "shop", "grocery", "groceries", "store", "pick up", "drop off", "deliver",
         "mail", "post office", "laundry", "repair", "fix", "appointment", "doctor",
         "dentist", "pharmacy", "bread"),
        "🏃", 30,
    ),
    CategoryRule(
        "planning",
        ("plan", "schedule", "prioritize", "goal", "reflect", "track", "list", "prepare",
         "setup", "set up"),
        "📋", 15,
    ),
    CategoryRule(
        "wellness",
        ("relax", "rest", "sleep", "nap", "break", "mindful", "breathe", "therapy",
         "self-care", "spa", "massage", "detox", "unplug", "disconnect"),
        "🧘", 20,
    ),
    CategoryRule(
        "home",
        ("cook", "meal", "recipe", "garden", "decorate", "tidy", "clean", "vacuum",
         "dishes", "trash", "water plants", "furniture"),
        "🏠", 30,
    ),
]

OTHER = CategoryRule("other", (), "📝", 30)

RULES_BY_CATEGORY: Dict[str, CategoryRule] = {
    rule.category: rule for rule in CATEGORY_RULES + [OTHER]
}


def _keyword_pattern(keyword: str) -> re.Pattern:
    """Whole-word match that also accepts plural, past and -ing forms."""
    if keyword.endswith("e"):
        stem = re.escape(keyword[:-1]) + r"(?:e[sd]?|ing)"
    else:
        stem = re.escape(keyword)
    return re.compile(r"\b" + stem + r"(?:s|es|\w?ed|\w?ing)?\b", re.IGNORECASE)


_KEYWORD_PATTERNS = {
    keyword: _keyword_pattern(keyword)
    for rule in CATEGORY_RULES for keyword in rule.keywords
}


def matched_keywords(text: str, rule: CategoryRule) -> List[str]:
    """Keywords of a rule found as whole words (or their inflections) in the text."""
    return [kw for kw in rule.keywords if _KEYWORD_PATTERNS[kw].search(text)]


def classify_category(text: str) -> Tuple[CategoryRule, List[str]]:
    """
    Pick the best category for a piece of text.

    Each rule scores the summed length of its matched keywords (longer
    keywords are more specific). Strictly greater scores replace the
    current best, so ties keep the earlier-declared rule.

    Args:
        text: Free text (task name, habit name)

    Returns:
        Tuple of (winning rule or OTHER, matched keywords)
    """
    best, best_matches, best_score = OTHER, [], 0
    for rule in CATEGORY_RULES:
        matches = matched_keywords(text or "", rule)
        score = sum(len(kw) for kw in matches)
        if score > best_score:
            best, best_matches, best_score = rule, matches, score
    return best, best_matches
