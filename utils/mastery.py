from typing import Optional

DEFAULT_MASTERY_RULES = {
    "min_repetitions": 5,
    "min_ease_factor": 2.5,
}

def mastery_status_from_rules(
    repetitions: int,
    ease_factor: float,
    rules: Optional[dict] = None,
) -> str:
    rules = rules or DEFAULT_MASTERY_RULES
    if repetitions <= 0:
        return "new"
    if (
        repetitions >= rules["min_repetitions"]
        and ease_factor >= rules["min_ease_factor"]
    ):
        return "mastered"
    return "learning"

def review_stage(repetitions: int) -> str:
    """Bucket a card by its SM-2 repetition count."""
    if repetitions <= 0:
        return "learning"
    if repetitions == 1:
        return "first"
    if repetitions == 2:
        return "second"
    return "mature"

def mastery_percent(mastered: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round((mastered / total) * 100, 1)
