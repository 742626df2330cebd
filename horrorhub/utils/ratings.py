from typing import Optional


def calculate_average_rating(critics_rating: Optional[float], users_rating: Optional[float]) -> Optional[float]:
    """Mean of the available 0-10 ratings rounded to one decimal, None if neither is set"""
    ratings = [r for r in (critics_rating, users_rating) if r is not None]
    if not ratings:
        return None
    return round(sum(ratings) / len(ratings), 1)


def critic_score_to_rating(critic_score) -> Optional[float]:
    """Watchmode critic scores are 0-100"""
    if critic_score is None:
        return None
    try:
        return round(float(critic_score) / 10, 1)
    except (TypeError, ValueError):
        return None


def to_rating(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
