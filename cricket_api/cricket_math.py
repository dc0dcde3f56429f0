# cricket_api/cricket_math.py
from __future__ import annotations


BALLS_PER_OVER = 6


def balls_to_overs(balls: int) -> str:
    """
    Legal balls -> "overs.balls" display string (base 6).
    25 balls -> "4.1", never "4.16".
    """
    if balls < 0:
        raise ValueError("Balls cannot be negative")
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def balls_to_overs_float(balls: int) -> float:
    # Decimal overs for rate maths: 25 balls -> 4.1666..
    if balls <= 0:
        return 0.0
    return balls / float(BALLS_PER_OVER)


def run_rate(runs: int, balls: int) -> float:
    overs = balls_to_overs_float(balls)
    if overs == 0.0:
        return 0.0
    return runs / overs


def economy_rate(runs_conceded: int, legal_balls: int) -> float:
    """Runs conceded per over bowled."""
    return run_rate(runs_conceded, legal_balls)


def strike_rate(runs: int, balls_faced: int) -> float:
    """Runs per 100 balls faced; 0 when no ball has been faced."""
    if balls_faced <= 0:
        return 0.0
    return runs * 100.0 / balls_faced


def required_run_rate(target: int, current_runs: int, legal_balls: int, total_overs: int) -> float:
    """
    Runs per over the chasing side still needs.

    target is the first-innings total; the chase needs target + 1.
    Returns 0.0 once no balls remain.
    """
    balls_left = total_overs * BALLS_PER_OVER - legal_balls
    if balls_left <= 0:
        return 0.0
    runs_needed = max(0, target - current_runs + 1)
    return runs_needed / balls_to_overs_float(balls_left)


def plural(value: int, noun: str) -> str:
    return f"{value} {noun}" if value == 1 else f"{value} {noun}s"
