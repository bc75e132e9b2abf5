"""Computer opponent: a uniformly random legal move, played after a short pause."""
import random

AI_THINK_DELAY = 0.3   # seconds before the computer answers


def get_ai_move(game, rng=None):
    valid = game.get_valid_moves()
    if not valid: return None
    return (rng or random).choice(valid)
