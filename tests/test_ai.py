import random

from conftest import play, TOP_ROW_BOARD_0
from ultimate.ai import get_ai_move


class PickLast:
    """rng stand-in that records the candidate list it was offered."""
    def __init__(self): self.offered = None

    def choice(self, seq):
        self.offered = list(seq)
        return seq[-1]


def test_candidates_are_exactly_the_legal_moves(game):
    game.apply_move(4, 4)
    rng = PickLast()
    move = get_ai_move(game, rng)
    assert rng.offered == [(4, c) for c in range(9) if c != 4]
    assert move == (4, 8)


def test_free_choice_skips_decided_boards(game):
    play(game, TOP_ROW_BOARD_0 + [(1, 5), (5, 0)])
    rng = PickLast()
    get_ai_move(game, rng)
    assert rng.offered == game.get_valid_moves()
    assert {b for b, _ in rng.offered} == {1, 2, 3, 4, 5, 6, 7, 8}


def test_every_pick_is_legal(game):
    rng = random.Random(7)
    while game.phase == "in_progress":
        move = get_ai_move(game, rng)
        assert move in game.get_valid_moves()
        game.apply_move(*move)


def test_no_move_once_the_game_is_over(game):
    game.game_winner = "O"
    assert get_ai_move(game) is None
