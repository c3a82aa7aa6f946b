"""Reward function for 2048 training."""

from dqn.interfaces import Critic
from training.board_state import BoardState, Direction


class ScoreCritic(Critic):
    """Relative score gain per move.

    A move that ends the game is penalized with -1. Any other move is
    rewarded with the points it earned divided by the new total score, so
    rewards stay in [0, 1) as the score grows.
    """

    GAME_OVER_REWARD = -1.0

    def reward(self, state: BoardState, action: Direction, next_state: BoardState) -> float:
        if next_state.is_terminal():
            return self.GAME_OVER_REWARD

        new_score = next_state.board.score
        if new_score == 0:
            return 0.0
        return (new_score - state.board.score) / new_score
