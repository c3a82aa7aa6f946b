"""Tests for the replay augmenters."""

from typing import Tuple

import pytest
from torch import Tensor

from game.board import Board
from training.board_state import NUM_CHANNELS, BoardState, Direction
from training.data_augmenter import IdentityAugmenter, SymmetryAugmenter


# 8 at (2, 0), 2 at (3, 0), 4 at (3, 1): no symmetry maps this board onto itself
ASYMMETRIC_GRID = [
    [0, 0, 0, 0],
    [0, 0, 0, 0],
    [8, 0, 0, 0],
    [2, 4, 0, 0],
]


def decode(features: Tensor) -> Tuple[int, ...]:
    """Tile exponents from a feature vector."""
    tiles = []
    for position in range(16):
        channels = features[position * NUM_CHANNELS:(position + 1) * NUM_CHANNELS].tolist()
        tiles.append(NUM_CHANNELS - channels.index(1.0) if 1.0 in channels else 0)
    return tuple(tiles)


@pytest.fixture
def step(make_state):
    """An UP step without spawning, so the slide alone explains next_state."""
    state = make_state(ASYMMETRIC_GRID, score=4)
    next_state = BoardState(state.board.slide(Direction.UP.value))
    return state, Direction.UP, 0.25, next_state


class TestIdentityAugmenter:
    """Tests for pass-through augmentation."""

    def test_single_transition(self, step):
        state, action, reward, next_state = step

        transitions = IdentityAugmenter().augment(state, action, reward, next_state)

        assert len(transitions) == 1
        assert transitions[0].state.tolist() == state.as_features()
        assert transitions[0].action == Direction.UP.index()


class TestSymmetryAugmenter:
    """Tests for the 8-fold symmetric expansion."""

    def test_eight_transitions(self, step):
        assert len(SymmetryAugmenter().augment(*step)) == 8

    def test_action_order(self, step):
        transitions = SymmetryAugmenter().augment(*step)

        expected = [
            Direction.UP, Direction.UP,         # original, mirror
            Direction.RIGHT, Direction.LEFT,    # 90 degrees, mirror
            Direction.DOWN, Direction.DOWN,     # 180 degrees, mirror
            Direction.LEFT, Direction.RIGHT,    # 270 degrees, mirror
        ]
        assert [t.action for t in transitions] == [d.index() for d in expected]

    def test_first_two_are_original_and_mirror(self, step):
        state, _, _, next_state = step
        transitions = SymmetryAugmenter().augment(*step)

        assert transitions[0].state.tolist() == state.as_features()
        assert transitions[0].next_state.tolist() == next_state.as_features()
        assert transitions[1].state.tolist() == state.mirrored().as_features()
        assert transitions[2].state.tolist() == state.rotated_clockwise().as_features()

    def test_reward_and_terminal_shared(self, step):
        transitions = SymmetryAugmenter().augment(*step)

        assert {t.reward for t in transitions} == {0.25}
        assert {t.is_terminal for t in transitions} == {0.0}

    def test_states_are_distinct(self, step):
        transitions = SymmetryAugmenter().augment(*step)
        assert len({decode(t.state) for t in transitions}) == 8

    def test_every_variant_is_a_valid_step(self, step):
        """Sliding each variant state by its remapped action gives its next state."""
        for transition in SymmetryAugmenter().augment(*step):
            board = Board(tiles=decode(transition.state))
            assert board.slide(transition.action).tiles == decode(transition.next_state)

    def test_invalid_action_masks_follow_next_states(self, step):
        for transition in SymmetryAugmenter().augment(*step):
            next_board = Board(tiles=decode(transition.next_state))
            expected = [not next_board.can_move(d.value) for d in Direction]
            assert transition.invalid_action_mask.tolist() == expected

    def test_terminal_step(self, make_state):
        state = make_state([
            [4, 2, 4, 2],
            [2, 4, 2, 4],
            [4, 2, 4, 2],
            [4, 2, 4, 0],
        ])
        # The last row slides right and the spawned 2 at (3, 0) completes a checkerboard
        next_state = state.advance(Direction.RIGHT)

        transitions = SymmetryAugmenter().augment(state, Direction.RIGHT, -1.0, next_state)

        assert next_state.is_terminal()
        assert {t.is_terminal for t in transitions} == {1.0}
        assert all(t.invalid_action_mask.all() for t in transitions)
