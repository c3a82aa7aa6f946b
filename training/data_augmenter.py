"""
Replay augmenters.

The 4x4 board has 8 symmetries (the dihedral group of the square). A move
that was good on a board is equally good, after remapping its direction, on
every rotation and mirror image of that board, so one observed step can be
stored as 8 transitions.
"""

from typing import List

from dqn.interfaces import Action, DataAugmenter, State
from dqn.replay_buffer import Transition
from training.board_state import BoardState, Direction


class IdentityAugmenter(DataAugmenter):
    """Stores each step as-is."""

    def augment(
        self,
        state: State,
        action: Action,
        reward: float,
        next_state: State,
    ) -> List[Transition]:
        return [Transition.from_states(state, action, reward, next_state)]


class SymmetryAugmenter(DataAugmenter):
    """Expands a step into its 8 symmetric variants.

    Order: original, its mirror, then for three successive clockwise
    rotations the rotated step followed by the rotated step's mirror.
    Reward and terminal flag are the same for every variant.
    """

    NUM_ROTATIONS = 3

    def augment(
        self,
        state: BoardState,
        action: Direction,
        reward: float,
        next_state: BoardState,
    ) -> List[Transition]:
        transitions = [
            Transition.from_states(state, action, reward, next_state),
            Transition.from_states(
                state.mirrored(), action.mirrored(), reward, next_state.mirrored()
            ),
        ]

        for _ in range(self.NUM_ROTATIONS):
            state = state.rotated_clockwise()
            action = action.rotated_clockwise()
            next_state = next_state.rotated_clockwise()

            transitions.append(Transition.from_states(state, action, reward, next_state))
            transitions.append(
                Transition.from_states(
                    state.mirrored(), action.mirrored(), reward, next_state.mirrored()
                )
            )

        return transitions
