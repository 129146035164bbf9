"""
Year Transition Core - Functional Core

Pure functions for the year-transition state machine.
No side effects, no drawing - every operation returns a new AnimationState.

A single-year step animates progress from 0 to 1 and then commits the
index. A 5-year jump is played as five queued single-year steps with a
short pause between them, so each intermediate year is visible.

The imperative shell (sketch_shell.py) owns the current state and calls
request_step() / tick() once per frame.
"""

import math
from dataclasses import replace
from typing import Optional

from ice_types import AnimationState, StepCommand


# Progress added per frame while a step is animating (~34 frames per year)
DEFAULT_PROGRESS_INCREMENT = 0.03

# Frames of stillness between queued single-year steps
DEFAULT_STEP_PAUSE_TICKS = 5

SINGLE_STEP = 1
MODIFIER_STEP = 5


# ============================================================================
# Index Arithmetic
# ============================================================================

def wrap_index(index: int, length: int) -> int:
    """Wrap an index into [0, length)

    Args:
        index: Any integer index (may be negative or past the end)
        length: Dataset length (must be positive)

    Returns:
        Index modulo length

    Raises:
        ValueError: If length is not positive
    """
    if length <= 0:
        raise ValueError(f"Dataset length must be positive, got {length}")
    return (index + length) % length


def peek_index(state: AnimationState, length: int) -> int:
    """Index of the year the current step is heading towards

    Always one year away from current_index in the direction of travel,
    regardless of how many steps are still queued.
    """
    return wrap_index(state.current_index + state.direction, length)


# ============================================================================
# State Construction and Queries
# ============================================================================

def create_animation_state(current_index: int = 0) -> AnimationState:
    """Create the start-up state (settled, not transitioning)"""
    return AnimationState(current_index=current_index)


def is_settled(state: AnimationState) -> bool:
    """True when no step is animating, pausing or queued"""
    return (not state.is_transitioning
            and state.pause_ticks == 0
            and state.queued_steps == 0)


def step_magnitude(modifier: bool) -> int:
    """Number of years one key press moves (5 with modifier held)"""
    return MODIFIER_STEP if modifier else SINGLE_STEP


def ticks_per_step(progress_increment: float = DEFAULT_PROGRESS_INCREMENT) -> int:
    """Frames needed for progress to reach 1.0 from 0.0

    One extra frame is allowed for floating point accumulation.
    """
    if progress_increment <= 0:
        raise ValueError(f"Progress increment must be positive, got {progress_increment}")
    return int(math.ceil(1.0 / progress_increment)) + 1


def ticks_to_settle(
    magnitude: int,
    progress_increment: float = DEFAULT_PROGRESS_INCREMENT,
    step_pause_ticks: int = DEFAULT_STEP_PAUSE_TICKS
) -> int:
    """Upper bound on frames for a gesture of `magnitude` steps to settle

    Args:
        magnitude: Number of queued single-year steps
        progress_increment: Progress added per frame
        step_pause_ticks: Pause between queued steps

    Returns:
        Frame count after which the state is guaranteed settled
    """
    pauses = max(magnitude - 1, 0) * step_pause_ticks
    return magnitude * ticks_per_step(progress_increment) + pauses


# ============================================================================
# Commands
# ============================================================================

def request_step(state: AnimationState, direction: int, modifier: bool = False) -> AnimationState:
    """Start a step gesture

    Dropped (same state returned) while a gesture is in flight. Pausing
    between queued steps counts as in flight.

    Args:
        state: Current state
        direction: -1 (previous year) or +1 (next year)
        modifier: True for a 5-year jump

    Returns:
        New state with the gesture queued, or the unchanged state

    Raises:
        ValueError: If direction is not -1 or +1
    """
    if direction not in (-1, 1):
        raise ValueError(f"Direction must be -1 or +1, got {direction}")

    if state.is_transitioning or state.queued_steps > 0:
        return state

    return replace(
        state,
        queued_steps=step_magnitude(modifier),
        direction=direction,
        is_transitioning=True,
        progress=0.0,
        pause_ticks=0
    )


def apply_command(state: AnimationState, command: Optional[StepCommand]) -> AnimationState:
    """Apply an optional input command (None is a no-op)"""
    if command is None:
        return state
    return request_step(state, command.direction, command.modifier)


def key_to_command(key: str, modifier: bool = False) -> Optional[StepCommand]:
    """Translate a key name into a step command

    Args:
        key: Key name ('left', 'right', 'ArrowLeft', 'ArrowRight', any case)
        modifier: Whether ctrl/cmd was held

    Returns:
        StepCommand, or None for keys the sketch ignores
    """
    name = key.lower()
    if name.startswith('arrow'):
        name = name[len('arrow'):]

    if name == 'right':
        return StepCommand(direction=1, modifier=modifier)
    if name == 'left':
        return StepCommand(direction=-1, modifier=modifier)
    return None


# ============================================================================
# Frame Tick
# ============================================================================

def tick(
    state: AnimationState,
    length: int,
    progress_increment: float = DEFAULT_PROGRESS_INCREMENT,
    step_pause_ticks: int = DEFAULT_STEP_PAUSE_TICKS
) -> AnimationState:
    """Advance the state machine by one frame

    Order within a frame:
    1. Count down the inter-step pause; resume when it expires.
    2. Advance progress while transitioning.
    3. When progress reaches 1, commit the index and either pause before the
       next queued step or finish the gesture.

    Args:
        state: Current state
        length: Number of years in the dataset
        progress_increment: Progress added per frame
        step_pause_ticks: Pause inserted between queued steps

    Returns:
        State for the next frame
    """
    current_index = state.current_index
    is_transitioning = state.is_transitioning
    progress = state.progress
    queued_steps = state.queued_steps
    pause_ticks = state.pause_ticks

    if pause_ticks > 0:
        pause_ticks -= 1
        if pause_ticks == 0 and queued_steps > 0:
            is_transitioning = True

    if is_transitioning:
        progress += progress_increment

    if progress >= 1.0:
        progress = 0.0
        current_index = wrap_index(current_index + state.direction, length)
        queued_steps = max(queued_steps - 1, 0)
        # With no pause configured the next queued step starts immediately
        is_transitioning = queued_steps > 0 and step_pause_ticks <= 0
        if queued_steps > 0 and step_pause_ticks > 0:
            pause_ticks = step_pause_ticks

    return replace(
        state,
        current_index=current_index,
        is_transitioning=is_transitioning,
        progress=progress,
        queued_steps=queued_steps,
        pause_ticks=pause_ticks
    )


def run_until_settled(
    state: AnimationState,
    length: int,
    progress_increment: float = DEFAULT_PROGRESS_INCREMENT,
    step_pause_ticks: int = DEFAULT_STEP_PAUSE_TICKS,
    max_ticks: int = 10_000
) -> AnimationState:
    """Tick until the state settles

    Raises:
        RuntimeError: If the state has not settled after max_ticks frames
    """
    for _ in range(max_ticks):
        if is_settled(state):
            return state
        state = tick(state, length, progress_increment, step_pause_ticks)

    if is_settled(state):
        return state
    raise RuntimeError(f"State did not settle within {max_ticks} ticks: {state}")
