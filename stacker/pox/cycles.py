"""Reward-cycle arithmetic over burnchain heights."""

POX_PREPARE_LENGTH = 5
POX_REWARD_LENGTH = 20


def burn_height_to_reward_cycle(
    burn_height: int, reward_cycle_length: int = POX_REWARD_LENGTH
) -> int:
    """Map a burnchain height to its (1-based) reward cycle."""
    if reward_cycle_length <= 0:
        raise ValueError(f"Invalid reward cycle length: {reward_cycle_length}")
    return burn_height // reward_cycle_length + 1
