"""Decision functions for the stacking engine.

Each function takes the run's ProtocolInfo plus scalar or snapshot inputs and
returns a Decision (or raises). Nothing here touches the network, so every
branch is testable without mocks; the only side effect is the audit log line.
"""

from __future__ import annotations

from loguru import logger

from stacker.pox.cycles import POX_REWARD_LENGTH, burn_height_to_reward_cycle
from stacker.pox.errors import InsufficientBalanceError, UnsupportedPoxContractError
from stacker.pox.types import AccountSnapshot, Decision, ProtocolInfo

DEFAULT_POX_CONTRACT_SUFFIX = ".pox-4"

# Bump the min threshold by 50% to avoid getting stuck if it rises before
# the transaction confirms. Expressed as a ratio to stay in integer math.
THRESHOLD_MARGIN_NUMERATOR = 3
THRESHOLD_MARGIN_DENOMINATOR = 2


# ── Protocol version ───────────────────────────────────────────────


def is_supported_contract(
    pox_info: ProtocolInfo, contract_suffix: str = DEFAULT_POX_CONTRACT_SUFFIX
) -> bool:
    return pox_info.contract_id.endswith(contract_suffix)


def ensure_supported_contract(
    pox_info: ProtocolInfo, contract_suffix: str = DEFAULT_POX_CONTRACT_SUFFIX
) -> None:
    if not is_supported_contract(pox_info, contract_suffix):
        raise UnsupportedPoxContractError(
            pox_info.contract_id,
            f"Pox contract is not {contract_suffix}, skipping stacking "
            f"(contract={pox_info.contract_id})",
        )


# ── Amounts ────────────────────────────────────────────────────────


def planned_stack_amount(min_threshold_ustx: int, target_slots: int) -> int:
    """floor(threshold * 1.5) * target_slots."""
    if target_slots < 1:
        raise ValueError(f"Invalid target slots: {target_slots}")
    per_slot = (
        min_threshold_ustx * THRESHOLD_MARGIN_NUMERATOR
    ) // THRESHOLD_MARGIN_DENOMINATOR
    return per_slot * target_slots


# ── Stack / Extend / Skip ──────────────────────────────────────────


def decide(
    pox_info: ProtocolInfo,
    snapshot: AccountSnapshot,
    reward_cycle_length: int = POX_REWARD_LENGTH,
    contract_suffix: str = DEFAULT_POX_CONTRACT_SUFFIX,
) -> Decision:
    """Decide whether an account should stack, extend or be left alone.

    Raises:
        UnsupportedPoxContractError: the node runs an unexpected PoX contract.
        InsufficientBalanceError: the account is unlocked but can't cover
            the planned amount. The amount is never clamped.
    """
    ensure_supported_contract(pox_info, contract_suffix)

    index = snapshot.index
    log = logger.bind(
        account=index,
        burn_height=pox_info.current_burn_height,
        unlock_height=snapshot.unlock_height,
    )

    if snapshot.locked == 0:
        amount = planned_stack_amount(
            pox_info.next_cycle_min_threshold_ustx, snapshot.account.target_slots
        )
        log.info(f"Account {index} is unlocked, stack-stx required")
        if amount > snapshot.balance:
            raise InsufficientBalanceError(amount, snapshot.balance)
        return Decision.stack(amount)

    unlock_cycle = burn_height_to_reward_cycle(
        snapshot.unlock_height, reward_cycle_length
    )
    now_cycle = burn_height_to_reward_cycle(
        pox_info.current_burn_height, reward_cycle_length
    )
    log = log.bind(now_cycle=now_cycle, unlock_cycle=unlock_cycle)

    if unlock_cycle == now_cycle + 1:
        log.info(
            f"Account {index} unlocks before next cycle "
            f"{snapshot.unlock_height} vs {pox_info.current_burn_height}, "
            "stack-extend required"
        )
        return Decision.extend()

    if unlock_cycle <= now_cycle:
        log.warning(
            f"Account {index} has {snapshot.locked} locked but unlock cycle "
            f"{unlock_cycle} is not after current cycle {now_cycle}, skipping"
        )
        return Decision.skip()

    log.info(f"Account {index} is locked for next cycle, skipping stacking")
    return Decision.skip()
