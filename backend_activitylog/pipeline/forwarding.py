"""
Forwarded-call unwrapping.

A forwarding transaction calls forward(bytes evmScript) on a cluster app,
which then executes the embedded script on the caller's behalf. The activity
shown for such a transaction is the script's last step, not the forward call
itself.

The script is read as the single ABI-encoded `bytes` argument after the
selector: the offset word must point right after itself (0x20) and the length
word bounds the payload. The historical shortcut of slicing the hex input at
a fixed offset (LEGACY_SCRIPT_HEX_OFFSET) yields the same bytes plus the ABI
zero padding for well-formed input and garbage for anything else.
"""

from __future__ import annotations

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from backend_activitylog.activitylog_logging import get_logger, short
from backend_activitylog.core.exceptions import ScriptDecodeFailed
from backend_activitylog.describer.client import DescriptionService
from backend_activitylog.describer.models import ScriptStep
from backend_activitylog.ledger.models import Transaction

logger = get_logger(__name__)

# bytes4(keccak256("forward(bytes)"))
FORWARD_SELECTOR = "0xd948d468"
SELECTOR_BYTES = 4
ABI_WORD_BYTES = 32
# "0x" + selector (8) + offset word (64) + length word (64)
LEGACY_SCRIPT_HEX_OFFSET = 2 + 2 * (SELECTOR_BYTES + 2 * ABI_WORD_BYTES)


def is_forwarded(input_hex: str) -> bool:
    """True iff calldata starts with the forward(bytes) selector."""
    return input_hex.lower().startswith(FORWARD_SELECTOR)


def extract_script(input_hex: str, *, tx_hash: str | None = None) -> str:
    """
    Return the hex-encoded script ("0x...") carried by forward(bytes) calldata.

    Raises ScriptDecodeFailed when the calldata is not a well-formed
    single-argument bytes encoding or the script is empty.
    """
    if not is_forwarded(input_hex):
        raise ScriptDecodeFailed("Calldata is not a forward(bytes) call", tx_hash=tx_hash)
    try:
        calldata = bytes.fromhex(input_hex[2:])
    except ValueError as e:
        raise ScriptDecodeFailed(f"Calldata is not valid hex: {e}", tx_hash=tx_hash) from e

    args = calldata[SELECTOR_BYTES:]
    if len(args) < 2 * ABI_WORD_BYTES:
        raise ScriptDecodeFailed(
            f"forward(bytes) arguments too short ({len(args)} bytes)", tx_hash=tx_hash
        )
    offset = int.from_bytes(args[:ABI_WORD_BYTES], "big")
    if offset != ABI_WORD_BYTES:
        raise ScriptDecodeFailed(
            f"Unexpected bytes offset {offset:#x} in forward(bytes)", tx_hash=tx_hash
        )
    try:
        (script,) = abi_decode(["bytes"], args)
    except DecodingError as e:
        raise ScriptDecodeFailed(f"Invalid forward(bytes) encoding: {e}", tx_hash=tx_hash) from e
    if not script:
        raise ScriptDecodeFailed("Forwarded script is empty", tx_hash=tx_hash)
    return "0x" + script.hex()


async def unwrap_forward(describer: DescriptionService, tx: Transaction) -> ScriptStep | None:
    """
    Resolve the effective step of a forwarded transaction.

    Returns None for non-forwarded transactions without calling the describer.
    For forwarded ones returns the last decoded step; an empty step list or any
    describer failure raises ScriptDecodeFailed.
    """
    if not is_forwarded(tx.input):
        return None
    script = extract_script(tx.input, tx_hash=tx.hash)
    try:
        steps = await describer.describe_script(script)
    except ScriptDecodeFailed as e:
        if e.tx_hash is None:
            e.tx_hash = tx.hash
        raise
    except Exception as e:
        raise ScriptDecodeFailed(f"Script description failed: {e}", tx_hash=tx.hash) from e
    if not steps:
        raise ScriptDecodeFailed("Forwarded script decoded to no steps", tx_hash=tx.hash)
    effective = steps[-1]
    logger.debug(
        "activity_forward_unwrapped",
        tx_hash=short(tx.hash),
        forwarder=short(tx.to),
        step_count=len(steps),
        app=short(effective.to),
    )
    return effective
