"""
forward(bytes) detection, script extraction and unwrapping.
"""

from __future__ import annotations

import asyncio

import pytest
from eth_abi import encode as abi_encode

from backend_activitylog.core.exceptions import ScriptDecodeFailed
from backend_activitylog.ledger.models import Transaction, canonical_address
from backend_activitylog.pipeline.forwarding import (
    FORWARD_SELECTOR,
    LEGACY_SCRIPT_HEX_OFFSET,
    extract_script,
    is_forwarded,
    unwrap_forward,
)
from conftest import AGENT, FINANCE, USER, VOTING, forward_input, tx_hash

SCRIPT = bytes.fromhex("00000001") + bytes.fromhex(FINANCE[2:]) + b"\x00\x00\x00\x25" + b"\x11" * 37


def _tx(data: str, to: str = VOTING) -> Transaction:
    return Transaction(
        hash=tx_hash(1),
        sender=canonical_address(USER),
        to=canonical_address(to),
        input=data,
        block_number=1,
    )


def test_selector_constant():
    assert FORWARD_SELECTOR == "0xd948d468"
    assert LEGACY_SCRIPT_HEX_OFFSET == 138


@pytest.mark.parametrize(
    "data,expected",
    [
        ("0xd948d468", True),
        ("0xD948D468" + "00" * 64, True),
        ("0xdf133bca", False),
        ("0x", False),
        ("", False),
    ],
)
def test_is_forwarded(data, expected):
    assert is_forwarded(data) is expected


def test_extract_script_returns_encoded_bytes():
    assert extract_script(forward_input(SCRIPT)) == "0x" + SCRIPT.hex()


def test_extract_script_matches_legacy_slice_without_padding():
    data = forward_input(SCRIPT)
    legacy = "0x" + data[LEGACY_SCRIPT_HEX_OFFSET:]
    script = extract_script(data)

    assert legacy.startswith(script)
    assert set(legacy[len(script):]) <= {"0"}
    assert (len(legacy) - 2) % 64 == 0


def test_extract_script_rejects_non_forward_call():
    with pytest.raises(ScriptDecodeFailed, match="not a forward"):
        extract_script("0xdf133bca" + "00" * 64)


def test_extract_script_rejects_invalid_hex():
    with pytest.raises(ScriptDecodeFailed, match="not valid hex"):
        extract_script("0xd948d468zz")


def test_extract_script_rejects_truncated_arguments():
    with pytest.raises(ScriptDecodeFailed, match="too short"):
        extract_script(FORWARD_SELECTOR + "00" * 40, tx_hash="0xfeed")


def test_extract_script_rejects_unexpected_offset():
    args = abi_encode(["uint256", "bytes"], [7, SCRIPT])
    with pytest.raises(ScriptDecodeFailed, match="offset") as excinfo:
        extract_script(FORWARD_SELECTOR + args.hex(), tx_hash="0xfeed")
    assert excinfo.value.tx_hash == "0xfeed"


def test_extract_script_rejects_length_past_end():
    good = abi_encode(["bytes"], [SCRIPT])
    # Claim a length far larger than the payload that follows
    forged = good[:32] + (10_000).to_bytes(32, "big") + good[64:]
    with pytest.raises(ScriptDecodeFailed):
        extract_script(FORWARD_SELECTOR + forged.hex())


def test_extract_script_rejects_empty_script():
    with pytest.raises(ScriptDecodeFailed, match="empty"):
        extract_script(forward_input(b""))


def test_unwrap_non_forwarded_skips_describer(describer):
    step = asyncio.run(unwrap_forward(describer, _tx("0xdf133bca")))

    assert step is None
    assert describer.script_calls == []


def test_unwrap_returns_last_step(describer):
    describer.add_script(SCRIPT, [(VOTING, "Vote"), (FINANCE, "Pay"), (AGENT, "Transfer")])

    step = asyncio.run(unwrap_forward(describer, _tx(forward_input(SCRIPT))))

    assert step.to == canonical_address(AGENT)
    assert step.description == "Transfer"
    assert describer.script_calls == ["0x" + SCRIPT.hex()]


def test_unwrap_single_step(describer):
    describer.add_script(SCRIPT, [(FINANCE, "Pay")])

    step = asyncio.run(unwrap_forward(describer, _tx(forward_input(SCRIPT))))

    assert step.to == canonical_address(FINANCE)


def test_unwrap_empty_steps_fails(describer):
    with pytest.raises(ScriptDecodeFailed, match="no steps") as excinfo:
        asyncio.run(unwrap_forward(describer, _tx(forward_input(SCRIPT))))
    assert excinfo.value.tx_hash == tx_hash(1)


def test_unwrap_wraps_describer_errors(describer):
    describer.fail_script = RuntimeError("evm script registry unreachable")

    with pytest.raises(ScriptDecodeFailed, match="registry unreachable") as excinfo:
        asyncio.run(unwrap_forward(describer, _tx(forward_input(SCRIPT))))
    assert excinfo.value.tx_hash == tx_hash(1)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_unwrap_fills_tx_hash_on_describer_decode_error(describer):
    describer.fail_script = ScriptDecodeFailed("unknown executor")

    with pytest.raises(ScriptDecodeFailed) as excinfo:
        asyncio.run(unwrap_forward(describer, _tx(forward_input(SCRIPT))))
    assert excinfo.value.tx_hash == tx_hash(1)
