"""
Read-only client for the on-chain course marketplace and creator registry.

Talks plain JSON-RPC (`eth_call`) over httpx with a bounded timeout.
Public functions never raise: an unconfigured, unreachable or misbehaving
node reads as "no proof of access" (False / None).
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional, List

import httpx
from Crypto.Hash import keccak

from app.config import settings, ZERO_ADDRESS
from app.services.errors import ExternalUnavailable

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
WORD_HEX_LEN = 64


def function_selector(signature: str) -> str:
    """First 4 bytes of keccak256(signature), hex encoded without 0x."""
    k = keccak.new(digest_bits=256)
    k.update(signature.encode("ascii"))
    return k.hexdigest()[:8]


HAS_ACCESS = function_selector("hasAccess(uint256,address)")
IS_REGISTERED = function_selector("isRegistered(address)")
GET_CREATOR_INFO = function_selector("getCreatorInfo(address)")


@dataclass
class CreatorInfo:
    registered: bool
    paid_usd: int
    paid_at: int


def _encode_uint(value: int) -> str:
    if value < 0:
        raise ExternalUnavailable(f"Cannot encode negative uint: {value}")
    return format(value, "x").rjust(WORD_HEX_LEN, "0")


def _encode_address(address: str) -> str:
    if not address or not ADDRESS_RE.match(address):
        raise ExternalUnavailable(f"Invalid address: {address!r}")
    return address[2:].lower().rjust(WORD_HEX_LEN, "0")


def _decode_words(result: str) -> List[int]:
    if not isinstance(result, str) or not result.startswith("0x"):
        raise ExternalUnavailable(f"Unexpected eth_call result: {result!r}")
    body = result[2:]
    if not body or len(body) % WORD_HEX_LEN:
        raise ExternalUnavailable(f"Malformed eth_call result: {result!r}")
    try:
        return [int(body[i:i + WORD_HEX_LEN], 16) for i in range(0, len(body), WORD_HEX_LEN)]
    except ValueError as e:
        raise ExternalUnavailable(f"Non-hex eth_call result: {result!r}") from e


def _is_configured(contract: str) -> bool:
    return bool(settings.chain_rpc_url) and bool(contract) and contract.lower() != ZERO_ADDRESS


def _eth_call(contract: str, data: str) -> List[int]:
    """Execute a view call and return the decoded 32-byte words."""
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "eth_call",
        "params": [{"to": contract, "data": "0x" + data}, "latest"],
    }
    try:
        with httpx.Client(timeout=settings.chain_rpc_timeout_seconds) as client:
            resp = client.post(settings.chain_rpc_url, json=payload)
        resp.raise_for_status()
        body = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise ExternalUnavailable(f"RPC request failed: {e}") from e

    if not isinstance(body, dict):
        raise ExternalUnavailable(f"Unexpected RPC response: {body!r}")
    if body.get("error"):
        raise ExternalUnavailable(f"RPC error: {body['error']}")
    return _decode_words(body.get("result"))


def has_on_chain_access(course_external_id: int, buyer_address: str) -> bool:
    """Ask the marketplace contract whether `buyer_address` owns the course."""
    contract = settings.marketplace_address
    if not _is_configured(contract):
        logger.debug("Chain marketplace not configured; on-chain access denied")
        return False

    try:
        data = HAS_ACCESS + _encode_uint(int(course_external_id)) + _encode_address(buyer_address)
        words = _eth_call(contract, data)
        return bool(words[0])
    except ExternalUnavailable as e:
        logger.warning(
            "has_on_chain_access failed for course %s / %s: %s",
            course_external_id, buyer_address, e,
        )
        return False


def is_registered_creator(address: str) -> bool:
    contract = settings.registry_address
    if not _is_configured(contract):
        return False

    try:
        words = _eth_call(contract, IS_REGISTERED + _encode_address(address))
        return bool(words[0])
    except ExternalUnavailable as e:
        logger.warning("is_registered_creator failed for %s: %s", address, e)
        return False


def get_creator_info(address: str) -> Optional[CreatorInfo]:
    """Registration details (paid amount, unix timestamp) or None if unavailable."""
    contract = settings.registry_address
    if not _is_configured(contract):
        return None

    try:
        words = _eth_call(contract, GET_CREATOR_INFO + _encode_address(address))
        if len(words) < 3:
            raise ExternalUnavailable(f"Expected 3 words, got {len(words)}")
        return CreatorInfo(registered=bool(words[0]), paid_usd=words[1], paid_at=words[2])
    except ExternalUnavailable as e:
        logger.warning("get_creator_info failed for %s: %s", address, e)
        return None
