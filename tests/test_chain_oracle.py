"""Tests for the on-chain marketplace/registry client"""
import pytest
import httpx
from unittest.mock import MagicMock, patch

from app.integrations import chain

MARKETPLACE = "0x" + "1" * 40
REGISTRY = "0x" + "2" * 40
BUYER = "0x" + "Ab" * 20


def _word(value):
    return format(value, "x").rjust(64, "0")


@pytest.fixture
def configured():
    with patch.object(chain.settings, "chain_rpc_url", "http://node.test"), \
            patch.object(chain.settings, "chain_marketplace_address", MARKETPLACE), \
            patch.object(chain.settings, "chain_registry_address", REGISTRY):
        yield


@pytest.fixture
def rpc():
    """Patch httpx.Client; the fixture is the client's post() mock"""
    with patch("app.integrations.chain.httpx.Client") as client_cls:
        client = MagicMock()
        client_cls.return_value.__enter__.return_value = client
        yield client


def _respond(post, result=None, error=None):
    response = MagicMock()
    body = {"jsonrpc": "2.0", "id": 1}
    if error is not None:
        body["error"] = error
    else:
        body["result"] = result
    response.json.return_value = body
    post.post.return_value = response
    return response


class TestSelectors:
    def test_known_erc20_selector(self):
        assert chain.function_selector("transfer(address,uint256)") == "a9059cbb"

    def test_selectors_are_four_bytes(self):
        for selector in (chain.HAS_ACCESS, chain.IS_REGISTERED, chain.GET_CREATOR_INFO):
            assert len(selector) == 8


class TestHasOnChainAccess:
    def test_true_when_contract_says_so(self, configured, rpc):
        _respond(rpc, "0x" + _word(1))

        assert chain.has_on_chain_access(7, BUYER) is True

        payload = rpc.post.call_args[1]["json"]
        call = payload["params"][0]
        assert call["to"] == MARKETPLACE
        assert call["data"] == "0x" + chain.HAS_ACCESS + _word(7) + ("ab" * 20).rjust(64, "0")

    def test_false_when_contract_says_no(self, configured, rpc):
        _respond(rpc, "0x" + _word(0))
        assert chain.has_on_chain_access(7, BUYER) is False

    def test_rpc_error_reads_as_false(self, configured, rpc):
        _respond(rpc, error={"code": -32000, "message": "execution reverted"})
        assert chain.has_on_chain_access(7, BUYER) is False

    def test_transport_failure_reads_as_false(self, configured, rpc):
        rpc.post.side_effect = httpx.ConnectTimeout("timed out")
        assert chain.has_on_chain_access(7, BUYER) is False

    def test_malformed_result_reads_as_false(self, configured, rpc):
        _respond(rpc, "0x1234")
        assert chain.has_on_chain_access(7, BUYER) is False

    def test_invalid_address_never_hits_node(self, configured, rpc):
        assert chain.has_on_chain_access(7, "not-an-address") is False
        rpc.post.assert_not_called()

    def test_unconfigured_node_reads_as_false(self, rpc):
        with patch.object(chain.settings, "chain_rpc_url", ""):
            assert chain.has_on_chain_access(7, BUYER) is False
        rpc.post.assert_not_called()


class TestRegistry:
    def test_is_registered_creator(self, configured, rpc):
        _respond(rpc, "0x" + _word(1))
        assert chain.is_registered_creator(BUYER) is True
        assert rpc.post.call_args[1]["json"]["params"][0]["to"] == REGISTRY

    def test_creator_info_decoded(self, configured, rpc):
        _respond(rpc, "0x" + _word(1) + _word(25) + _word(1700000000))

        info = chain.get_creator_info(BUYER)

        assert info.registered is True
        assert info.paid_usd == 25
        assert info.paid_at == 1700000000

    def test_creator_info_short_result(self, configured, rpc):
        _respond(rpc, "0x" + _word(1))
        assert chain.get_creator_info(BUYER) is None


class TestMalformedNodeResponses:
    @pytest.mark.parametrize("body", [None, [{"jsonrpc": "2.0", "result": "0x01"}], "ok", 1])
    def test_non_object_body_reads_as_false(self, configured, rpc, body):
        response = MagicMock()
        response.json.return_value = body
        rpc.post.return_value = response

        assert chain.has_on_chain_access(42, BUYER) is False
        assert chain.is_registered_creator(BUYER) is False
        assert chain.get_creator_info(BUYER) is None

    def test_non_hex_result_reads_as_false(self, configured, rpc):
        _respond(rpc, "0x" + "zz" * 32)
        assert chain.has_on_chain_access(42, BUYER) is False

    def test_undecodable_json_reads_as_false(self, configured, rpc):
        rpc.post.return_value.json.side_effect = ValueError("Expecting value")
        assert chain.is_registered_creator(BUYER) is False
