"""Tests for decoding of auction contract responses."""

import pytest

from auction_indexer.constants import AUCTION_DATA_MIN_SIZE, AUCTIONEER_OFFSET
from auction_indexer.ledger.client import AuctionDataResponse
from auction_indexer.ledger.decoding import (
    BinaryReader,
    LedgerDecodeError,
    decode_auction_data_raw,
    decode_auction_fields,
    decode_auction_orders,
    decode_clearing_order,
    extract_auctioneer_address,
)
from tests.helpers import AUCTIONEER, MOTO, ORANGE, auction_fields, encode_auction_raw, encode_orders


class TestBinaryReader:
    """Tests for the packed-stream reader."""

    def test_reads_in_sequence(self):
        buffer = (5).to_bytes(32, "big") + b"\x01" + bytes.fromhex("ab" * 32)
        reader = BinaryReader(buffer)
        assert reader.read_u256() == 5
        assert reader.read_bool() is True
        assert reader.read_address() == "0x" + "ab" * 32
        assert reader.remaining == 0

    def test_short_buffer_raises(self):
        reader = BinaryReader(b"\x00" * 31)
        with pytest.raises(LedgerDecodeError, match="Need 32 bytes"):
            reader.read_u256()

    def test_set_offset_out_of_range(self):
        with pytest.raises(LedgerDecodeError):
            BinaryReader(b"\x00" * 10).set_offset(11)


class TestAuctioneerExtraction:
    """Tests for the auctioneer address at its fixed offset."""

    def test_layout_places_auctioneer_at_offset(self):
        raw = encode_auction_raw(auction_fields())
        assert len(raw) == AUCTION_DATA_MIN_SIZE
        assert raw[AUCTIONEER_OFFSET:].hex() == AUCTIONEER[2:]

    def test_extracts_address(self):
        assert extract_auctioneer_address(encode_auction_raw(auction_fields())) == AUCTIONEER

    def test_zero_address_is_none(self):
        raw = encode_auction_raw(auction_fields(), auctioneer=None)
        assert extract_auctioneer_address(raw) is None

    def test_short_buffer_is_none(self):
        raw = encode_auction_raw(auction_fields())
        assert extract_auctioneer_address(raw[: AUCTION_DATA_MIN_SIZE - 1]) is None


class TestDecodeAuctionData:
    """Tests for getAuctionData decoding."""

    def test_raw_decoding(self):
        fields = auction_fields(orderCount=3, isSettled=True, isAtomicClosureAllowed=True)
        decoded = decode_auction_data_raw(encode_auction_raw(fields))
        assert decoded.auctioning_token == ORANGE
        assert decoded.bidding_token == MOTO
        assert decoded.auctioned_sell_amount == fields["auctionedSellAmount"]
        assert decoded.cancellation_end_date == fields["cancellationEndDate"]
        assert decoded.order_count == 3
        assert decoded.is_settled is True
        assert decoded.is_atomic_closure_allowed is True
        assert decoded.funding_not_reached is False
        assert decoded.auctioneer_address == AUCTIONEER

    def test_properties_take_precedence(self):
        fields = auction_fields(orderCount=2)
        response = AuctionDataResponse(properties=fields, raw=encode_auction_raw(fields))
        decoded = decode_auction_fields(response)
        assert decoded.order_count == 2
        assert decoded.auctioneer_address == AUCTIONEER

    def test_properties_without_raw_have_no_auctioneer(self):
        decoded = decode_auction_fields(AuctionDataResponse(properties=auction_fields()))
        assert decoded.auctioneer_address is None

    def test_falls_back_to_raw_without_properties(self):
        raw = encode_auction_raw(auction_fields(orderCount=7))
        decoded = decode_auction_fields(AuctionDataResponse(raw=raw))
        assert decoded.order_count == 7

    def test_zero_auctioning_token_means_no_auction(self):
        fields = auction_fields(auctioningToken="0x" + "00" * 32)
        with pytest.raises(LedgerDecodeError, match="no auctioning token"):
            decode_auction_fields(AuctionDataResponse(properties=fields))
        with pytest.raises(LedgerDecodeError, match="no auctioning token"):
            decode_auction_fields(AuctionDataResponse(raw=encode_auction_raw(fields)))

    def test_empty_response(self):
        with pytest.raises(LedgerDecodeError):
            decode_auction_fields(AuctionDataResponse())

    def test_non_integer_field(self):
        fields = auction_fields(auctionEndDate="soon")
        with pytest.raises(LedgerDecodeError, match="auctionEndDate"):
            decode_auction_fields(AuctionDataResponse(properties=fields))


class TestDecodeClearingOrder:
    """Tests for getClearingOrder decoding."""

    def test_decodes_amounts(self):
        props = {"clearingBuyAmount": "100", "clearingSellAmount": 500}
        assert decode_clearing_order(props) == (100, 500)

    def test_empty_raises(self):
        with pytest.raises(LedgerDecodeError):
            decode_clearing_order({})


class TestDecodeAuctionOrders:
    """Tests for getAuctionOrders decoding."""

    def test_decodes_orders_with_positional_ids(self):
        raw = encode_orders([(100, 200, 1), (300, 400, 2, True, False), (5, 6, 1, False, True)])
        orders = decode_auction_orders(raw)
        assert [o.order_id for o in orders] == [0, 1, 2]
        assert (orders[0].buy_amount, orders[0].sell_amount, orders[0].user_id) == (100, 200, 1)
        assert orders[1].cancelled is True and orders[1].claimed is False
        assert orders[2].claimed is True

    def test_empty_list(self):
        assert decode_auction_orders(encode_orders([])) == []

    def test_declared_count_exceeds_buffer(self):
        raw = encode_orders([(1, 2, 3)])
        truncated = (5).to_bytes(32, "big") + raw[32:]
        with pytest.raises(LedgerDecodeError, match="exceeds"):
            decode_auction_orders(truncated)
