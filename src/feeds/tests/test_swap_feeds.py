"""Tests for the V2 and V3 Swap log feeds."""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from eth_abi import encode
from hexbytes import HexBytes

from src.feeds.base import FeedConfig, event_topic
from src.feeds.uniswap_v2_swaps import V2_SWAP_TOPIC, V2_SYNC_TOPIC, UniswapV2SwapFeed
from src.feeds.uniswap_v3_swaps import V3_SWAP_TOPIC, UniswapV3SwapFeed
from src.monitor.errors import DecodeError, NetworkError, RateLimitError, SubscriptionFailure
from src.pricing.types import ReservesSnapshot, Source

V2_PAIR = "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"
V3_POOL = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
ZERO_TOPIC = HexBytes(b"\x00" * 32)
GENESIS_TS = 1_700_000_000


def tx(n):
    return HexBytes(bytes([n]) * 32)


def make_log(address, topic, data, block, index, tx_hash):
    return {
        "address": address,
        "topics": [HexBytes(topic), ZERO_TOPIC, ZERO_TOPIC],
        "data": HexBytes(data),
        "blockNumber": block,
        "logIndex": index,
        "transactionHash": tx_hash,
    }


def v2_sync_log(reserve0, reserve1, block=101, index=0, tx_hash=None):
    data = encode(["uint112", "uint112"], [reserve0, reserve1])
    return make_log(V2_PAIR, V2_SYNC_TOPIC, data, block, index, tx_hash or tx(1))


def v2_swap_log(amounts, block=101, index=1, tx_hash=None):
    data = encode(["uint256", "uint256", "uint256", "uint256"], list(amounts))
    return make_log(V2_PAIR, V2_SWAP_TOPIC, data, block, index, tx_hash or tx(1))


def v3_swap_log(amount0, amount1, sqrt_price_x96, tick, block=101, index=0, tx_hash=None):
    data = encode(
        ["int256", "int256", "uint160", "uint128", "int24"],
        [amount0, amount1, sqrt_price_x96, 10**18, tick],
    )
    return make_log(V3_POOL, V3_SWAP_TOPIC, data, block, index, tx_hash or tx(2))


def make_web3(block_number=101, logs=None):
    """Mock Web3 whose node is at block_number and returns logs."""
    web3 = Mock()
    web3.eth.block_number = block_number
    web3.eth.get_logs = Mock(return_value=logs or [])
    web3.eth.get_block = Mock(side_effect=lambda n: {"number": n, "timestamp": GENESIS_TS + n})
    return web3


class TestTopics:
    """Test event topic hashing."""

    def test_known_topics(self):
        """Test topics match the canonical Uniswap event hashes."""
        assert V2_SWAP_TOPIC == "0xd78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822"
        assert V2_SYNC_TOPIC == "0x1c411e9a96e071241c2f21f7726b17ae89e3cab4c78be50e062b03a9fffbbad1"
        assert V3_SWAP_TOPIC == "0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67"

    def test_event_topic(self):
        """Test event_topic hashes arbitrary signatures."""
        assert event_topic("Sync(uint112,uint112)") == V2_SYNC_TOPIC


class TestUniswapV2SwapFeed:
    """Test V2 Swap decoding."""

    @pytest.mark.asyncio
    async def test_swap_with_sync(self):
        """Test a Swap picks up the Sync reserves from its transaction."""
        logs = [
            v2_sync_log(2_002_000 * 10**6, 999 * 10**18),
            v2_swap_log([2000 * 10**6, 0, 0, 1 * 10**18]),
        ]
        feed = UniswapV2SwapFeed(make_web3(logs=logs), V2_PAIR)
        feed.last_block = 100

        events = await feed.poll()

        assert len(events) == 1
        event = events[0]
        assert event.source is Source.V2
        assert event.amount0_delta == 2000 * 10**6
        assert event.amount1_delta == -(10**18)
        assert event.reserves == ReservesSnapshot(reserve0=2_002_000 * 10**6, reserve1=999 * 10**18)
        assert event.block_number == 101
        assert event.tx_hash == "0x" + "01" * 32
        assert event.timestamp == datetime.fromtimestamp(GENESIS_TS + 101, tz=timezone.utc)

    @pytest.mark.asyncio
    async def test_sync_from_other_tx_ignored(self):
        """Test reserves are only attached within the same transaction."""
        logs = [
            v2_sync_log(1, 1, index=0, tx_hash=tx(7)),
            v2_swap_log([0, 10**18, 2000 * 10**6, 0], index=1, tx_hash=tx(8)),
        ]
        feed = UniswapV2SwapFeed(make_web3(logs=logs), V2_PAIR)
        feed.last_block = 100

        events = await feed.poll()

        assert events[0].reserves is None
        assert (events[0].amount0_delta, events[0].amount1_delta) == (-2000 * 10**6, 10**18)

    @pytest.mark.asyncio
    async def test_logs_sorted(self):
        """Test events come out in (block, log index) order."""
        logs = [
            v2_swap_log([3, 0, 0, 3], block=102, index=0, tx_hash=tx(3)),
            v2_swap_log([2, 0, 0, 2], block=101, index=5, tx_hash=tx(2)),
            v2_swap_log([1, 0, 0, 1], block=101, index=1, tx_hash=tx(1)),
        ]
        feed = UniswapV2SwapFeed(make_web3(block_number=102, logs=logs), V2_PAIR)
        feed.last_block = 100

        events = await feed.poll()

        assert [event.amount0_delta for event in events] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_bad_payload_skipped(self):
        """Test an undecodable log is skipped and the rest still decode."""
        bad = make_log(V2_PAIR, V2_SWAP_TOPIC, b"\x01", 101, 0, tx(4))
        good = v2_swap_log([5, 0, 0, 7], index=1, tx_hash=tx(5))
        feed = UniswapV2SwapFeed(make_web3(logs=[bad, good]), V2_PAIR)
        feed.last_block = 100

        events = await feed.poll()

        assert [(event.amount0_delta, event.amount1_delta) for event in events] == [(5, -7)]


class TestUniswapV3SwapFeed:
    """Test V3 Swap decoding."""

    @pytest.mark.asyncio
    async def test_signed_amounts(self):
        """Test signed deltas and price are decoded."""
        sqrt_price = 1_771_595_571_142_957_102_961_017_161_607_260
        feed = UniswapV3SwapFeed(make_web3(logs=[v3_swap_log(-2050 * 10**6, 10**18, sqrt_price, 200_000)]), V3_POOL)
        feed.last_block = 100

        events = await feed.poll()

        event = events[0]
        assert event.source is Source.V3
        assert event.amount0_delta == -2050 * 10**6
        assert event.amount1_delta == 10**18
        assert event.sqrt_price_x96 == sqrt_price
        assert event.reserves is None

    @pytest.mark.asyncio
    async def test_negative_tick_payload(self):
        """Test payloads with a negative int24 tick still decode."""
        feed = UniswapV3SwapFeed(make_web3(logs=[v3_swap_log(1, -1, 2**96, -887_000)]), V3_POOL)
        feed.last_block = 100

        events = await feed.poll()

        assert (events[0].amount0_delta, events[0].amount1_delta) == (1, -1)
        assert events[0].sqrt_price_x96 == 2**96

    def test_unknown_topic_ignored(self):
        """Test logs with other topics are ignored."""
        feed = UniswapV3SwapFeed(make_web3(), V3_POOL)
        other = make_log(V3_POOL, V2_SYNC_TOPIC, b"", 101, 0, tx(1))

        assert feed.decode_logs([other]) == []


class TestPolling:
    """Test block range handling and transport errors."""

    @pytest.mark.asyncio
    async def test_first_poll_sets_cursor(self):
        """Test the first poll only records the head block."""
        web3 = make_web3(block_number=500)
        feed = UniswapV2SwapFeed(web3, V2_PAIR)

        assert await feed.poll() == []
        assert feed.last_block == 500
        web3.eth.get_logs.assert_not_called()

    @pytest.mark.asyncio
    async def test_chunked_requests(self):
        """Test large ranges are split into max_blocks_per_request chunks."""
        web3 = make_web3(block_number=125)
        feed = UniswapV2SwapFeed(web3, V2_PAIR, FeedConfig(max_blocks_per_request=10))
        feed.last_block = 100

        await feed.poll()

        ranges = [
            (call.args[0]["fromBlock"], call.args[0]["toBlock"])
            for call in web3.eth.get_logs.call_args_list
        ]
        assert ranges == [(101, 110), (111, 120), (121, 125)]
        assert feed.last_block == 125

        params = web3.eth.get_logs.call_args_list[0].args[0]
        assert params["address"] == V2_PAIR
        assert params["topics"] == [[V2_SWAP_TOPIC, V2_SYNC_TOPIC]]

    @pytest.mark.asyncio
    async def test_failed_chunk_keeps_cursor(self):
        """Test a failing later chunk does not skip swaps from earlier chunks."""
        swap = v2_swap_log([1, 0, 0, 2], block=105, index=0)
        web3 = make_web3(block_number=120)
        web3.eth.get_logs.side_effect = [[swap], Exception("Connection reset"), [swap], []]
        feed = UniswapV2SwapFeed(web3, V2_PAIR, FeedConfig(max_blocks_per_request=10))
        feed.last_block = 100

        with pytest.raises(NetworkError):
            await feed.poll()
        assert feed.last_block == 100

        events = await feed.poll()

        assert [event.block_number for event in events] == [105]
        assert feed.last_block == 120

    @pytest.mark.asyncio
    async def test_stream_resumes_after_delivered_chunk(self):
        """Test stream() advances only past chunks whose events were yielded."""
        swap = v2_swap_log([1, 0, 0, 2], block=105, index=0)
        web3 = make_web3(block_number=120)
        web3.eth.get_logs.side_effect = [[swap], Exception("Connection reset")]
        feed = UniswapV2SwapFeed(web3, V2_PAIR, FeedConfig(max_blocks_per_request=10))
        feed.last_block = 100

        delivered = []
        with pytest.raises(NetworkError):
            async for event in feed.stream():
                delivered.append(event)

        assert [event.block_number for event in delivered] == [105]
        assert feed.last_block == 110

    @pytest.mark.asyncio
    async def test_no_new_blocks(self):
        """Test polling at the head does nothing."""
        web3 = make_web3(block_number=100)
        feed = UniswapV2SwapFeed(web3, V2_PAIR)
        feed.last_block = 100

        assert await feed.poll() == []
        web3.eth.get_logs.assert_not_called()

    @pytest.mark.asyncio
    async def test_timestamps_cached_per_block(self):
        """Test each block's timestamp is fetched once."""
        logs = [
            v2_swap_log([1, 0, 0, 1], index=0, tx_hash=tx(1)),
            v2_swap_log([2, 0, 0, 2], index=1, tx_hash=tx(2)),
        ]
        web3 = make_web3(logs=logs)
        feed = UniswapV2SwapFeed(web3, V2_PAIR)
        feed.last_block = 100

        await feed.poll()

        web3.eth.get_block.assert_called_once_with(101)

    def test_missing_timestamp(self):
        """Test decoding without a prefetched block time fails."""
        feed = UniswapV2SwapFeed(make_web3(), V2_PAIR)
        with pytest.raises(DecodeError):
            feed.block_timestamp(12345)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message,error_type", [
        ("429 Too Many Requests", RateLimitError),
        ("Connection refused", NetworkError),
        ("something odd", SubscriptionFailure),
    ])
    async def test_errors_wrapped(self, message, error_type):
        """Test node errors surface as subscription failures."""
        web3 = make_web3(block_number=110)
        web3.eth.get_logs.side_effect = Exception(message)
        feed = UniswapV2SwapFeed(web3, V2_PAIR)
        feed.last_block = 100

        with pytest.raises(error_type) as exc_info:
            await feed.poll()

        assert exc_info.value.source == "uniswap_v2"
        assert feed.last_block == 100

    @pytest.mark.asyncio
    async def test_stream_from_start_block(self):
        """Test stream() starts at the configured block and yields events."""
        web3 = make_web3(block_number=101, logs=[v2_swap_log([4, 0, 0, 8])])
        feed = UniswapV2SwapFeed(web3, V2_PAIR, FeedConfig(poll_interval=0, start_block=101))

        stream = feed.stream()
        event = await stream.__anext__()
        await stream.aclose()

        assert (event.amount0_delta, event.amount1_delta) == (4, -8)
        params = web3.eth.get_logs.call_args.args[0]
        assert params["fromBlock"] == 101
