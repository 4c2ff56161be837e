from unittest.mock import AsyncMock

import pytest

from ethlogs.decoding.registries import make_erc20_schema, make_store_schema
from ethlogs.decoding.specs import InterfaceSchema


@pytest.fixture
def store_schema() -> InterfaceSchema:
    return make_store_schema()


@pytest.fixture
def erc20_schema() -> InterfaceSchema:
    return make_erc20_schema()


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.get_code = AsyncMock(return_value=b"")
    rpc.aclose = AsyncMock()
    return rpc
